"""
Assignment graph: the many-to-many links between users, groups, roles
and permissions.
"""
