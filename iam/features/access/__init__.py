"""
Authorization core: permission resolution, the authorization gate and the
what-if simulation built on top of it.
"""
