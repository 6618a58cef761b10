"""
Permission management feature module.

A permission is a (module, action) pair; roles bundle permissions and
users may also hold them directly.
"""
