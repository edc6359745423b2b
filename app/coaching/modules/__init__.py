"""
Feature modules live under this package.

Each module owns its models/service/views, while reusing platform primitives
(auth, RBAC, audit, storage, DB session).
"""
