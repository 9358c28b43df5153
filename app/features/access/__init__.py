"""
Access control feature module.

Resolves an authenticated principal into an organization-scoped UserContext
and guards pages/actions through a static role permission matrix.
"""
