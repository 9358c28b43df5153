"""
Entity lifecycle feature module.

Soft delete, restore, cascade purge and permanent deletion of archivable
entities, with an append-only deletion audit trail.
"""
