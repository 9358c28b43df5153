"""
Error taxonomy for the access control and lifecycle core.

Every error carries a stable machine-readable `error` kind and the HTTP status
the API layer maps it to. Route handlers let these propagate; a single
exception handler in app.main renders them.
"""
from typing import Any, Dict, Optional

from fastapi import status


class CoreError(Exception):
    """Base class for errors raised by the core."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.details}


class Unauthenticated(CoreError):
    """No valid principal, or the principal has no usable membership."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthenticated"


class Forbidden(CoreError):
    """Authenticated, but the role may not perform the page/action."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"


class NotFound(CoreError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class LifecycleError(CoreError):
    """Recoverable lifecycle precondition failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "lifecycle_error"


class HasRelatedRecords(LifecycleError):
    error = "has_related_records"

    def __init__(self, entity_label: str, counts: Dict[str, int]):
        blocking = ", ".join(f"{count} {name}" for name, count in counts.items() if count > 0)
        message = (
            f"cannot delete {entity_label}: {blocking} "
            f"(remove them or retry with cascade=true)"
        )
        super().__init__(message, {"related_records": dict(counts)})
        self.counts = dict(counts)


class NotSoftDeleted(LifecycleError):
    error = "not_soft_deleted"


class AlreadyDeleted(LifecycleError):
    error = "already_deleted"


class InvalidPage(LifecycleError):
    """Archive paging outside the allowed range."""

    error = "invalid_page"


class ConstraintViolation(CoreError):
    """
    Storage-level failure (foreign key, uniqueness, connectivity).

    For cascades, `completed` lists the relations purged before the failure
    and `failed` names the relation that could not be purged. The surrounding
    transaction was rolled back, so none of the completed purges persisted.
    """

    error = "constraint_violation"

    def __init__(
        self,
        message: str,
        completed: Optional[Dict[str, int]] = None,
        failed: Optional[str] = None,
    ):
        self.completed = dict(completed or {})
        self.failed = failed
        super().__init__(message, {"completed": self.completed, "failed": failed, "rolled_back": True})


class ConfigurationError(CoreError):
    """Fatal misconfiguration, e.g. a permission matrix missing an entry."""

    error = "configuration_error"
