"""
Page/action permission matrix.

Maps every protected page ("/students") and action ("students:delete") to the
set of roles allowed to use it. The matrix is built once at startup and never
mutated; lookups of unknown keys fail closed with ConfigurationError.
"""
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from app.core.errors import ConfigurationError
from app.features.access.roles import SystemRole


SA = SystemRole.SUPER_ADMIN
OA = SystemRole.ORGANIZATION_ADMIN
FM = SystemRole.FINANCE_MANAGER
AC = SystemRole.ACADEMIC_COORDINATOR
TE = SystemRole.TEACHER
ST = SystemRole.STUDENT

ADMINS = {SA, OA}
ACADEMIC_STAFF = {SA, OA, AC}
FINANCE_STAFF = {SA, OA, FM}
EVERYONE = set(SystemRole)


DEFAULT_PERMISSIONS: dict[str, set[SystemRole]] = {
    # Pages
    "/dashboard": EVERYONE,
    "/settings": EVERYONE,
    "/students": ACADEMIC_STAFF,
    "/teachers": ACADEMIC_STAFF,
    "/levels": ACADEMIC_STAFF,
    "/classes": ACADEMIC_STAFF,
    "/attendance": ACADEMIC_STAFF | {TE},
    "/exams": ACADEMIC_STAFF | {TE},
    "/sessions": ACADEMIC_STAFF | {TE},
    "/finance": FINANCE_STAFF,
    "/finance/fees": FINANCE_STAFF,
    "/finance/payments": FINANCE_STAFF,
    "/finance/salaries": FINANCE_STAFF,
    "/finance/expenses": FINANCE_STAFF,
    "/archive": ADMINS,
    "/audit": ADMINS,
    "/admin": {SA},
    "/admin/organizations": {SA},

    # Lifecycle actions
    "students:delete": ADMINS,
    "students:restore": ADMINS,
    "students:purge": ADMINS,
    "teachers:delete": ADMINS,
    "teachers:restore": ADMINS,
    "teachers:purge": ADMINS,
    "exams:delete": ACADEMIC_STAFF,
    "exams:restore": ACADEMIC_STAFF,
    "exams:purge": ADMINS,
    "student-payments:delete": FINANCE_STAFF,
    "student-payments:restore": FINANCE_STAFF,
    "student-payments:purge": ADMINS,
    "teacher-payments:delete": FINANCE_STAFF,
    "teacher-payments:restore": FINANCE_STAFF,
    "teacher-payments:purge": ADMINS,
}


class PermissionMatrix:
    """Immutable role allow-sets keyed by page path or action name."""

    def __init__(self, entries: Mapping[str, Iterable[SystemRole]]):
        table: dict[str, frozenset[SystemRole]] = {}
        for key, roles in entries.items():
            if not key:
                raise ConfigurationError("Permission matrix contains an empty key")
            allowed = frozenset(roles)
            if not allowed:
                raise ConfigurationError(f"Permission matrix entry {key!r} allows no roles")
            unknown = [role for role in allowed if not isinstance(role, SystemRole)]
            if unknown:
                raise ConfigurationError(f"Permission matrix entry {key!r} has unknown roles {unknown}")
            table[key] = allowed
        self._entries = MappingProxyType(table)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def resolve_key(self, key: str) -> str:
        """
        Find the matrix entry governing `key`.

        Pages fall back to their longest registered ancestor at a path segment
        boundary ("/finance/payments/42" -> "/finance/payments"). Actions must
        match exactly.
        """
        if key in self._entries:
            return key
        if key.startswith("/"):
            candidate = key.rstrip("/")
            while "/" in candidate:
                candidate = candidate.rsplit("/", 1)[0]
                if candidate in self._entries:
                    return candidate
        raise ConfigurationError(f"No permission matrix entry for {key!r}")

    def allowed_roles(self, key: str) -> frozenset[SystemRole]:
        return self._entries[self.resolve_key(key)]

    def is_allowed(self, role: SystemRole, key: str) -> bool:
        return role in self.allowed_roles(key)

    def accessible_pages(self, role: SystemRole) -> list[str]:
        return sorted(
            key for key, roles in self._entries.items()
            if key.startswith("/") and role in roles
        )

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def load_permission_matrix() -> PermissionMatrix:
    """Build the process-wide matrix from the default policy table."""
    return PermissionMatrix(DEFAULT_PERMISSIONS)
