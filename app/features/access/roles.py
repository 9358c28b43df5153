"""
System roles and the role hierarchy.
"""
import enum


class SystemRole(str, enum.Enum):
    """Closed set of roles a binding can grant."""
    SUPER_ADMIN = "SuperAdmin"
    ORGANIZATION_ADMIN = "OrganizationAdmin"
    FINANCE_MANAGER = "FinanceManager"
    ACADEMIC_COORDINATOR = "AcademicCoordinator"
    TEACHER = "Teacher"
    STUDENT = "Student"


# Higher level = more permissions. FinanceManager and AcademicCoordinator are peers.
ROLE_LEVELS: dict[SystemRole, int] = {
    SystemRole.SUPER_ADMIN: 5,
    SystemRole.ORGANIZATION_ADMIN: 4,
    SystemRole.FINANCE_MANAGER: 3,
    SystemRole.ACADEMIC_COORDINATOR: 3,
    SystemRole.TEACHER: 2,
    SystemRole.STUDENT: 1,
}

ROLE_NAMES: dict[SystemRole, str] = {
    SystemRole.SUPER_ADMIN: "Super Admin",
    SystemRole.ORGANIZATION_ADMIN: "Organization Admin",
    SystemRole.FINANCE_MANAGER: "Finance Manager",
    SystemRole.ACADEMIC_COORDINATOR: "Academic Coordinator",
    SystemRole.TEACHER: "Teacher",
    SystemRole.STUDENT: "Student",
}

# Roles that can be handed out by the role-update operation
ASSIGNABLE_ROLES: frozenset[SystemRole] = frozenset(
    role for role in SystemRole if role is not SystemRole.SUPER_ADMIN
)


def role_level(role: SystemRole) -> int:
    return ROLE_LEVELS[role]


def is_super_admin(role: SystemRole) -> bool:
    return role == SystemRole.SUPER_ADMIN


def is_admin_role(role: SystemRole) -> bool:
    return role in (SystemRole.SUPER_ADMIN, SystemRole.ORGANIZATION_ADMIN)


def can_invite_users(role: SystemRole, can_invite: bool) -> bool:
    """
    SuperAdmin and OrganizationAdmin may always invite; any other role only
    when its binding carries the can_invite flag.
    """
    return is_admin_role(role) or can_invite


def can_manage_role(manager: SystemRole, target: SystemRole) -> bool:
    """
    SuperAdmin manages everyone; other roles manage strictly lower levels,
    and only admins manage anyone at all.
    """
    if manager == SystemRole.SUPER_ADMIN:
        return True
    if manager != SystemRole.ORGANIZATION_ADMIN:
        return False
    return role_level(target) < role_level(manager)
