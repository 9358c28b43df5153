"""
Permission matrix: totality, per-role allow/deny and fail-closed lookups.
"""
import pytest

from app.core.errors import ConfigurationError
from app.features.access.matrix import PermissionMatrix, load_permission_matrix
from app.features.access.roles import SystemRole, can_invite_users, can_manage_role


SA = SystemRole.SUPER_ADMIN
OA = SystemRole.ORGANIZATION_ADMIN
FM = SystemRole.FINANCE_MANAGER
AC = SystemRole.ACADEMIC_COORDINATOR
TE = SystemRole.TEACHER
ST = SystemRole.STUDENT


EXPECTED_ALLOWED = {
    "/dashboard": {SA, OA, FM, AC, TE, ST},
    "/students": {SA, OA, AC},
    "/teachers": {SA, OA, AC},
    "/exams": {SA, OA, AC, TE},
    "/finance": {SA, OA, FM},
    "/finance/payments": {SA, OA, FM},
    "/finance/salaries": {SA, OA, FM},
    "/archive": {SA, OA},
    "/audit": {SA, OA},
    "/admin": {SA},
    "students:delete": {SA, OA},
    "teachers:purge": {SA, OA},
    "exams:delete": {SA, OA, AC},
    "exams:purge": {SA, OA},
    "student-payments:delete": {SA, OA, FM},
    "teacher-payments:restore": {SA, OA, FM},
    "teacher-payments:purge": {SA, OA},
}


@pytest.fixture
def matrix() -> PermissionMatrix:
    return load_permission_matrix()


@pytest.mark.parametrize("key", sorted(EXPECTED_ALLOWED))
@pytest.mark.parametrize("role", list(SystemRole))
def test_role_allow_deny(matrix, key, role):
    assert matrix.is_allowed(role, key) == (role in EXPECTED_ALLOWED[key])


def test_every_entry_allows_super_admin(matrix):
    for key in matrix.keys:
        assert SA in matrix.allowed_roles(key), key


def test_every_archivable_entity_has_all_actions(matrix):
    for entity_type in ("students", "teachers", "exams", "student-payments", "teacher-payments"):
        for action in ("delete", "restore", "purge"):
            assert f"{entity_type}:{action}" in matrix


def test_unknown_key_fails_closed(matrix):
    with pytest.raises(ConfigurationError):
        matrix.is_allowed(SA, "students:teleport")
    with pytest.raises(ConfigurationError):
        matrix.is_allowed(SA, "/nowhere")


def test_nested_page_resolves_to_ancestor(matrix):
    assert matrix.resolve_key("/finance/payments/01HXYZ") == "/finance/payments"
    assert matrix.resolve_key("/students/01HXYZ/") == "/students"
    assert not matrix.is_allowed(TE, "/students/01HXYZ")


def test_actions_do_not_fall_back(matrix):
    with pytest.raises(ConfigurationError):
        matrix.resolve_key("students:delete:forever")


def test_accessible_pages_lists_only_pages(matrix):
    pages = matrix.accessible_pages(TE)
    assert pages == sorted(pages)
    assert "/exams" in pages
    assert "/students" not in pages
    assert all(page.startswith("/") for page in pages)
    assert matrix.accessible_pages(SA) == sorted(k for k in matrix.keys if k.startswith("/"))


def test_matrix_is_immutable(matrix):
    with pytest.raises(TypeError):
        matrix._entries["/students"] = frozenset({ST})
    with pytest.raises(AttributeError):
        matrix.allowed_roles("/students").add(ST)


def test_matrix_is_isolated_from_source_table():
    source = {"/page": {SA}}
    matrix = PermissionMatrix(source)
    source["/page"].add(ST)
    source["/other"] = {SA}
    assert matrix.allowed_roles("/page") == frozenset({SA})
    assert "/other" not in matrix


@pytest.mark.parametrize("entries", [
    {"": {SA}},
    {"/page": set()},
    {"/page": {"SuperAdmin"}},
])
def test_malformed_table_is_rejected(entries):
    with pytest.raises(ConfigurationError):
        PermissionMatrix(entries)


def test_invite_rules():
    assert can_invite_users(SA, False)
    assert can_invite_users(OA, False)
    assert can_invite_users(TE, True)
    assert not can_invite_users(FM, False)


def test_role_hierarchy():
    assert can_manage_role(SA, OA)
    assert can_manage_role(OA, FM)
    assert not can_manage_role(OA, OA)
    assert not can_manage_role(AC, TE)
