"""
CampusGuard — Role Model Tests
================================

What we test:
    ✅ role_satisfies: empty requirement, intersection, super_admin ⊇ admin
    ✅ has_write_access: read-only admins denied, non-admins unaffected
"""

from campusguard.services.roles import (
    Role,
    has_write_access,
    is_admin,
    is_super_admin,
    role_satisfies,
)


class TestRoleSatisfies:

    def test_no_requirement_admits_anyone(self):
        assert role_satisfies(["parent"], None)
        assert role_satisfies([], [])

    def test_any_required_role_suffices(self):
        assert role_satisfies(["teacher"], ["admin", "teacher"])

    def test_missing_role_rejected(self):
        assert not role_satisfies(["parent"], ["teacher"])
        assert not role_satisfies([], ["parent"])

    def test_super_admin_satisfies_admin(self):
        assert role_satisfies(["super_admin"], ["admin"])

    def test_admin_does_not_satisfy_super_admin(self):
        assert not role_satisfies(["admin"], ["super_admin"])

    def test_readonly_does_not_satisfy_admin(self):
        assert not role_satisfies(["admin_readonly"], ["admin"])

    def test_accepts_enum_members(self):
        assert role_satisfies([Role.SUPER_ADMIN], [Role.ADMIN])


class TestWriteAccess:

    def test_readonly_admin_has_no_write_access(self):
        assert not has_write_access(["admin_readonly"])

    def test_readonly_plus_admin_has_write_access(self):
        assert has_write_access(["admin_readonly", "admin"])

    def test_super_admin_has_write_access(self):
        assert has_write_access(["super_admin"])

    def test_non_admin_principals_unaffected(self):
        assert has_write_access(["teacher"])
        assert has_write_access(["parent"])
        assert has_write_access([])


def test_admin_predicates():
    assert is_admin(["admin"])
    assert is_admin(["super_admin"])
    assert not is_admin(["admin_readonly"])
    assert is_super_admin(["parent", "super_admin"])
    assert not is_super_admin(["admin"])
