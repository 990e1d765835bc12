"""Role table tests: every role maps to exactly one access level."""

import pytest

from coursecoin.auth.roles import ROLE_ACCESS, AccessLevel, Role, access_level, is_admin, parse_role


class TestRoleAccess:
    def test_table_covers_every_role(self):
        assert set(ROLE_ACCESS) == set(Role)

    @pytest.mark.parametrize("role", [Role.L2_ADMIN, Role.L1_ADMIN, Role.SUPER_ADMIN])
    def test_admin_roles(self, role):
        assert access_level(role) is AccessLevel.ADMIN
        assert is_admin(role) is True

    @pytest.mark.parametrize("role", [Role.USER, Role.ORG_ADMIN])
    def test_learner_roles(self, role):
        assert access_level(role) is AccessLevel.LEARNER
        assert is_admin(role) is False


class TestParseRole:
    def test_known_role(self):
        assert parse_role("SUPER_ADMIN") is Role.SUPER_ADMIN

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            parse_role("OWNER")

    def test_case_sensitive(self):
        with pytest.raises(ValueError):
            parse_role("user")
