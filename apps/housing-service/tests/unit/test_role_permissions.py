import pytest
from pydantic import ValidationError

from housing.db import models, schemas
from housing.utils.role_permissions import (
    ALLOWED_ROLES,
    RoleEnum,
    audience_roles,
    role_can_administer,
    role_is_farm_admin,
    role_sees_all_farms,
)


class TestRolePermissions:
    """Unit tests for the global role table."""

    def test_only_superadmins_see_all_farms(self):
        assert role_sees_all_farms("superadmin") is True
        assert role_sees_all_farms("admin") is False
        assert role_sees_all_farms(None) is False

    def test_only_superadmins_administer(self):
        assert role_can_administer("superadmin") is True
        assert role_can_administer("admin") is False
        assert role_can_administer("owner") is False

    def test_farm_admin_roles(self):
        assert role_is_farm_admin("admin") is True
        assert role_is_farm_admin("superadmin") is True
        assert role_is_farm_admin("user") is False

    def test_user_model_superadmin_flag_follows_the_table(self):
        assert models.User(email="a@example.com", role="superadmin").is_superadmin is True
        assert models.User(email="b@example.com", role="admin").is_superadmin is False

    def test_role_update_schema_accepts_known_roles_only(self):
        assert {r.value for r in RoleEnum} == ALLOWED_ROLES
        assert schemas.UserRoleUpdate(role="admin").role is RoleEnum.admin
        with pytest.raises(ValidationError):
            schemas.UserRoleUpdate(role="owner")


class TestAnnouncementAudiences:
    def test_admins_include_superadmins(self):
        assert audience_roles("admins") == {"admin", "superadmin"}

    def test_users_audience(self):
        assert audience_roles("users") == {"user"}

    def test_all_audience(self):
        assert audience_roles("all") == ALLOWED_ROLES

    def test_unknown_audience(self):
        with pytest.raises(ValueError, match="Unknown audience"):
            audience_roles("guests")
