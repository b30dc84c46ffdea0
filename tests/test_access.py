"""
Tests for access control: main admin, support grants, ownership and the application quota.
"""
import pytest
from keyauth.config import settings
from keyauth.core.access import (
    PermissionDecision,
    is_main_admin,
    resolve_permission,
    count_owned_applications,
    require_application_permission,
    require_main_admin,
)
from keyauth.core.exceptions import PermissionDeniedException
from keyauth.models.support import Support


class TestPermissionDecision:
    """Tests for quota reporting on decisions."""

    def test_regular_user_is_bounded(self):
        """Regular users should be held to the application quota."""
        decision = PermissionDecision(granted=True)

        assert decision.is_unbounded is False
        assert decision.max_apps == settings.MAX_APPS_PER_USER

    def test_admin_and_support_are_unbounded(self):
        """Admins and support users should report the unlimited quota."""
        assert PermissionDecision(granted=True, is_main_admin=True).max_apps == settings.UNLIMITED_APPS
        assert PermissionDecision(granted=True, is_support=True).max_apps == settings.UNLIMITED_APPS

    def test_is_main_admin(self, admin_id):
        """Only the configured identity should be the main admin."""
        assert is_main_admin(admin_id) is True
        assert is_main_admin("someone_else") is False
        assert is_main_admin(None) is False


class TestResolvePermission:
    """Tests for the ordered permission rules."""

    @pytest.mark.asyncio
    async def test_main_admin_has_access_to_any_application(self, db_session, application, admin_id):
        """Main admin should be granted access to any application."""
        decision = await resolve_permission(db_session, admin_id, application.api_key)

        assert decision.granted is True
        assert decision.is_main_admin is True

    @pytest.mark.asyncio
    async def test_main_admin_granted_even_for_unknown_api(self, db_session, admin_id):
        """Main admin should be granted access even when the API key is unknown."""
        decision = await resolve_permission(db_session, admin_id, "api_doesnotexist0000")

        assert decision.granted is True

    @pytest.mark.asyncio
    async def test_owner_has_access(self, db_session, application):
        """The creator of an application should be granted access."""
        decision = await resolve_permission(db_session, application.created_by, application.api_key)

        assert decision.granted is True
        assert decision.is_main_admin is False
        assert decision.is_support is False

    @pytest.mark.asyncio
    async def test_stranger_denied(self, db_session, application):
        """Users without a grant should be denied access."""
        decision = await resolve_permission(db_session, "stranger", application.api_key)

        assert decision.granted is False

    @pytest.mark.asyncio
    async def test_support_user_has_access_to_every_application(self, db_session, application):
        """Support users should be granted access to applications they did not create."""
        db_session.add(Support(user_id="helper", added_by=settings.MAIN_ADMIN_ID))
        await db_session.flush()

        decision = await resolve_permission(db_session, "helper", application.api_key)

        assert decision.granted is True
        assert decision.is_support is True

    @pytest.mark.asyncio
    async def test_global_check_without_api(self, db_session, application):
        """A global check without an API key should not grant regular users."""
        decision = await resolve_permission(db_session, application.created_by)

        assert decision.granted is False


class TestRequirePermission:
    """Tests for the raising variants."""

    @pytest.mark.asyncio
    async def test_require_application_permission_raises_403(self, db_session, application):
        """Missing permission should raise a 403 naming the action."""
        with pytest.raises(PermissionDeniedException) as exc_info:
            await require_application_permission(db_session, "stranger", application.api_key, "create keys")

        assert exc_info.value.status_code == 403
        assert "create keys" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_require_application_permission_returns_decision(self, db_session, application):
        """Granted permission should return the decision."""
        decision = await require_application_permission(db_session, application.created_by, application.api_key, "view keys")

        assert decision.granted is True

    def test_require_main_admin(self, admin_id):
        """Only the main admin should pass the main admin check."""
        require_main_admin(admin_id, "add support users")

        with pytest.raises(PermissionDeniedException):
            require_main_admin("regular_user", "add support users")

    @pytest.mark.asyncio
    async def test_count_owned_applications(self, db_session, application):
        """Owned application count should only include the actor's applications."""
        assert await count_owned_applications(db_session, application.created_by) == 1
        assert await count_owned_applications(db_session, "nobody") == 0
