"""
Tests for support grants.
"""
import pytest
from keyauth.core.exceptions import (
    InvalidRequestException,
    PermissionDeniedException,
    SupportExistsError,
    SupportNotFoundError,
)
from keyauth.services.support_service import SupportService


class TestAddSupport:
    """Tests for granting support access."""

    @pytest.mark.asyncio
    async def test_main_admin_adds_support(self, database, admin_id):
        """Main admin should add support users."""
        support = await database.run(SupportService.add_support, "helper", admin_id)

        assert support.user_id == "helper"
        assert support.added_by == admin_id

    @pytest.mark.asyncio
    async def test_only_main_admin_adds_support(self, database):
        """Other users should not add support users."""
        with pytest.raises(PermissionDeniedException):
            await database.run(SupportService.add_support, "helper", "not_admin")

    @pytest.mark.asyncio
    async def test_support_user_cannot_add_support(self, database, admin_id):
        """Support users should not add support users."""
        await database.run(SupportService.add_support, "helper", admin_id)

        with pytest.raises(PermissionDeniedException):
            await database.run(SupportService.add_support, "another", "helper")

    @pytest.mark.asyncio
    async def test_duplicate_support(self, database, admin_id):
        """Adding an existing support user should raise."""
        await database.run(SupportService.add_support, "helper", admin_id)

        with pytest.raises(SupportExistsError) as exc_info:
            await database.run(SupportService.add_support, "helper", admin_id)

        assert exc_info.value.message == "Support user [helper] already exists"


class TestDeleteSupport:
    """Tests for revoking support access."""

    @pytest.mark.asyncio
    async def test_delete_support(self, database, admin_id):
        """Main admin should revoke support users."""
        await database.run(SupportService.add_support, "helper", admin_id)

        await database.run(SupportService.delete_support, "helper", admin_id)

        assert await database.run(SupportService.get_support, "helper") is None

    @pytest.mark.asyncio
    async def test_delete_missing_support(self, database, admin_id):
        """Revoking an unknown support user should raise."""
        with pytest.raises(SupportNotFoundError):
            await database.run(SupportService.delete_support, "nobody", admin_id)

    @pytest.mark.asyncio
    async def test_cannot_delete_main_admin(self, database, admin_id):
        """Main admin grant should not be revocable."""
        with pytest.raises(InvalidRequestException) as exc_info:
            await database.run(SupportService.delete_support, admin_id, admin_id)

        assert exc_info.value.detail == "Cannot delete main admin"

    @pytest.mark.asyncio
    async def test_only_main_admin_deletes_support(self, database, admin_id):
        """Support users should not revoke support users."""
        await database.run(SupportService.add_support, "helper", admin_id)

        with pytest.raises(PermissionDeniedException):
            await database.run(SupportService.delete_support, "helper", "helper")


class TestListSupports:
    """Tests for listing grants."""

    @pytest.mark.asyncio
    async def test_list_supports_newest_first(self, database, admin_id):
        """Support users should be listed newest first."""
        await database.run(SupportService.add_support, "first", admin_id)
        await database.run(SupportService.add_support, "second", admin_id)

        supports = await database.run(SupportService.list_supports)

        assert [s.user_id for s in supports] == ["second", "first", admin_id]
