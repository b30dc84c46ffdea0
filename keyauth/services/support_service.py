import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from keyauth.models.support import Support
from keyauth.core.access import is_main_admin, require_main_admin
from keyauth.core.exceptions import (
    InvalidRequestException,
    SupportExistsError,
    SupportNotFoundError,
)
from keyauth.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)


class SupportService:
    """Service for granting, revoking and listing support users."""

    @staticmethod
    async def get_support(
        db: AsyncSession,
        user_id: str
    ) -> Optional[Support]:
        result = await db.execute(
            select(Support).where(Support.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_supports(db: AsyncSession) -> List[Support]:
        """All support grants, newest first."""
        result = await db.execute(
            select(Support).order_by(Support.added_at.desc(), Support.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_support(
        db: AsyncSession,
        user_id: str,
        admin_id: str
    ) -> Support:
        """
        Grant support access to ``user_id``.

        Raises:
            PermissionDeniedException unless admin_id is the main admin
            SupportExistsError if the user already has a grant
        """
        require_main_admin(admin_id, "add support users")

        if await SupportService.get_support(db, user_id) is not None:
            raise SupportExistsError(user_id)

        support = Support(user_id=user_id, added_by=admin_id)
        db.add(support)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise SupportExistsError(user_id)

        logger.info(sanitize_log_message("Support user added", UserID=user_id, AddedBy=admin_id))
        return support

    @staticmethod
    async def delete_support(
        db: AsyncSession,
        user_id: str,
        admin_id: str
    ) -> None:
        """
        Revoke a support grant. The main admin's own grant cannot be revoked.

        Raises:
            PermissionDeniedException unless admin_id is the main admin
            InvalidRequestException when targeting the main admin
            SupportNotFoundError if the user has no grant
        """
        require_main_admin(admin_id, "delete support users")

        if is_main_admin(user_id):
            raise InvalidRequestException(detail="Cannot delete main admin")

        result = await db.execute(
            delete(Support)
            .where(Support.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SupportNotFoundError()

        logger.info(sanitize_log_message("Support user deleted", UserID=user_id, DeletedBy=admin_id))
