import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from keyauth.config import settings
from keyauth.models.application import Application
from keyauth.models.support import Support
from keyauth.core.exceptions import PermissionDeniedException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionDecision:
    """Outcome of an access check for one actor."""

    granted: bool
    is_main_admin: bool = False
    is_support: bool = False

    @property
    def is_unbounded(self) -> bool:
        """Admins and support users are exempt from the application quota."""
        return self.is_main_admin or self.is_support

    @property
    def max_apps(self) -> int:
        return settings.UNLIMITED_APPS if self.is_unbounded else settings.MAX_APPS_PER_USER


def is_main_admin(actor_id: Optional[str]) -> bool:
    return actor_id == settings.MAIN_ADMIN_ID


async def has_support_grant(db: AsyncSession, actor_id: str) -> bool:
    result = await db.execute(
        select(Support.id).where(Support.user_id == actor_id)
    )
    return result.scalar_one_or_none() is not None


async def resolve_permission(
    db: AsyncSession,
    actor_id: str,
    api_key: Optional[str] = None
) -> PermissionDecision:
    """
    Decide whether an actor may act on an application.

    Rules are evaluated in order, first match wins:
    main admin, then support grant (any application), then creator of the application.

    Args:
        db: Database session
        actor_id: Opaque caller identity
        api_key: API key of the target application, or None for a global check

    Returns:
        PermissionDecision
    """
    if is_main_admin(actor_id):
        return PermissionDecision(granted=True, is_main_admin=True)

    if await has_support_grant(db, actor_id):
        return PermissionDecision(granted=True, is_support=True)

    if not api_key:
        return PermissionDecision(granted=False)

    result = await db.execute(
        select(Application.id).where(
            Application.api_key == api_key,
            Application.created_by == actor_id
        )
    )
    return PermissionDecision(granted=result.scalar_one_or_none() is not None)


async def count_owned_applications(db: AsyncSession, actor_id: str) -> int:
    """Number of applications created by the actor."""
    result = await db.execute(
        select(func.count(Application.id)).where(Application.created_by == actor_id)
    )
    return int(result.scalar_one())


async def require_application_permission(
    db: AsyncSession,
    actor_id: str,
    api_key: str,
    action: str
) -> PermissionDecision:
    """
    Require permission on an application or raise exception.

    Raises:
        PermissionDeniedException if the actor may not act on the application
    """
    decision = await resolve_permission(db, actor_id, api_key)
    if not decision.granted:
        logger.warning(f"PERMISSION_DENIED | user_id={actor_id} | action={action}")
        raise PermissionDeniedException(
            detail=f"You do not have permission to {action} for this application"
        )
    return decision


def require_application_owner(actor_id: str, application: Application) -> None:
    """
    Only the main admin or the creator may delete an application.

    Raises:
        PermissionDeniedException otherwise
    """
    if is_main_admin(actor_id) or application.created_by == actor_id:
        return
    logger.warning(f"PERMISSION_DENIED | user_id={actor_id} | action=delete_app | app={application.name}")
    raise PermissionDeniedException(detail="You do not have permission to delete this application")


def require_main_admin(actor_id: str, action: str) -> None:
    """
    Raises:
        PermissionDeniedException unless the actor is the main admin
    """
    if not is_main_admin(actor_id):
        logger.warning(f"PERMISSION_DENIED | user_id={actor_id} | action={action}")
        raise PermissionDeniedException(detail=f"Only the main admin can {action}")
