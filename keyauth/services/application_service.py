import logging
import secrets
import string
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from keyauth.config import settings
from keyauth.models.application import Application
from keyauth.models.key import LicenseKey
from keyauth.core.access import (
    PermissionDecision,
    resolve_permission,
    count_owned_applications,
    require_application_owner,
)
from keyauth.core.exceptions import (
    ApplicationExistsError,
    ApplicationNotFoundError,
    ApplicationQuotaExceededError,
)
from keyauth.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)

API_KEY_ALPHABET = string.ascii_lowercase + string.digits


class ApplicationService:
    """Service for application registration, quota admission, listing and cascading deletion."""

    @staticmethod
    def generate_api_key() -> str:
        """Generate an application API key (``api_`` + 16 random lowercase alphanumerics)."""
        return "api_" + "".join(secrets.choice(API_KEY_ALPHABET) for _ in range(16))

    @staticmethod
    async def get_by_name(
        db: AsyncSession,
        name: str
    ) -> Optional[Application]:
        result = await db.execute(
            select(Application).where(Application.name == name)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_api_key(
        db: AsyncSession,
        api_key: str
    ) -> Optional[Application]:
        result = await db.execute(
            select(Application).where(Application.api_key == api_key)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_application(
        db: AsyncSession,
        name: str,
        owner_id: str
    ) -> Application:
        """
        Register a new application owned by ``owner_id``.

        Regular users are limited to MAX_APPS_PER_USER applications; the main admin and
        support users are not.

        Raises:
            ApplicationQuotaExceededError if the owner reached the quota
            ApplicationExistsError if the name is taken
        """
        decision = await resolve_permission(db, owner_id)
        if not decision.is_unbounded:
            owned = await count_owned_applications(db, owner_id)
            if owned >= settings.MAX_APPS_PER_USER:
                logger.info(
                    sanitize_log_message(
                        "Application quota reached",
                        UserID=owner_id,
                        Owned=owned,
                        Limit=settings.MAX_APPS_PER_USER
                    )
                )
                raise ApplicationQuotaExceededError(settings.MAX_APPS_PER_USER)

        if await ApplicationService.get_by_name(db, name) is not None:
            raise ApplicationExistsError()

        application = Application(
            name=name,
            api_key=ApplicationService.generate_api_key(),
            created_by=owner_id
        )
        db.add(application)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent request registered the same name after our check
            await db.rollback()
            raise ApplicationExistsError()

        logger.info(
            sanitize_log_message(
                "Application created",
                AppName=name,
                UserID=owner_id
            )
        )
        return application

    @staticmethod
    async def delete_application(
        db: AsyncSession,
        name: str,
        actor_id: str
    ) -> None:
        """
        Delete an application and, through the foreign key cascade, all of its keys.

        Raises:
            ApplicationNotFoundError if no application has that name
            PermissionDeniedException unless the actor is the main admin or the owner
        """
        application = await ApplicationService.get_by_name(db, name)
        if application is None:
            raise ApplicationNotFoundError()

        require_application_owner(actor_id, application)

        await db.execute(
            delete(Application)
            .where(Application.id == application.id)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            sanitize_log_message(
                "Application deleted",
                AppName=name,
                UserID=actor_id
            )
        )

    @staticmethod
    def _with_key_count():
        return (
            select(Application, func.count(LicenseKey.id).label("key_count"))
            .outerjoin(LicenseKey, LicenseKey.api == Application.api_key)
            .group_by(Application.id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )

    @staticmethod
    async def list_applications(
        db: AsyncSession,
        actor_id: str
    ) -> Tuple[List[Tuple[Application, int]], PermissionDecision]:
        """
        Applications visible to the actor with their live key counts, newest first.

        Admins and support users see every application, everyone else only their own.
        """
        decision = await resolve_permission(db, actor_id)
        query = ApplicationService._with_key_count()
        if not decision.is_unbounded:
            query = query.where(Application.created_by == actor_id)

        result = await db.execute(query)
        return [(row[0], row[1]) for row in result.all()], decision

    @staticmethod
    async def list_owned_applications(
        db: AsyncSession,
        actor_id: str
    ) -> List[Tuple[Application, int]]:
        """Applications created by the actor, newest first."""
        result = await db.execute(
            ApplicationService._with_key_count().where(Application.created_by == actor_id)
        )
        return [(row[0], row[1]) for row in result.all()]
