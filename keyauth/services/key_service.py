import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from keyauth.config import settings
from keyauth.database import utcnow
from keyauth.models.key import LicenseKey, KeyHwid
from keyauth.core.exceptions import InvalidApiError, KeyCollisionError
from keyauth.core.logging_utils import sanitize_log_message
from keyauth.services.application_service import ApplicationService

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_uppercase + string.digits


class KeyService:
    """Service for license key issuance, lookup, deletion, banning and binding reset."""

    @staticmethod
    def generate_key(prefix: str) -> str:
        """
        Build a key string ``{prefix}-{N random A-Z0-9 characters}``.

        Uniqueness is left to the database constraint.
        """
        suffix = "".join(secrets.choice(KEY_ALPHABET) for _ in range(settings.KEY_SUFFIX_LENGTH))
        return f"{prefix}-{suffix}"

    @staticmethod
    def _match(api_key: str, key: str):
        return (LicenseKey.key == key, LicenseKey.api == api_key)

    @staticmethod
    async def create_key(
        db: AsyncSession,
        api_key: str,
        prefix: str,
        days: int,
        device_limit: int = 1,
        now: Optional[datetime] = None
    ) -> LicenseKey:
        """
        Issue a key for an application.

        Args:
            db: Database session
            api_key: API key of the owning application
            prefix: Key prefix chosen by the caller
            days: Lifetime in days from now
            device_limit: How many devices may bind the key
            now: Override for the creation time

        Returns:
            Created LicenseKey record

        Raises:
            InvalidApiError if the application does not exist
            KeyCollisionError if the generated key string is already taken
        """
        if await ApplicationService.get_by_api_key(db, api_key) is None:
            raise InvalidApiError()

        now = now or utcnow()
        license_key = LicenseKey(
            key=KeyService.generate_key(prefix),
            api=api_key,
            prefix=prefix,
            created_at=now,
            expires_at=now + timedelta(days=days),
            device_limit=device_limit,
            hwid_count=0,
            banned=False,
            used=False,
            bindings=[],
        )
        db.add(license_key)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise KeyCollisionError()

        logger.info(
            sanitize_log_message(
                "Key created",
                Key=license_key.key,
                ExpiresAt=license_key.expires_at.isoformat(),
                DeviceLimit=device_limit
            )
        )
        return license_key

    @staticmethod
    async def get_key(
        db: AsyncSession,
        api_key: str,
        key: str
    ) -> Optional[LicenseKey]:
        """Full key record, or None when (api_key, key) does not match a row."""
        result = await db.execute(
            select(LicenseKey)
            .where(*KeyService._match(api_key, key))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_keys(
        db: AsyncSession,
        api_key: str
    ) -> List[LicenseKey]:
        """All keys of an application, newest first."""
        result = await db.execute(
            select(LicenseKey)
            .where(LicenseKey.api == api_key)
            .order_by(LicenseKey.created_at.desc(), LicenseKey.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_key(
        db: AsyncSession,
        api_key: str,
        key: str
    ) -> bool:
        """Returns True iff a matching key was removed."""
        result = await db.execute(
            delete(LicenseKey)
            .where(*KeyService._match(api_key, key))
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount > 0
        if deleted:
            logger.info(sanitize_log_message("Key deleted", Key=key))
        return deleted

    @staticmethod
    async def ban_key(
        db: AsyncSession,
        api_key: str,
        key: str
    ) -> bool:
        """Mark a key banned. Idempotent; returns True iff the key exists."""
        result = await db.execute(
            update(LicenseKey)
            .where(*KeyService._match(api_key, key))
            .values(banned=True)
            .execution_options(synchronize_session=False)
        )
        banned = result.rowcount > 0
        if banned:
            logger.info(sanitize_log_message("Key banned", Key=key))
        return banned

    @staticmethod
    async def reset_binding(
        db: AsyncSession,
        api_key: str,
        key: str
    ) -> bool:
        """
        Clear the device binding: bound hwids, used, system_info and first_used.

        The key row update and the removal of its hwid rows share one transaction;
        the row update comes first so a concurrent bind waits on the same row lock.
        """
        result = await db.execute(
            update(LicenseKey)
            .where(*KeyService._match(api_key, key))
            .values(hwid_count=0, used=False, system_info=None, first_used=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        await db.execute(
            delete(KeyHwid)
            .where(
                KeyHwid.key_id.in_(
                    select(LicenseKey.id).where(*KeyService._match(api_key, key))
                )
            )
            .execution_options(synchronize_session=False)
        )
        logger.info(sanitize_log_message("Key binding reset", Key=key))
        return True
