"""
Key validation and device binding.

A key's state at validation time is derived from its stored fields, checked in a fixed
order (first match wins):

    unknown application -> unknown key -> banned -> expired
    -> already bound to this hwid (accept, no write)
    -> device limit reached (reject)
    -> new binding (accept, write)

The new-binding write is a single conditional UPDATE on the key row guarded by
``hwid_count < device_limit``, followed by the insert of the hwid row in the same
transaction. When the guard matches no row, or the (key_id, hwid) unique constraint
fires, another request changed the key in between: the transaction is rolled back and
the state is derived again from a fresh read.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError
from keyauth.database import utcnow
from keyauth.models.key import LicenseKey, KeyHwid
from keyauth.core.logging_utils import sanitize_log_message
from keyauth.services.application_service import ApplicationService
from keyauth.services.key_service import KeyService

logger = logging.getLogger(__name__)

MAX_BIND_ATTEMPTS = 3


class ValidationOutcome(str, Enum):
    """Validation outcomes; the value is the message returned to the client."""
    VALID = "Valid key"
    INVALID_API = "Invalid API"
    INVALID_KEY = "Invalid key"
    BANNED = "Key banned"
    EXPIRED = "Key expired"
    LIMITED = "Key limited"


@dataclass(frozen=True)
class ValidationResult:
    outcome: ValidationOutcome

    @property
    def accepted(self) -> bool:
        return self.outcome is ValidationOutcome.VALID

    @property
    def message(self) -> str:
        return self.outcome.value


class ValidationService:
    """Service deciding whether a key may be used on a device."""

    @staticmethod
    def classify(
        license_key: LicenseKey,
        hwid: str,
        now: datetime
    ) -> Optional[ValidationOutcome]:
        """
        Derive the outcome from a snapshot of the key row.

        Returns:
            The outcome, or None when the hwid may take a free binding slot
        """
        if license_key.banned:
            return ValidationOutcome.BANNED
        if now > license_key.expires_at:
            return ValidationOutcome.EXPIRED
        if hwid in license_key.hwid:
            return ValidationOutcome.VALID
        if license_key.hwid_count >= license_key.device_limit:
            return ValidationOutcome.LIMITED
        return None

    @staticmethod
    async def _bind(
        db: AsyncSession,
        license_key: LicenseKey,
        hwid: str,
        system_info: Optional[str],
        now: datetime
    ) -> bool:
        """
        Take one binding slot for ``hwid``.

        Returns:
            False when a concurrent request won the slot; the transaction is rolled back
        """
        result = await db.execute(
            update(LicenseKey)
            .where(
                LicenseKey.id == license_key.id,
                LicenseKey.hwid_count < LicenseKey.device_limit,
                LicenseKey.banned == False  # noqa: E712
            )
            .values(
                hwid_count=LicenseKey.hwid_count + 1,
                used=True,
                system_info=system_info,
                first_used=func.coalesce(LicenseKey.first_used, now)
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            return False

        db.add(KeyHwid(key_id=license_key.id, hwid=hwid, bound_at=now))
        try:
            await db.flush()
        except IntegrityError:
            # Same hwid bound concurrently; undo the slot we took
            await db.rollback()
            return False
        return True

    @staticmethod
    async def validate(
        db: AsyncSession,
        api_key: str,
        key: str,
        hwid: str,
        system_info: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ValidationResult:
        """
        Validate a key for a device and bind the device when a slot is free.

        Args:
            db: Database session
            api_key: API key of the application the key belongs to
            key: Key string
            hwid: Hardware id of the calling device
            system_info: Opaque client description, stored on new bindings
            now: Override for the current time

        Returns:
            ValidationResult
        """
        now = now or utcnow()

        if await ApplicationService.get_by_api_key(db, api_key) is None:
            return ValidationResult(ValidationOutcome.INVALID_API)

        for attempt in range(1, MAX_BIND_ATTEMPTS + 1):
            license_key = await KeyService.get_key(db, api_key, key)
            if license_key is None:
                return ValidationResult(ValidationOutcome.INVALID_KEY)

            outcome = ValidationService.classify(license_key, hwid, now)
            if outcome is not None:
                return ValidationResult(outcome)

            if await ValidationService._bind(db, license_key, hwid, system_info, now):
                logger.info(
                    sanitize_log_message(
                        "Device bound to key",
                        Key=key,
                        Hwid=hwid,
                        Attempt=attempt
                    )
                )
                return ValidationResult(ValidationOutcome.VALID)

            logger.info(
                sanitize_log_message(
                    "Concurrent update on key, re-reading",
                    Key=key,
                    Attempt=attempt
                )
            )

        return ValidationResult(ValidationOutcome.LIMITED)
