"""
Tests for concurrent validation against the device limit.
"""
import asyncio
import pytest
from sqlalchemy import select, func
from keyauth.models.key import KeyHwid
from keyauth.services.key_service import KeyService
from keyauth.services.validation_service import ValidationOutcome, ValidationService


class TestConcurrentValidation:
    """Simultaneous validations never bind more devices than the limit allows."""

    @pytest.mark.asyncio
    async def test_distinct_devices_respect_limit(self, database, application):
        """Concurrent validations from different devices should bind at most device_limit devices."""
        license_key = await database.run(KeyService.create_key, application.api_key, "RACE", 30, 2)

        results = await asyncio.gather(*[
            database.run(ValidationService.validate, application.api_key, license_key.key, f"HWID-{i}")
            for i in range(6)
        ])

        outcomes = [r.outcome for r in results]
        assert outcomes.count(ValidationOutcome.VALID) == 2
        assert outcomes.count(ValidationOutcome.LIMITED) == 4

        stored = await database.run(KeyService.get_key, application.api_key, license_key.key)
        assert stored.hwid_count == 2
        assert len(stored.hwid) == 2

    @pytest.mark.asyncio
    async def test_same_device_bound_once(self, database, application, db_session):
        """Concurrent validations from one device should bind it exactly once."""
        license_key = await database.run(KeyService.create_key, application.api_key, "RACE", 30, 3)

        results = await asyncio.gather(*[
            database.run(ValidationService.validate, application.api_key, license_key.key, "HWID-SAME")
            for _ in range(5)
        ])

        assert all(r.outcome is ValidationOutcome.VALID for r in results)

        rows = await db_session.execute(
            select(func.count(KeyHwid.id)).where(KeyHwid.key_id == license_key.id)
        )
        assert rows.scalar_one() == 1

        stored = await database.run(KeyService.get_key, application.api_key, license_key.key)
        assert stored.hwid == ["HWID-SAME"]
        assert stored.hwid_count == 1
