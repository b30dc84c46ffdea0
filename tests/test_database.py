"""
Tests for the store handle: connection lifecycle, retries and unavailability.
"""
import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from keyauth.config import Settings
from keyauth.core.exceptions import StoreUnavailableException
from keyauth.database import Database, is_transient_error


def unreachable_settings(tmp_path) -> Settings:
    # The database "directory" is a regular file, so the store can never be opened
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{blocker / 'keyauth.db'}",
        LOG_TO_FILE=False,
        DB_RETRY_ATTEMPTS=2,
        DB_RETRY_BACKOFF=0.01,
    )


class TestTransientErrors:
    """Tests for retry classification."""

    def test_operational_error_is_transient(self):
        """OperationalError should be retried."""
        assert is_transient_error(OperationalError("SELECT 1", {}, Exception("database is locked")))

    def test_timeout_is_transient(self):
        """Timeouts should be retried."""
        assert is_transient_error(TimeoutError())

    def test_integrity_error_is_not_transient(self):
        """IntegrityError should not be retried."""
        assert not is_transient_error(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))

    def test_value_error_is_not_transient(self):
        """Application errors should not be retried."""
        assert not is_transient_error(ValueError("bad"))


class TestDatabaseLifecycle:
    """Tests for connect and dispose."""

    @pytest.mark.asyncio
    async def test_connect_initializes(self, database):
        """Connected handle should report connected and initialized."""
        assert database.connected is True
        assert database.initialized is True

    @pytest.mark.asyncio
    async def test_dispose_disconnects(self, test_settings):
        """Dispose should drop the engine."""
        database = Database(test_settings)
        await database.connect()

        await database.dispose()

        assert database.connected is False
        assert database.engine is None

    @pytest.mark.asyncio
    async def test_connect_twice_keeps_single_admin_grant(self, test_settings):
        """Reconnecting should not seed the main admin twice."""
        database = Database(test_settings)
        await database.connect()
        await database.dispose()
        await database.connect()

        async def count_supports(session):
            result = await session.execute(text("SELECT COUNT(*) FROM supports"))
            return result.scalar_one()

        assert await database.run(count_supports) == 1
        await database.dispose()

    @pytest.mark.asyncio
    async def test_connect_fails_when_unreachable(self, tmp_path):
        """Connect should return False when the store cannot be opened."""
        database = Database(unreachable_settings(tmp_path))

        assert await database.connect() is False
        assert database.connected is False


class TestDatabaseRun:
    """Tests for unit-of-work retries."""

    @pytest.mark.asyncio
    async def test_run_commits_result(self, database):
        """Run should return the operation result."""
        async def select_one(session):
            result = await session.execute(text("SELECT 1"))
            return result.scalar_one()

        assert await database.run(select_one) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, database):
        """A transient failure should be retried until it succeeds."""
        calls = []

        async def flaky(session):
            calls.append(1)
            if len(calls) < 2:
                raise OperationalError("UPDATE keys", {}, Exception("database is locked"))
            return "done"

        assert await database.run(flaky) == "done"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_503(self, database):
        """Exhausted retries should raise a 503."""
        calls = []

        async def always_down(session):
            calls.append(1)
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(StoreUnavailableException) as exc_info:
            await database.run(always_down)

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == "Database connection failed"
        assert len(calls) == database.retry_attempts

    @pytest.mark.asyncio
    async def test_non_transient_error_propagates_immediately(self, database):
        """Non-transient errors should propagate without a retry."""
        calls = []

        async def broken(session):
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await database.run(broken)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_run_on_unreachable_store_raises_503(self, tmp_path):
        """Run should raise a 503 when the store cannot be reached."""
        database = Database(unreachable_settings(tmp_path))

        async def never_called(session):
            raise AssertionError("operation must not run")

        with pytest.raises(StoreUnavailableException):
            await database.run(never_called)
