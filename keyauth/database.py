import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import event, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from keyauth.config import Settings, settings as default_settings
from keyauth.core.exceptions import StoreUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_transient_error(exc: BaseException) -> bool:
    """True for connectivity failures worth retrying (lost connection, lock timeout, network)."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OperationalError, InterfaceError, asyncio.TimeoutError, OSError))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Store handle owned by the process entry point.

    The handle is constructed unconnected; ``connect()`` opens the engine (with retries),
    creates tables and seeds the main admin grant, ``dispose()`` releases the pool.
    Every unit of work goes through ``run()``, which applies the per-operation timeout and
    retries transient connectivity failures with exponential backoff.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.url = self.settings.DATABASE_URL
        self.retry_attempts = max(1, self.settings.DB_RETRY_ATTEMPTS)
        self.retry_backoff = self.settings.DB_RETRY_BACKOFF
        self.operation_timeout = self.settings.DB_OPERATION_TIMEOUT

        self.engine: Optional[AsyncEngine] = None
        self.sessionmaker: Optional[async_sessionmaker] = None
        self.connected = False
        self.initialized = False

    def _create_engine(self) -> AsyncEngine:
        url = make_url(self.url)
        if url.get_backend_name() == "sqlite":
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            # SQLite doesn't support connection pooling the same way
            engine = create_async_engine(
                self.url,
                echo=False,
                poolclass=NullPool,
                connect_args={
                    "check_same_thread": False,
                    "timeout": self.settings.DB_CONNECT_TIMEOUT,
                },
            )
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
            return engine

        # PostgreSQL with connection pooling
        return create_async_engine(
            self.url,
            echo=False,
            pool_size=self.settings.DB_POOL_SIZE,
            max_overflow=self.settings.DB_MAX_OVERFLOW,
            pool_timeout=self.settings.DB_POOL_TIMEOUT,
            pool_recycle=self.settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
            connect_args={"timeout": self.settings.DB_CONNECT_TIMEOUT},
        )

    async def connect(self) -> bool:
        """
        Open the engine and initialize tables, retrying transient failures.

        Returns:
            True when the store is ready, False when every attempt failed
        """
        self.initialized = True

        for attempt in range(1, self.retry_attempts + 1):
            try:
                logger.info(f"Database connection attempt {attempt}/{self.retry_attempts}")
                if self.engine is None:
                    self.engine = self._create_engine()
                    self.sessionmaker = async_sessionmaker(
                        self.engine,
                        class_=AsyncSession,
                        expire_on_commit=False,
                        autoflush=False,
                    )

                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))

                if self.settings.DB_CREATE_TABLES:
                    await self.init_tables()

                self.connected = True
                logger.info("Database fully initialized")
                return True
            except Exception as e:
                if not is_transient_error(e):
                    raise
                logger.error(f"Database attempt {attempt} failed: {e}")
                await self.dispose()
                if attempt < self.retry_attempts:
                    await asyncio.sleep(self.retry_backoff * (2 ** (attempt - 1)))

        logger.error("All database connection attempts failed")
        return False

    async def init_tables(self) -> None:
        """Create missing tables and make sure the main admin has a support grant."""
        # Register every model on the metadata
        from keyauth.models import Support

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        admin_id = self.settings.MAIN_ADMIN_ID
        async with self.sessionmaker() as session:
            result = await session.execute(select(Support).where(Support.user_id == admin_id))
            if result.scalar_one_or_none() is None:
                session.add(Support(user_id=admin_id, added_by="system"))
                try:
                    await session.commit()
                except IntegrityError:
                    # Another worker seeded the row first
                    await session.rollback()
        logger.info("Database tables initialized")

    async def dispose(self) -> None:
        """Close database connections."""
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.sessionmaker = None
        self.connected = False

    async def _run_once(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any
    ) -> T:
        async with self.sessionmaker() as session:
            try:
                result = await operation(session, *args, **kwargs)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise

    async def run(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any
    ) -> T:
        """
        Run ``operation(session, *args, **kwargs)`` as one committed unit of work.

        Transient failures roll the transaction back and the whole operation is attempted
        again after a backoff. Anything else propagates unchanged.

        Raises:
            StoreUnavailableException: store unreachable after every attempt
        """
        if not self.connected and not await self.connect():
            raise StoreUnavailableException()

        last_error: Optional[BaseException] = None
        for attempt in range(self.retry_attempts):
            try:
                return await asyncio.wait_for(
                    self._run_once(operation, *args, **kwargs),
                    timeout=self.operation_timeout,
                )
            except Exception as e:
                if not is_transient_error(e):
                    raise
                last_error = e
                logger.warning(
                    f"Transient database error on attempt {attempt + 1}/{self.retry_attempts}: "
                    f"{type(e).__name__}: {e}"
                )
                if attempt < self.retry_attempts - 1:
                    await asyncio.sleep(self.retry_backoff * (2 ** attempt))

        logger.error(f"Database unavailable after {self.retry_attempts} attempts")
        raise StoreUnavailableException() from last_error
