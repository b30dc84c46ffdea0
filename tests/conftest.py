import pytest
from typing import AsyncGenerator, Generator
from sqlalchemy.ext.asyncio import AsyncSession
from keyauth.config import Settings, settings
from keyauth.database import Database
from keyauth.models.application import Application
from keyauth.services.application_service import ApplicationService

OWNER_ID = "owner_1"


@pytest.fixture(scope="function")
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'keyauth_test.db'}",
        LOG_TO_FILE=False,
        DB_CONNECT_TIMEOUT=10,
        DB_RETRY_ATTEMPTS=3,
        DB_RETRY_BACKOFF=0.01,
    )


@pytest.fixture(scope="function")
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    """Connected store handle with tables created and the main admin seeded."""
    db = Database(test_settings)
    assert await db.connect()
    yield db
    await db.dispose()


@pytest.fixture(scope="function")
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with database.sessionmaker() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
async def application(database: Database) -> Application:
    """Committed application owned by OWNER_ID."""
    return await database.run(ApplicationService.create_application, "Test App", OWNER_ID)


@pytest.fixture(scope="function")
def admin_id() -> str:
    return settings.MAIN_ADMIN_ID


@pytest.fixture(scope="function")
def client(test_settings: Settings) -> Generator:
    """Sync test client; the store is connected by the application lifespan."""
    from fastapi.testclient import TestClient
    from keyauth.main import create_app

    app = create_app(database=Database(test_settings), configure_logging=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def async_client(database: Database) -> AsyncGenerator:
    """Async test client sharing the connected test store."""
    from httpx import AsyncClient, ASGITransport
    from keyauth.main import create_app

    app = create_app(database=database, configure_logging=False)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
