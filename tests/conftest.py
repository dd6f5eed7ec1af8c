import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.database import Base, get_db
from app.core.dispatch_config import DispatchConfig
from app.services.location_tracking import LocationTracker, make_sample_processor
from app.services.websocket_manager import LocationPublisher

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest_asyncio.fixture
async def session_maker():
    """Create test database and tables, yield a session factory."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_maker):
    """Session on the test database."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def config() -> DispatchConfig:
    """Engine registry with default radii, weights and limits."""
    return DispatchConfig()


@pytest.fixture
def publisher() -> LocationPublisher:
    return LocationPublisher()


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, session_maker, config, publisher):
    """Create test client with overridden database, publisher and tracker."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    original_state = (app.state.dispatch_config, app.state.publisher, app.state.tracker)
    tracker = LocationTracker(make_sample_processor(session_maker, config, publisher), config)
    app.state.dispatch_config = config
    app.state.publisher = publisher
    app.state.tracker = tracker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await tracker.shutdown()
    app.state.dispatch_config, app.state.publisher, app.state.tracker = original_state
    app.dependency_overrides.clear()
