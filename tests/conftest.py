import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.db.database import Base, get_db
from app.core.config import settings
from app.api.deps import get_notifier
from app.models import *  # noqa: F401,F403 - register tables


class RecordingNotifier:
    """Captures low stock notifications instead of sending e-mail"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def send_low_stock_alerts(self, items, app_base_url):
        self.calls.append({
            "item_numbers": [item.item_number for item in items],
            "quantities": [item.current_quantity for item in items],
            "base_url": app_base_url,
        })
        if self.fail:
            raise RuntimeError("SMTP server unavailable")


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        settings.TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
async def client(db_session, notifier):
    """HTTP client bound to the app with the test session and notifier."""
    from main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
