"""Integration test fixtures for the store, services and HTTP client.

Each test gets its own SQLite file under tmp_path with the schema created from
the SQLModel metadata. Uses polyfactory for type-safe test data generation.
"""

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import SQLModel

from src.shepherd.core.clock import FixedClock
from src.shepherd.core.db import create_engine_for_url, get_session
from src.shepherd.core.notifications import EventDeduplicator, NotificationDispatcher
from src.shepherd.core.shutdown import request_tracker
from src.shepherd.main import create_app
from tests.conftest import RecordingTransport
from tests.helpers import Congregation, Services, build_services, create_congregation

START = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'shepherd.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed SQLite engine with every table in place."""
    test_engine = create_engine_for_url(database_url)
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session for seeding rows and asserting on what was stored.

    Seed helpers commit explicitly. Queries that check state written by a service
    should use ``populate_existing`` so they do not see cached rows.
    """
    async with get_session(engine) as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def dispatcher(transport: RecordingTransport) -> AsyncGenerator[NotificationDispatcher]:
    """Running dispatcher that records deliveries instead of sending them."""
    notification_dispatcher = NotificationDispatcher(
        transport=transport,
        deduplicator=EventDeduplicator(ttl_seconds=3600),
        queue_size=100,
        send_timeout=2.0,
    )
    notification_dispatcher.start()
    yield notification_dispatcher
    await notification_dispatcher.stop(timeout=5.0)


@pytest.fixture
async def service_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session the services under test run in.

    Separate from ``db_session``: a rollback here expires only this session's
    objects, never the seeded principals.
    """
    async with get_session(engine) as session:
        yield session


@pytest.fixture
def services(
    service_session: AsyncSession, dispatcher: NotificationDispatcher, clock: FixedClock
) -> Services:
    return build_services(service_session, dispatcher, clock)


@pytest.fixture
async def congregation(db_session: AsyncSession) -> Congregation:
    """A tenant with an owner, an admin, two staff, a member and a guest."""
    return await create_congregation(db_session, name="Grace Fellowship")


@pytest.fixture
async def other_congregation(db_session: AsyncSession) -> Congregation:
    return await create_congregation(db_session, name="Hope Chapel")


@pytest.fixture
async def client(
    engine: AsyncEngine,
    dispatcher: NotificationDispatcher,
    clock: FixedClock,
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client against the app, sharing the test engine and dispatcher.

    The lifespan does not run under ASGITransport, so the dispatcher fixture
    provides the running worker.
    """
    monkeypatch.setattr("src.shepherd.core.db.engine._engine", engine)
    request_tracker.reset()
    app = create_app(dispatcher=dispatcher, clock=clock)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    request_tracker.reset()
