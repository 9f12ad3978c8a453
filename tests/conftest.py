"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own SQLite file so concurrent sessions really contend
for the same database.
"""

from datetime import date, time, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from eventzon.config import get_settings
from eventzon.database import create_database_engine, create_session_factory, get_db
from eventzon.main import app
from eventzon.models import Base, Event, User, UserRole
from eventzon.schemas.booking import AttendeeInfo
from eventzon.utils.auth import create_access_token


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """File-backed SQLite engine with all tables created."""
    test_engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'eventzon.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    """Record queued notifications instead of reaching the Celery broker."""
    queued = []

    def record(kind: str, booking_id: str) -> None:
        queued.append((kind, booking_id))

    monkeypatch.setattr("eventzon.tasks.notification_tasks.queue_notification", record)
    return queued


@pytest.fixture
def settings(monkeypatch):
    """Settings with test-friendly defaults. Services read them at construction."""
    current = get_settings()
    monkeypatch.setattr(current, "checkin_date_policy", "any")
    monkeypatch.setattr(current, "smtp_server", None)
    return current


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def persist(session_factory, obj):
    """Save a row in its own session so test-session rollbacks never expire it."""
    async with session_factory() as session:
        session.add(obj)
        await session.commit()
        await session.refresh(obj)
    return obj


async def reload(session_factory, model, obj_id):
    """Fresh copy of a row, read in a new session."""
    async with session_factory() as session:
        return await session.get(model, obj_id)


@pytest_asyncio.fixture
async def test_user(session_factory) -> User:
    """Create a test user in the database."""
    return await persist(session_factory, User(
        email="awa.ngono@example.cm",
        first_name="Awa",
        last_name="Ngono",
    ))


@pytest_asyncio.fixture
async def admin_user(session_factory) -> User:
    return await persist(session_factory, User(
        email="admin@eventzon.cm",
        first_name="Paul",
        last_name="Mbarga",
        role=UserRole.ADMIN,
    ))


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(test_user.id)})}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(admin_user.id)})}"}


@pytest.fixture
def attendee() -> AttendeeInfo:
    return AttendeeInfo(name="Awa Ngono", email="awa.ngono@example.cm", phone="+237 6 99 00 11 22")


def make_event(**overrides) -> Event:
    """Unsaved event with sensible defaults."""
    values = dict(
        title="Makossa Night",
        description="Live makossa and bikutsi",
        category="Concert",
        venue="Palais des Sports",
        address="Boulevard du 20 Mai",
        city="Yaoundé",
        region="Centre",
        event_date=date.today() + timedelta(days=30),
        start_time=time(19, 30),
        end_time=time(23, 0),
        price=Decimal("1500.00"),
        max_attendees=100,
        available_tickets=100,
    )
    values.update(overrides)
    return Event(**values)


@pytest_asyncio.fixture
async def test_event(session_factory) -> Event:
    """Create a test event with 100 tickets."""
    return await persist(session_factory, make_event())


@pytest_asyncio.fixture
async def small_event(session_factory) -> Event:
    """Create a test event with only 2 tickets."""
    return await persist(session_factory, make_event(
        title="Concert Intime",
        description="Soirée acoustique",
        venue="Institut Français",
        city="Douala",
        region="Littoral",
        max_attendees=2,
        available_tickets=2,
    ))
