"""
Pytest configuration and fixtures

Every test gets its own file-backed SQLite database, so concurrent
sessions in one test really race on the same tables.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Must be set before clubcore.core.settings is imported anywhere
_TEST_DIR = tempfile.mkdtemp(prefix="clubcore-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["MAINTENANCE_ENABLED"] = "false"
os.environ["ENV"] = "test"
os.environ.pop("TELEGRAM_BOT_TOKEN", None)

import pytest
import pytest_asyncio

from clubcore.core.database import Base, build_engine, build_session_factory
from clubcore.core.security import Actor, Role
from clubcore.models import Club, ParentConnection, TrainingSession
from clubcore.utils.timezone import FixedClock

# Reference instant used across the suite
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def club(db):
    club = Club(name="Riverside Swimming", sport_type="swimming")
    db.add(club)
    await db.commit()
    return club


@pytest_asyncio.fixture
async def other_club(db):
    club = Club(name="Hilltop Judo", sport_type="judo")
    db.add(club)
    await db.commit()
    return club


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def coach(club):
    return Actor(id="coach-1", role=Role.COACH, club_id=club.id)


@pytest.fixture
def other_coach(other_club):
    return Actor(id="coach-2", role=Role.COACH, club_id=other_club.id)


@pytest.fixture
def athlete(club):
    return Actor(id="athlete-1", role=Role.ATHLETE, club_id=club.id)


@pytest.fixture
def applicant():
    """Athlete without a club yet."""
    return Actor(id="applicant-1", role=Role.ATHLETE)


@pytest.fixture
def parent(club):
    return Actor(id="parent-1", role=Role.PARENT, club_id=club.id)


async def make_session(db, club, start_at, cancelled=False):
    from clubcore.models import TrainingSessionStatus

    session = TrainingSession(
        club_id=club.id,
        title="Morning practice",
        start_at=start_at,
        status=TrainingSessionStatus.CANCELLED if cancelled else TrainingSessionStatus.SCHEDULED,
        coach_id="coach-1",
    )
    db.add(session)
    await db.commit()
    return session


async def link_parent(db, parent, athlete, verified=True, active=True):
    connection = ParentConnection(
        parent_user_id=parent.id,
        athlete_id=athlete.id,
        is_verified=verified,
        is_active=active,
    )
    db.add(connection)
    await db.commit()
    return connection


@pytest_asyncio.fixture
async def upcoming_session(db, club):
    """Session three days after NOW."""
    return await make_session(db, club, NOW + timedelta(days=3))


@pytest_asyncio.fixture
async def session_now(db, club):
    """Session starting exactly at NOW."""
    return await make_session(db, club, NOW)


PERSONAL_INFO = {
    "full_name": "Mai Tran",
    "phone_number": "081-234-5678",
    "address": "12 River Road",
}

DOCUMENTS = [{"type": "id_card", "url": "https://files.example.com/id.png"}]
