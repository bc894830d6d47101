# dailyout/conftest.py
import random
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert

from dailyout.core.clock import FrozenClock
from dailyout.core.config import Settings
from dailyout.core.container import build_services
from dailyout.core.database import Database, daily_assignments
from dailyout.core.metrics import METRICS
from dailyout.features.catalog.service import challenge_id_for_slug
from dailyout.realtime.hub import RecordingEmitter

# Monday noon UTC; far enough from midnight that small clock moves stay on the same day
FROZEN_NOW = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENV="test",
        DATABASE_URL=f"sqlite:///{tmp_path / 'dailyout-test.db'}",
        TEST_DATABASE_URL=None,
        DAY_TIMEZONE="UTC",
        JWT_SECRET="test-secret-with-enough-bytes-for-hs256",
        ASSIGNMENT_RANDOM_SEED=1234,
        _env_file=None,
    )


@pytest.fixture
def db(settings):
    """
    Temp-file SQLite database with foreign keys enforced.

    File-based (not :memory:) so worker threads in concurrency tests share it.
    """
    database = Database(settings.effective_database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def services(settings, db, clock, rng, emitter):
    """Same wiring as production, with the test doubles swapped in."""
    built = build_services(settings, database=db, clock=clock, rng=rng, emitter=emitter, bcrypt_rounds=4)
    built.catalog.seed()
    return built


@pytest.fixture
def make_user(services):
    def _make(user_id=None):
        return services.users.get_or_create_user(user_id or str(uuid.uuid4())).id

    return _make


@pytest.fixture
def user_id(make_user):
    return make_user()


@pytest.fixture
def record_day(services):
    """
    Write a historical assignment row directly.

    status: "pending" | "completed" | "skipped"; `at` defaults to noon UTC of `day`.
    """
    def _record(user_id, day, status="completed", *, slug="rate-your-day", at=None, note=None):
        moment = at or datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)
        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "challenge_id": challenge_id_for_slug(slug),
            "assigned_date": day,
            "completed_at": moment if status == "completed" else None,
            "skipped_at": moment if status == "skipped" else None,
            "note": note,
        }
        with services.db.session() as session:
            session.execute(insert(daily_assignments).values(**values))
        return values["id"]

    return _record


@pytest.fixture
def client(services):
    from dailyout.main import create_app

    app = create_app(services=services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anon_headers():
    return {"X-Anon-Id": str(uuid.uuid4())}


@pytest.fixture(autouse=True)
def reset_metrics():
    METRICS.reset()
    yield
