"""Pytest fixtures for the user limit service.

Provides reusable test fixtures for:
- In-memory SQLite engine and session factory with all tables created
- A frozen clock for deterministic scheduling
- A UserLimitPlugin wired to the test database and an unstarted scheduler
- A helper to insert users with explicit registration times
- A FastAPI TestClient with the admin token pre-configured

Usage:
    def test_run(plugin, add_users):
        add_users("2023-01-01", "2023-02-01")
        assert plugin.run_now().deleted_count == 0
"""

import os

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from user_limit.config import get_settings
from user_limit.models.base import Base
from user_limit.models.user import User
from user_limit.retention.plugin import UserLimitPlugin


ADMIN_TOKEN = os.environ["ADMIN_API_TOKEN"]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database shared across threads for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: Engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def plugin(session_factory, engine, clock) -> Generator[UserLimitPlugin, None, None]:
    """Plugin with an unstarted scheduler; jobs stay pending and never fire."""
    test_plugin = UserLimitPlugin(
        session_factory=session_factory,
        engine=engine,
        settings=get_settings(),
        scheduler=BackgroundScheduler(timezone="UTC"),
        clock=clock,
    )
    try:
        yield test_plugin
    finally:
        test_plugin.on_shutdown()


@pytest.fixture(scope="function")
def add_users(session_factory) -> Callable[..., List[int]]:
    """Insert users registered at the given ISO dates, returning their ids."""

    def _add(*registered: str) -> List[int]:
        session = session_factory()
        try:
            users = [
                User(
                    user_login=f"user{index}",
                    user_email=f"user{index}@example.com",
                    registered_at=datetime.fromisoformat(value),
                )
                for index, value in enumerate(registered)
            ]
            session.add_all(users)
            session.commit()
            return [user.id for user in users]
        finally:
            session.close()

    return _add


@pytest.fixture(scope="function")
def remaining_ids(session_factory) -> Callable[[], set]:
    """Return the ids currently in the users table."""

    def _ids() -> set:
        session = session_factory()
        try:
            return set(session.execute(select(User.id)).scalars().all())
        finally:
            session.close()

    return _ids


@pytest.fixture(scope="function")
def client(plugin: UserLimitPlugin) -> Generator[TestClient, None, None]:
    """TestClient authenticated with the admin token.

    The application uses the test plugin and does not start the timer thread.
    """
    from user_limit.main import create_app

    app = create_app(plugin_factory=lambda: plugin, start_scheduler=False)

    with TestClient(app) as test_client:
        test_client.headers.update({"Authorization": f"Bearer {ADMIN_TOKEN}"})
        yield test_client
