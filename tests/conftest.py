"""Shared pytest fixtures for all tests."""
import threading
import pytest
from fairshares.config import MonitorConfig, Settings
from fairshares.core.database import create_db_engine, create_session_factory, init_database


@pytest.fixture
def settings():
    """
    Settings with scheduling shrunk to test scale.

    Ticks never fire on their own unless a test lowers the intervals.
    """
    return Settings(
        DATABASE_URL="sqlite://",
        POOL_NAMES=["flexpool"],
        FETCH_TIMEOUT=0.5,
        WORKER_TICK_INTERVAL=3600,
        BALANCE_TICK_INTERVAL=3600,
        JOB_PACING=0.01,
        WORKER_POOL_SIZE=1,
        SHUTDOWN_TIMEOUT=1.0,
    )


@pytest.fixture
def monitor_config():
    """Monitor config with one rig and Mailjet credentials."""
    return MonitorConfig.model_validate(
        {
            "flexpool": {"address": "0xABC"},
            "mailjet": {"key": "k", "secret": "s", "email": "monitor@example.com"},
            "worker": [
                {"name": "rig1", "notify": "owner@example.com"},
                {"name": "rig2", "notify": "other@example.com"},
            ],
        }
    )


@pytest.fixture
def test_engine(tmp_path):
    """
    Create a SQLite database file for the test.

    All tables are created up front and the engine is disposed afterwards.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'fairshares.db'}")
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
def db_lock():
    return threading.Lock()


@pytest.fixture
def address_repository(session_factory, db_lock):
    from fairshares.repositories.address_repository import AddressRepository

    return AddressRepository(session_factory, db_lock)


@pytest.fixture
def stats_repository(session_factory, db_lock):
    from fairshares.repositories.stats_repository import StatsRepository

    return StatsRepository(session_factory, db_lock)
