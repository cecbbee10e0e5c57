"""Shared pytest fixtures for all tests."""

import sqlite3
import threading
from contextlib import contextmanager
import pytest
from pathlib import Path

from config import Config, get_migrations_dir
from services.base import Services
from tests.helpers import run, run_migrations


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing.

    Yields:
        sqlite3.Connection: Connection to in-memory database.
    """
    # Services run their queries on worker threads
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    yield conn
    conn.close()


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "ledgerly",
        db_data_dir=tmp_path / "ledgerly" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "ledgerly" / "logs",
        llm_enabled=False,
        llm_provider="openai",
        llm_openai_api_key="",
        llm_openai_model="gpt-4o-mini",
        llm_timeout_seconds=0.5,
        llm_batch_timeout_seconds=0.5,
    )


@pytest.fixture
def db_manager_with_schema(test_db):
    """Create a DatabaseManager with schema already set up.

    This fixture provides a DatabaseManager that uses an in-memory database
    with all migrations already applied.

    Args:
        test_db: In-memory database connection fixture.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    run_migrations(test_db, get_migrations_dir())

    class TestDatabaseManager:
        """Test database manager that uses in-memory connection."""

        def __init__(self, conn):
            self.conn = conn
            self.lock = threading.RLock()

        @contextmanager
        def connect(self):
            # Don't close the connection - let the fixture handle it
            with self.lock:
                yield self.conn

        @contextmanager
        def transaction(self):
            with self.lock:
                try:
                    yield self.conn
                    self.conn.commit()
                except Exception:
                    self.conn.rollback()
                    raise

        def get_db_path(self):
            """Return a fake path for the test database."""
            return Path(":memory:")

        def get_migrations_dir(self):
            """Get the migrations directory path."""
            return get_migrations_dir()

    return TestDatabaseManager(test_db)


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(test_config, db_manager=db_manager_with_schema)


@pytest.fixture
def user(services):
    """A user to own categories, rules and transactions."""
    return run(services.users.create("alex@example.com", "Alex"))


@pytest.fixture
def other_user(services):
    """A second user, for ownership and cross-user corpus tests."""
    return run(services.users.create("sam@example.com", "Sam"))


@pytest.fixture
def groceries(services, user):
    return run(services.categories.create(user.id, "Groceries"))


@pytest.fixture
def salary(services, user):
    return run(services.categories.create(user.id, "Salary", is_income=True))
