"""Pytest fixtures and configuration for taskroster tests."""

import itertools
from datetime import datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from taskroster.database.database import Base
from taskroster.database import models  # noqa: F401  (registers tables)
from taskroster.database.repository import TaskRepository
from taskroster.database.user_repository import UserRepository
from taskroster.engine.assignment import AssignmentSynchronizer
from taskroster.models.factory import create_task_base, create_user_base


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

DEFAULT_DEADLINE = datetime(2030, 1, 1, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def user_repository(db_session: Session):
    """Create a UserRepository instance for testing."""
    return UserRepository(db_session)


@pytest.fixture
def synchronizer(user_repository, task_repository):
    return AssignmentSynchronizer(user_repository, task_repository)


@pytest.fixture
def make_task(task_repository):
    """Persist an unassigned task (no pending lists are touched)."""
    def _make(name="Test Task", deadline=DEFAULT_DEADLINE, completed=False, description=""):
        task = create_task_base(name=name, deadline=deadline, description=description, completed=completed)
        return task_repository.create(task)
    return _make


@pytest.fixture
def make_user(user_repository):
    """Persist a user (its pending list is written as given, without syncing tasks)."""
    counter = itertools.count(1)

    def _make(name="Test User", email=None, pending_tasks=None):
        email = email or f"user{next(counter)}@example.com"
        return user_repository.create(create_user_base(name=name, email=email, pending_tasks=pending_tasks))
    return _make


@pytest.fixture
def assert_consistent(user_repository, task_repository):
    """Check that owner pointers and pending lists agree across the whole store."""
    def _check():
        users = {user.id: user for user in user_repository.find()}
        for task in task_repository.find():
            should_be_pending = bool(task.assigned_user) and not task.completed
            for user in users.values():
                listed = task.id in user.pending_tasks
                expected = should_be_pending and user.id == task.assigned_user
                assert listed == expected, (
                    f"task {task.id} (assigned_user={task.assigned_user!r}, completed={task.completed}) "
                    f"listed={listed} in pending tasks of {user.id}"
                )
            if task.assigned_user in users:
                assert task.assigned_user_name == users[task.assigned_user].name
            if not task.assigned_user:
                assert task.assigned_user_name == "unassigned"
    return _check


@pytest.fixture
def test_client(db_session: Session):
    """Create a FastAPI test client with the database dependency overridden."""
    from taskroster.api.app import app
    from taskroster.database.database import get_db

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # The db_session fixture closes the session

    app.dependency_overrides[get_db] = override_get_db

    with patch("taskroster.api.app.init_db"):
        with TestClient(app) as client:
            yield client

    app.dependency_overrides.clear()
