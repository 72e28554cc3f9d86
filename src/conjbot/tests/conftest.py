"""Test configuration."""
import os
from pathlib import Path
from typing import Callable, Generator, List

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy.orm import Session

from conjbot.config import ensure_directories
from conjbot.models.base import Base, SessionLocal, engine, init_db
from conjbot.services.timer import ScheduledTask, Scheduler


class FakeTask(ScheduledTask):
    """Task that only runs when the test fires it."""

    def __init__(self, delay: float, callback: Callable[[], bool]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> bool:
        assert not self.cancelled, "a cancelled task must not fire"
        return self.callback()


class FakeScheduler(Scheduler):
    """Records scheduled callbacks instead of running them."""

    def __init__(self):
        self.tasks: List[FakeTask] = []

    def schedule(self, delay: float, callback: Callable[[], bool]) -> FakeTask:
        task = FakeTask(delay, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> List[FakeTask]:
        return [task for task in self.tasks if not task.cancelled]


@pytest.fixture(autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Set up test environment before each test."""
    ensure_directories()
    init_db()

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def scheduler() -> FakeScheduler:
    """Scheduler whose callbacks are fired by hand."""
    return FakeScheduler()
