"""
Pytest configuration and fixtures for Job Manager tests.
"""

import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Point settings at throwaway locations before importing any modules
os.environ['DATABASE_PATH'] = str(Path(tempfile.gettempdir()) / 'test_job_manager.db')
os.environ['BLOB_STORAGE_PATH'] = str(Path(tempfile.gettempdir()) / 'test_job_manager_blobs')


@pytest.fixture(scope="function")
def test_db_path():
    """Create a temporary database path for testing."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup, including WAL files
    for path in (db_path, Path(str(db_path) + '-wal'), Path(str(db_path) + '-shm')):
        if path.exists():
            path.unlink()


@pytest.fixture(scope="function")
def test_db(test_db_path):
    """Create and initialize a test database."""
    from database.connection import init_database

    init_database(test_db_path)

    yield test_db_path


@pytest.fixture(scope="function")
def blob_store(tmp_path):
    """Filesystem blob store rooted in a temporary directory."""
    from storage.blob import FilesystemBlobStore

    return FilesystemBlobStore(tmp_path / "blobs")


@pytest.fixture(scope="function")
def sqlite_queue(test_db):
    """SQLite queue with short timings for tests."""
    from messaging.sqlite_queue import SQLiteQueue

    return SQLiteQueue(
        name="test-notifications",
        db_path=test_db,
        visibility_timeout=30,
        poll_interval=0.01,
        max_receive_count=3,
    )


@pytest.fixture(scope="function")
def application_service(test_db, sqlite_queue, blob_store):
    """Application service wired to the test database, queue and blob store."""
    from services.application_service import ApplicationService

    return ApplicationService(
        queue=sqlite_queue,
        blob_store=blob_store,
        db_path=test_db,
        allowed_extensions={".pdf", ".docx", ".txt"},
    )


@pytest.fixture(scope="function")
def job_service(test_db):
    from services.job_service import JobService

    return JobService(db_path=test_db)


@pytest.fixture(scope="function")
def sample_job(job_service):
    """A stored job to apply to."""
    return job_service.create_job(
        title="Backend Engineer",
        company="Acme",
        description="Build services",
        min_salary=90000,
        max_salary=120000,
    )


def count_rows(db_path, table):
    """Row count of a table, for asserting that nothing was written."""
    from database.connection import get_db_connection

    with get_db_connection(db_path) as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def blob_exists(store, key):
    from exceptions import NotFound

    try:
        store.get(key)
    except NotFound:
        return False
    return True


class FakeQueue:
    """
    In-memory queue double.

    Hands out the configured batches one receive at a time, then behaves
    like an empty long-poll: waits wait_seconds and returns nothing.
    """

    def __init__(self, batches=None, receive_errors=0):
        self.batches = list(batches or [])
        self.receive_errors = receive_errors
        self.receive_calls = 0
        self.sent = []
        self.deleted = []
        self.fail_send = False

    async def send(self, body):
        from exceptions import TransportError

        if self.fail_send:
            raise TransportError("queue unavailable")
        self.sent.append(body)
        return f"msg-{len(self.sent)}"

    async def receive(self, max_messages=10, wait_seconds=20):
        from exceptions import TransportError

        self.receive_calls += 1
        if self.receive_errors:
            self.receive_errors -= 1
            raise TransportError("receive failed")
        if self.batches:
            return self.batches.pop(0)
        await asyncio.sleep(wait_seconds)
        return []

    async def delete(self, receipt_handle):
        self.deleted.append(receipt_handle)
        return True


class RecordingNotifier:
    """Notifier double that records messages and fails on chosen candidates."""

    NAME = "recording"

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.notified = []

    async def notify(self, message):
        if message.candidate_name in self.fail_for:
            raise RuntimeError(f"delivery failed for {message.candidate_name}")
        self.notified.append(message)

    async def close(self):
        pass


@pytest.fixture
def fake_queue():
    return FakeQueue()


@pytest.fixture
def make_message():
    """Factory for ReceivedMessage objects carrying a valid notification body."""
    from messaging.queue import ReceivedMessage
    from models.notification import NotificationMessage

    def _make(index, candidate_name=None, body=None):
        if body is None:
            body = NotificationMessage(
                job_id="job-1",
                application_id=f"app-{index}",
                candidate_name=candidate_name or f"Candidate {index}",
                candidate_email=f"candidate{index}@example.com",
            ).encode()
        return ReceivedMessage(
            message_id=f"queue-{index}",
            body=body,
            receipt_handle=f"handle-{index}",
        )

    return _make


# Markers for test categories
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "slow: marks slow tests")
