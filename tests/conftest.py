"""
Pytest configuration and fixtures for Excel data intake tests.
"""

import io
import os
from datetime import datetime, timedelta

# Keep test runs from writing api.log / cli.log into the working tree
os.environ.setdefault('LOG_FILE', '')

import openpyxl
import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.config import Settings
from api.main import create_app
from backend.models.schema import Base
from services.backup_service import BackupManager
from services.entry_store import EntryStore
from services.ingestion_service import IngestionService

# Load environment
load_dotenv()

# Test database URL (in-memory SQLite unless overridden)
TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'sqlite://')


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    """Create test database engine."""
    if TEST_DATABASE_URL.startswith('sqlite'):
        eng = create_engine(
            TEST_DATABASE_URL,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
    else:
        eng = create_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 15, 12, 0, 0))


@pytest.fixture
def store(session_factory, clock):
    return EntryStore(session_factory, clock=clock)


@pytest.fixture
def ingestion(store):
    return IngestionService(store)


@pytest.fixture
def backup_manager(store, clock, tmp_path):
    return BackupManager(store, backup_dir=tmp_path / 'backups', clock=clock)


@pytest.fixture
def settings(tmp_path):
    """API settings pointing at an in-memory database and a temp backup dir."""
    return Settings(
        DATABASE_URL='sqlite://',
        LOG_FILE='',
        BACKUP_DIR=str(tmp_path / 'backups'),
        BACKUP_SCHEDULER='off',
        ENABLE_API_KEY_AUTH=False
    )


@pytest.fixture
def client(settings):
    """TestClient with the lifespan running."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def make_xlsx(rows, title='Sheet1') -> bytes:
    """Build an .xlsx workbook from a list of row lists."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def read_xlsx(content: bytes):
    """Read the first sheet of an .xlsx workbook back as a list of tuples."""
    workbook = openpyxl.load_workbook(io.BytesIO(content))
    return [tuple(row) for row in workbook.active.iter_rows(values_only=True)]


@pytest.fixture
def sample_xlsx():
    return make_xlsx([
        ['Region', 'Total', 'Owner'],
        ['North', 120, 'Ana'],
        ['South', 95.5, None],
    ])


@pytest.fixture
def xlsx_factory():
    return make_xlsx


@pytest.fixture
def xlsx_reader():
    return read_xlsx
