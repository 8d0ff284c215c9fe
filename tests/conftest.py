"""
Pytest configuration and fixtures.
"""

import sys
from pathlib import Path
import pytest
import pytest_asyncio

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from PySide6.QtCore import QCoreApplication

from app.infra.db import open_database
from app.infra.repository import CompanyRepository, WorkSessionRepository, PomodoroRepository, SettingsRepository


@pytest.fixture
def db_url(tmp_path):
    """URL of a fresh SQLite file for one test"""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture
async def db_engine(db_url):
    """Create an initialized database for testing"""
    engine = await open_database(db_url)
    yield engine
    await engine.close()


@pytest.fixture
def company_repo(db_engine):
    return CompanyRepository(db_engine)


@pytest.fixture
def session_repo(db_engine):
    return WorkSessionRepository(db_engine)


@pytest.fixture
def pomodoro_repo(db_engine):
    return PomodoroRepository(db_engine)


@pytest.fixture
def settings_repo(db_engine):
    return SettingsRepository(db_engine)


@pytest.fixture(scope="session")
def qapp():
    """Qt core application so QTimer objects have an event dispatcher"""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeClock:
    """Manually advanced replacement for time.monotonic"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
