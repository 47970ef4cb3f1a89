"""
Shared test fixtures for Cadence tests.
"""
import pytest
from httpx import AsyncClient, ASGITransport

from cadence.container import build_services
from cadence.infrastructure.config import Settings
from cadence.infrastructure.database import close_database, create_tables, init_database
from tests.fakes import (
    NOW,
    FakeAnalyzer,
    FakeGenerator,
    FakeIntelligence,
    FakeJournal,
    FakeMeetings,
    FakeReminders,
)

# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cadence.db'}"


@pytest.fixture
async def database(database_url):
    """Fresh sqlite database with every table created."""
    await init_database(database_url)
    await create_tables()
    yield
    await close_database()


@pytest.fixture
def test_settings(database_url):
    return Settings(
        database_url=database_url,
        scheduler_enabled=False,
        setup_on_startup=False,
        adapter_timeout_seconds=0.5,
        analysis_timeout_seconds=0.5,
    )


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def journal():
    return FakeJournal()


@pytest.fixture
def intelligence():
    return FakeIntelligence()


@pytest.fixture
def reminders():
    return FakeReminders()


@pytest.fixture
def meetings():
    return FakeMeetings()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
async def services(database, test_settings, journal, intelligence, reminders, meetings, generator, analyzer, clock):
    """Full service graph over the test database and in-memory collaborators."""
    built = build_services(
        test_settings,
        journal=journal,
        intelligence=intelligence,
        reminders=reminders,
        meetings=meetings,
        intelligence_generator=generator,
        analyzer=analyzer,
        clock=clock,
    )
    yield built
    await built.reviews.drain()


@pytest.fixture
async def client(services):
    """Async HTTP client for the FastAPI app.

    The lifespan is not run; the test service graph is installed directly.
    """
    from cadence.main import app

    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    del app.state.services
