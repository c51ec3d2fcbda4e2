import httpx
import pytest

from app.settings import Settings
from domain.services.orchestrator import Orchestrator
from infra.db.session import create_db_engine, create_session_factory, init_db
from infra.llm.providers import get_provider
from infra.repositories.analyses_repository import AnalysesRepository
from infra.storage.object_store import LocalObjectStore
from tests.helpers import FakeGateway


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.sqlite3'}",
        STORAGE_DIR=str(tmp_path / "storage"),
        AI_PROVIDER="gemini",
        GEMINI_API_KEY="test-key",
        LLM_MAX_ATTEMPTS=1,
        EXTRACTION_POLL_INTERVAL_S=0.01,
        EXTRACTION_MAX_ATTEMPTS=3,
        SHUTDOWN_GRACE_S=2.0,
    )


@pytest.fixture
def repo(settings) -> AnalysesRepository:
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    yield AnalysesRepository(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def store(settings) -> LocalObjectStore:
    return LocalObjectStore(settings.STORAGE_DIR)


@pytest.fixture
def make_orchestrator(settings, repo, store):
    """Build an orchestrator; call it inside the running loop."""

    def build(handler, gateway=None) -> Orchestrator:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Orchestrator(
            repo, store, gateway or FakeGateway(),
            get_provider(settings.AI_PROVIDER, settings), http, settings)

    return build
