import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.engine import Engine

from app.settings import Settings
from domain.services.orchestrator import Orchestrator
from infra.db.session import create_db_engine, create_session_factory, init_db
from infra.extraction.gateway import LocalExtractionGateway, WorkflowExtractionGateway
from infra.llm.providers import get_provider
from infra.repositories.analyses_repository import AnalysesRepository
from infra.storage.object_store import LocalObjectStore

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Everything one process needs, built at startup and torn down at shutdown."""

    settings: Settings
    engine: Engine
    http: httpx.AsyncClient
    store: LocalObjectStore
    orchestrator: Orchestrator

    async def aclose(self) -> None:
        await self.orchestrator.drain(self.settings.SHUTDOWN_GRACE_S)
        await self.http.aclose()
        self.engine.dispose()


def build_container(settings: Settings,
                    transport: Optional[httpx.AsyncBaseTransport] = None) -> Container:
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    repo = AnalysesRepository(create_session_factory(engine))
    store = LocalObjectStore(settings.STORAGE_DIR)
    http = httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_S, transport=transport)

    if settings.workflow_configured:
        gateway = WorkflowExtractionGateway(http, settings, store)
    else:
        logger.warning("Workflow engine not configured, extracting PDFs in-process")
        gateway = LocalExtractionGateway(store)

    provider = get_provider(settings.AI_PROVIDER, settings)
    logger.info("AI provider: %s (%s), extraction: %s", provider.name, provider.model, gateway.name)

    orchestrator = Orchestrator(repo, store, gateway, provider, http, settings)
    return Container(settings=settings, engine=engine, http=http, store=store,
                     orchestrator=orchestrator)
