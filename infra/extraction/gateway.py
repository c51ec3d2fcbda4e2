import asyncio
import logging
import uuid
from typing import Optional, Protocol, Set

import httpx

from app.settings import Settings
from domain.errors import ExtractionTimeout
from infra.pdf.parser import extract_resume_text
from infra.storage.object_store import LocalObjectStore

logger = logging.getLogger(__name__)


def artifact_key(storage_key: str) -> str:
    if storage_key.lower().endswith(".pdf"):
        return storage_key[:-4] + ".txt"
    return storage_key + ".txt"


class ExtractionGateway(Protocol):
    name: str

    async def start_extraction(self, storage_key: str, subject_id: str) -> str: ...

    async def check_extracted(self, storage_key: str) -> Optional[str]: ...


class WorkflowExtractionGateway:
    """Kicks off the extraction flow on the workflow engine.

    The engine writes ``artifact_key(storage_key)`` next to the uploaded PDF
    when it is done. Nothing else is reported back: a missing artifact means
    either "still running" or "failed", and the two cannot be told apart.
    """

    name = "workflow"

    def __init__(self, http: httpx.AsyncClient, settings: Settings, store: LocalObjectStore):
        self._http = http
        self._settings = settings
        self._store = store

    async def start_extraction(self, storage_key: str, subject_id: str) -> str:
        s = self._settings
        resp = await self._http.post(
            f"{s.KESTRA_API_URL.rstrip('/')}/api/v1/executions",
            headers={"Authorization": f"Bearer {s.KESTRA_API_TOKEN}"},
            json={
                "namespace": s.KESTRA_NAMESPACE,
                "flowId": s.KESTRA_FLOW_ID,
                "inputs": {"file_path": storage_key, "user_id": subject_id},
            },
        )
        resp.raise_for_status()
        handle = str(resp.json().get("id") or "")
        logger.info("Extraction flow started: handle=%s key=%s", handle, storage_key)
        return handle

    async def check_extracted(self, storage_key: str) -> Optional[str]:
        key = artifact_key(storage_key)
        base = self._settings.ARTIFACT_BASE_URL
        if not base:
            return self._store.read_text(key) or None
        try:
            resp = await self._http.get(f"{base.rstrip('/')}/{key}")
        except httpx.HTTPError as exc:
            logger.info("Artifact fetch failed for %s: %s", key, exc)
            return None
        if resp.status_code != 200:
            return None
        return resp.text or None


class LocalExtractionGateway:
    """In-process extraction with pdfplumber, for setups without a workflow engine."""

    name = "local"

    def __init__(self, store: LocalObjectStore):
        self._store = store
        self._tasks: Set[asyncio.Task] = set()

    async def start_extraction(self, storage_key: str, subject_id: str) -> str:
        handle = f"local-{uuid.uuid4().hex}"
        task = asyncio.create_task(self._extract(storage_key, handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def _extract(self, storage_key: str, handle: str) -> None:
        try:
            text = await asyncio.to_thread(extract_resume_text, self._store.path(storage_key))
        except Exception:
            logger.exception("Local extraction %s failed for %s", handle, storage_key)
            return
        if not text:
            logger.warning("Local extraction %s found no text in %s", handle, storage_key)
            return
        self._store.put(artifact_key(storage_key), text.encode("utf-8"))
        logger.info("Local extraction %s wrote %d chars", handle, len(text))

    async def check_extracted(self, storage_key: str) -> Optional[str]:
        return self._store.read_text(artifact_key(storage_key)) or None


async def wait_for_text(gateway: ExtractionGateway, storage_key: str, *,
                        max_attempts: int, interval: float) -> str:
    for attempt in range(1, max_attempts + 1):
        await asyncio.sleep(interval)
        text = await gateway.check_extracted(storage_key)
        if text:
            return text
        logger.debug("Extraction not ready for %s (attempt %d/%d)",
                     storage_key, attempt, max_attempts)
    raise ExtractionTimeout(
        f"no extracted text for {storage_key} after {max_attempts} attempts")
