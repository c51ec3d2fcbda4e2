"""Analysis lifecycle: submit, extract, critique, complete.

A record has two persisted states, ``processing`` and ``analysis_complete``.
The transition happens at most once and only through
``AnalysesRepository.complete``, which is a conditional update; any number of
writers may race for it and the losers just re-read the winner's critique.

A failed run (extraction never finished, provider hard failure) leaves the
record in ``processing``. Nothing retries it and nothing cancels it; the
polling side gives up on its own deadline.
"""
import asyncio
import base64
import binascii
import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Set

import httpx

from app.settings import Settings
from domain.errors import (
    AnalysisError,
    AnalysisNotFound,
    AuthError,
    ProviderUnavailable,
    ValidationError,
)
from domain.schemas import AnalysisResult, AnalyzeRequest, Critique, STATUS_COMPLETE
from domain.services.normalizer import normalize
from infra.extraction.gateway import ExtractionGateway, wait_for_text
from infra.llm.client import CritiqueOutcome, request_critique
from infra.llm.providers import CritiqueProvider
from infra.repositories.analyses_repository import AnalysesRepository
from infra.storage.object_store import LocalObjectStore

logger = logging.getLogger(__name__)

FALLBACK_CRITIQUE = {
    "toxicityScore": 45,
    "redFlags": [
        {"text": "24/7 on-call availability",
         "meaning": "Unreasonable work-life balance expectation"},
        {"text": "Competitive salary with heavy equity",
         "meaning": "Below-market compensation structure"},
    ],
    "fitScore": 72,
    "atsScore": 65,
    "summary": (
        "Experienced professional with strong foundation in required technologies. "
        "Recommend highlighting project achievements and leadership experience when applying."
    ),
    "missingSkills": ["Advanced system design", "Team mentoring experience"],
    "interviewQuestions": [
        {"question": "Walk us through a system you designed end to end.",
         "tip": "Cover the constraints, the trade-offs you made and the outcome."},
        {"question": "Tell us about a time you mentored a teammate.",
         "tip": "Share a concise, outcome-focused answer."},
    ],
}


@dataclass
class AdvanceOutcome:
    status: str  # 'waiting' | 'completed'
    analysis: Optional[AnalysisResult] = None
    message: str = ""


def _require(value: Optional[str], error: AnalysisError) -> str:
    if not value or not value.strip():
        raise error
    return value.strip()


class Orchestrator:
    def __init__(
        self,
        repo: AnalysesRepository,
        store: LocalObjectStore,
        gateway: ExtractionGateway,
        provider: CritiqueProvider,
        http: httpx.AsyncClient,
        settings: Settings,
    ):
        self.repo = repo
        self.store = store
        self.gateway = gateway
        self.provider = provider
        self._http = http
        self._settings = settings
        self._tasks: Set[asyncio.Task] = set()

    # -- submit ---------------------------------------------------------

    async def submit(self, body: AnalyzeRequest, subject_id: Optional[str],
                     subject_email: Optional[str]) -> str:
        job_description = _require(
            body.jobDescription, ValidationError("Job description is required"))
        if not body.resumeFile and not (body.resumeText or "").strip():
            raise ValidationError("Either resumeFile or resumeText is required")
        subject_id = _require(
            subject_id, AuthError("User ID is required. User must be logged in."))
        subject_email = _require(subject_email, ValidationError("User email is required."))

        self.repo.upsert_profile(subject_id, subject_email)

        resume_text = (body.resumeText or "").strip()
        storage_key = None
        if body.resumeFile:
            storage_key = self._store_document(subject_id, body.resumeFile, body.resumeFileName)

        analysis_id = self.repo.create(
            subject_id, job_description, resume_text=resume_text, resume_file_path=storage_key)
        logger.info("Record created: %s (resume_text=%d chars, document=%s)",
                    analysis_id, len(resume_text), storage_key)

        if storage_key and not resume_text:
            try:
                await self.gateway.start_extraction(storage_key, subject_id)
            except httpx.HTTPError as exc:
                # the run below still waits for the artifact and gives up on its own
                logger.warning("Extraction trigger failed for %s: %s", analysis_id, exc)

        self.schedule(analysis_id)
        return analysis_id

    def _store_document(self, subject_id: str, encoded: str, filename: Optional[str]) -> str:
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("resumeFile must be base64 encoded") from exc
        if not data:
            raise ValidationError("resumeFile is empty")
        name = os.path.basename(filename or "") or "resume.pdf"
        key = f"{subject_id}/{int(time.time() * 1000)}-{name.replace(' ', '_')}"
        return self.store.put(key, data)

    # -- pipeline -------------------------------------------------------

    def schedule(self, analysis_id: str) -> asyncio.Task:
        task = asyncio.create_task(self._run_logged(analysis_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_logged(self, analysis_id: str) -> None:
        try:
            await self.run(analysis_id)
        except AnalysisError as exc:
            logger.error("Pipeline for %s stopped, record stays processing: %s", analysis_id, exc)
        except Exception:
            logger.exception("Pipeline for %s crashed, record stays processing", analysis_id)

    async def run(self, analysis_id: str) -> AnalysisResult:
        row = self.repo.get(analysis_id)
        if row is None:
            raise AnalysisNotFound(f"Analysis record not found: {analysis_id}")
        if row["status"] == STATUS_COMPLETE:
            return normalize(row)

        resume_text = row["resume_text"]
        if not resume_text and row["resume_file_path"]:
            resume_text = await self._await_extraction(analysis_id, row["resume_file_path"])

        outcome = await self.critique(row["job_description"], resume_text)
        return self.complete(analysis_id, outcome)

    async def _await_extraction(self, analysis_id: str, storage_key: str) -> str:
        text = await wait_for_text(
            self.gateway,
            storage_key,
            max_attempts=self._settings.EXTRACTION_MAX_ATTEMPTS,
            interval=self._settings.EXTRACTION_POLL_INTERVAL_S,
        )
        return self._store_text(analysis_id, text)

    def _store_text(self, analysis_id: str, text: str) -> str:
        if self.repo.set_resume_text(analysis_id, text):
            logger.info("PDF text extracted for %s (%d chars)", analysis_id, len(text))
            return text
        # already set by a concurrent run; the first value is the one that counts
        row = self.repo.get(analysis_id)
        return row["resume_text"] if row else text

    async def critique(self, job_description: str, resume_text: str) -> CritiqueOutcome:
        try:
            return await request_critique(
                self._http,
                self.provider,
                job_description,
                resume_text,
                timeout=self._settings.LLM_TIMEOUT_S,
                max_attempts=self._settings.LLM_MAX_ATTEMPTS,
            )
        except ProviderUnavailable as exc:
            logger.warning("%s. Using fallback analysis", exc)
            return CritiqueOutcome(
                critique=Critique.model_validate(FALLBACK_CRITIQUE),
                raw=FALLBACK_CRITIQUE,
                source="fallback",
            )

    def complete(self, analysis_id: str, outcome: CritiqueOutcome) -> AnalysisResult:
        if self.repo.complete(analysis_id, outcome.critique, outcome.raw):
            logger.info("Analysis %s complete (source=%s)", analysis_id, outcome.source)
        else:
            logger.info("Analysis %s was already complete, keeping stored critique", analysis_id)
        return normalize(self.repo.get(analysis_id))

    # -- polling side ---------------------------------------------------

    async def advance(self, analysis_id: Optional[str], subject_id: Optional[str]) -> AdvanceOutcome:
        analysis_id = _require(analysis_id, ValidationError("analysisId is required"))
        subject_id = _require(subject_id, AuthError("User ID is required"))
        row = self.repo.get(analysis_id, user_id=subject_id)
        if row is None:
            raise AnalysisNotFound("Analysis record not found")

        if row["status"] == STATUS_COMPLETE:
            return AdvanceOutcome("completed", normalize(row), "Analysis already complete")

        resume_text = row["resume_text"]
        if not resume_text and row["resume_file_path"]:
            text = await self.gateway.check_extracted(row["resume_file_path"])
            if text:
                resume_text = self._store_text(analysis_id, text)
        if not resume_text:
            return AdvanceOutcome(
                "waiting",
                message="Waiting for text extraction from PDF. Check back in a moment.")

        outcome = await self.critique(row["job_description"], resume_text)
        return AdvanceOutcome(
            "completed", self.complete(analysis_id, outcome), "Analysis completed successfully")

    def latest(self, subject_id: Optional[str]) -> Optional[AnalysisResult]:
        subject_id = _require(subject_id, AuthError("User ID is required"))
        row = self.repo.latest_for_user(subject_id)
        return normalize(row) if row else None

    async def drain(self, timeout: float) -> None:
        pending = [t for t in self._tasks if not t.done()]
        if not pending:
            return
        logger.info("Waiting up to %.1fs for %d running analyses", timeout, len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.warning("%d analyses still running at shutdown", len(still_running))
