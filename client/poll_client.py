"""Client side of the analysis lifecycle.

The service has no push channel, so after submitting, the client reads the
caller's most recent analysis on a fixed interval until it is terminal or the
attempt budget runs out. Transport errors, error payloads, "no record yet" and
"still processing" are all the same thing here: one attempt used up.
"""
import asyncio
import base64
import logging
from typing import Callable, Optional

import httpx

from domain.schemas import AnalysisResult
from domain.services.normalizer import normalize

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 1.0
DEFAULT_MAX_ATTEMPTS = 120


class SubmitError(Exception):
    pass


class AnalysisTimeout(Exception):
    pass


class PollClient:
    def __init__(
        self,
        base_url: str,
        subject_id: str,
        subject_email: str = "",
        *,
        interval: float = DEFAULT_INTERVAL_S,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.subject_id = subject_id
        self.subject_email = subject_email
        self.interval = interval
        self.max_attempts = max_attempts
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "PollClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict:
        headers = {"x-user-id": self.subject_id}
        if self.subject_email:
            headers["x-user-email"] = self.subject_email
        return headers

    async def submit(self, job_description: str, resume_text: Optional[str] = None,
                     resume_pdf: Optional[bytes] = None,
                     filename: Optional[str] = None) -> str:
        body = {"jobDescription": job_description}
        if resume_pdf is not None:
            body["resumeFile"] = base64.b64encode(resume_pdf).decode("ascii")
            body["resumeFileName"] = filename or "resume.pdf"
        else:
            body["resumeText"] = resume_text or ""

        resp = await self._http.post("/analyze", json=body, headers=self._headers())
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not resp.is_success or not payload.get("success"):
            raise SubmitError(payload.get("error") or f"Upload failed: {resp.status_code}")
        analysis_id = payload.get("analysisId")
        if not analysis_id:
            raise SubmitError("No analysis ID returned from upload")
        return analysis_id

    async def fetch_latest(self) -> Optional[AnalysisResult]:
        resp = await self._http.get("/analyses", headers=self._headers())
        resp.raise_for_status()
        payload = resp.json()
        if not payload.get("success"):
            raise SubmitError(payload.get("error") or "analysis fetch failed")
        if not payload.get("analysis"):
            return None
        return normalize(payload["analysis"])

    async def wait_for_completion(
        self,
        analysis_id: Optional[str] = None,
        on_attempt: Optional[Callable[[int, Optional[AnalysisResult]], None]] = None,
    ) -> AnalysisResult:
        """Poll until the latest analysis is terminal and return it whole.

        When ``analysis_id`` is given, a terminal record with a different id
        (an older submission) does not count.
        """
        for attempt in range(1, self.max_attempts + 1):
            await asyncio.sleep(self.interval)
            try:
                analysis = await self.fetch_latest()
            except (httpx.HTTPError, ValueError, SubmitError) as exc:
                logger.debug("Fetch failed (attempt %d/%d): %s", attempt, self.max_attempts, exc)
                analysis = None

            if on_attempt is not None:
                on_attempt(attempt, analysis)
            if analysis is None:
                continue
            if analysis_id and analysis.id and analysis.id != analysis_id:
                continue
            if analysis.is_complete:
                return analysis
            logger.debug("Current status %r (attempt %d/%d)",
                         analysis.status, attempt, self.max_attempts)

        raise AnalysisTimeout(
            f"Analysis timeout. Processing took longer than "
            f"{self.interval * self.max_attempts:.0f}s. Check back later for the result.")

    async def analyze(self, job_description: str, resume_text: Optional[str] = None,
                      resume_pdf: Optional[bytes] = None, filename: Optional[str] = None,
                      on_attempt=None) -> AnalysisResult:
        analysis_id = await self.submit(job_description, resume_text, resume_pdf, filename)
        return await self.wait_for_completion(analysis_id, on_attempt=on_attempt)
