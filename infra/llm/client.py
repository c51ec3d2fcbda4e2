import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict

import httpx

from domain.errors import MalformedProviderOutput, ProviderHardFailure, ProviderUnavailable
from domain.schemas import Critique
from domain.services.normalizer import normalize
from infra.llm.prompts import build_critique_prompt
from infra.llm.providers import CritiqueProvider

logger = logging.getLogger(__name__)

# Statuses that mean "this backend will not serve us right now" (bad key,
# quota, rate limit). Anything else that is not a 2xx is a hard failure.
UNAVAILABLE_STATUSES = frozenset({400, 403, 429})

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.S | re.I)


@dataclass
class CritiqueOutcome:
    critique: Critique
    raw: Any
    source: str


def stub_critique() -> Critique:
    return Critique(summary="Analysis completed")


async def _post_with_retries(
    http: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    payload: Dict,
    *,
    timeout: float = 30.0,
    max_attempts: int = 3,
) -> httpx.Response:
    backoff = 1.0
    for attempt in range(1, max_attempts + 1):
        try:
            return await http.post(url, headers=headers, json=payload, timeout=timeout)
        except httpx.RequestError:
            if attempt == max_attempts:
                raise
        await asyncio.sleep(backoff)
        backoff *= 2
    raise RuntimeError("Unexpected retry exhaustion")


def parse_critique(text: Any) -> Dict[str, Any]:
    if not isinstance(text, str):
        raise MalformedProviderOutput("LLM response text was not a string")
    match = _FENCE.match(text)
    body = match.group(1) if match else text
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise MalformedProviderOutput("LLM response was not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedProviderOutput("LLM response was not a JSON object")
    return data


def critique_from_payload(data: Dict[str, Any]) -> Critique:
    result = normalize(data)
    return Critique(
        toxicityScore=result.toxicityScore,
        fitScore=result.fitScore,
        atsScore=result.atsScore,
        redFlags=result.redFlags,
        missingSkills=result.missingSkills,
        summary=result.summary,
        interviewQuestions=result.interviewQuestions,
    )


async def request_critique(
    http: httpx.AsyncClient,
    provider: CritiqueProvider,
    job_description: str,
    resume_text: str,
    *,
    timeout: float = 30.0,
    max_attempts: int = 3,
) -> CritiqueOutcome:
    """Ask one provider for a critique.

    Raises ``ProviderUnavailable`` for the fallback statuses and
    ``ProviderHardFailure`` for everything else that prevents an answer. A
    provider that answers with unparseable text yields the stub critique.
    """
    label = provider.name.upper()
    if not provider.api_key:
        raise ProviderHardFailure(f"{label}_API_KEY not configured")

    url, headers, payload = provider.build_request(
        build_critique_prompt(job_description, resume_text))
    logger.info("Calling %s (%s)", label, provider.model)
    try:
        resp = await _post_with_retries(
            http, url, headers, payload, timeout=timeout, max_attempts=max_attempts)
    except httpx.RequestError as exc:
        raise ProviderHardFailure(f"{label} API unreachable: {exc}") from exc

    logger.info("%s response status: %s", label, resp.status_code)
    if resp.status_code in UNAVAILABLE_STATUSES:
        logger.warning("%s unavailable (%s): %s", label, resp.status_code, resp.text[:500])
        raise ProviderUnavailable(provider.name, resp.status_code)
    if not resp.is_success:
        raise ProviderHardFailure(f"{label} API failed: {resp.status_code}")

    try:
        text = provider.extract_text(resp.json())
    except (ValueError, RecursionError):
        text = resp.text
    try:
        data = parse_critique(text)
    except MalformedProviderOutput as exc:
        logger.warning("%s: %s, using stub critique", label, exc)
        return CritiqueOutcome(critique=stub_critique(), raw=text, source="stub")
    return CritiqueOutcome(critique=critique_from_payload(data), raw=data, source=provider.name)
