import asyncio
import json

import httpx
import pytest

from client.poll_client import AnalysisTimeout, PollClient, SubmitError
from client.progress import WORKFLOW_STEPS, progress_index, progress_step


def _record(status, **fields):
    return {"id": "a1", "status": status, "resume_text": "CV", **fields}


def scripted(responses):
    """Serve GET /analyses from ``responses`` in order; the last one repeats."""
    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"success": True, "analysisId": "a1"})
        item = responses[min(len(seen) - 1, len(responses) - 1)]
        if isinstance(item, Exception):
            raise item
        return item

    handler.seen = seen
    return handler


def _poll(handler, max_attempts=5, analysis_id=None):
    async def go():
        async with PollClient("http://api", "u1", "u1@example.com", interval=0,
                              max_attempts=max_attempts,
                              transport=httpx.MockTransport(handler)) as client:
            return await client.wait_for_completion(analysis_id)

    return asyncio.run(go())


def test_waits_through_noise_until_terminal():
    handler = scripted([
        httpx.ConnectError("down"),
        httpx.Response(500),
        httpx.Response(200, json={"success": False, "error": "db"}),
        httpx.Response(200, json={"success": True, "analysis": None}),
        httpx.Response(200, json={"success": True, "analysis": _record("processing")}),
        httpx.Response(200, json={"success": True, "analysis": _record(
            "analysis_complete", red_flags="layoffs", fit_score="61")}),
    ])
    result = _poll(handler, max_attempts=10)
    assert len(handler.seen) == 6
    assert result.fitScore == 61
    assert [f.model_dump() for f in result.redFlags] == [{"text": "layoffs", "meaning": ""}]
    assert result.extractedText == "CV"


def test_legacy_completed_status_is_terminal():
    handler = scripted([httpx.Response(200, json={"success": True, "analysis": _record("completed")})])
    assert _poll(handler).status == "completed"


def test_times_out_after_attempt_budget():
    handler = scripted([httpx.Response(200, json={"success": True, "analysis": _record("processing")})])
    with pytest.raises(AnalysisTimeout):
        _poll(handler, max_attempts=4)
    assert len(handler.seen) == 4


def test_older_terminal_record_is_ignored():
    handler = scripted([
        httpx.Response(200, json={"success": True, "analysis": {**_record("analysis_complete"), "id": "old"}}),
    ])
    with pytest.raises(AnalysisTimeout):
        _poll(handler, max_attempts=3, analysis_id="a1")


def test_submit_sends_headers_and_body():
    captured = {}

    def handler(request):
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "analysisId": "a9"})

    async def go():
        async with PollClient("http://api", "u1", "u1@example.com",
                              transport=httpx.MockTransport(handler)) as client:
            return await client.submit("JD", resume_pdf=b"%PDF", filename="cv.pdf")

    assert asyncio.run(go()) == "a9"
    assert captured["headers"]["x-user-id"] == "u1"
    assert captured["headers"]["x-user-email"] == "u1@example.com"
    assert captured["body"] == {"jobDescription": "JD", "resumeFile": "JVBERg==", "resumeFileName": "cv.pdf"}


def test_submit_error_is_raised():
    def handler(request):
        return httpx.Response(400, json={"success": False, "error": "Job description is required"})

    async def go():
        async with PollClient("http://api", "u1", "e", transport=httpx.MockTransport(handler)) as client:
            await client.submit("", resume_text="CV")

    with pytest.raises(SubmitError, match="Job description is required"):
        asyncio.run(go())


def test_progress_is_time_based_and_capped():
    assert progress_index(0) == 0
    assert progress_index(1.6) == 1
    assert progress_step(3.1).name == "Analyzing Skills Gap"
    assert progress_index(600) == len(WORKFLOW_STEPS) - 1
