import asyncio
import base64
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app, serve
from client.poll_client import AnalysisTimeout, PollClient
from infra.db.session import create_db_engine
from tests.helpers import gemini_reply, llm_handler

HEADERS = {"x-user-id": "user-1", "x-user-email": "user-1@example.com"}

SCENARIO_A = {
    "toxicityScore": 80,
    "fitScore": 40,
    "redFlags": [{"text": "weekends required", "meaning": "work-life balance risk"}],
    "missingSkills": ["leadership"],
    "summary": "...",
}


@pytest.fixture
def make_client(settings):
    clients = []

    def build(response=lambda: gemini_reply(SCENARIO_A)):
        app_settings = settings.model_copy(update={"EXTRACTION_MAX_ATTEMPTS": 50})
        app = create_app(app_settings, transport=httpx.MockTransport(llm_handler(response)))
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield build
    for client in clients:
        client.__exit__(None, None, None)


def _wait_for_latest(client, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get("/analyses", headers=HEADERS).json()
        if body["analysis"] and predicate(body["analysis"]):
            return body["analysis"]
        time.sleep(0.02)
    raise AssertionError("analysis did not reach the expected state")


def test_scenario_a_end_to_end(make_client):
    client = make_client()
    resp = client.post("/analyze", headers=HEADERS, json={
        "jobDescription": "10x rockstar, weekends required",
        "resumeText": "Experienced engineer",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    analysis_id = body["analysisId"]

    analysis = _wait_for_latest(client, lambda a: a["status"] == "analysis_complete")
    assert analysis["id"] == analysis_id
    assert analysis["toxicityScore"] == 80
    assert analysis["fitScore"] == 40
    assert analysis["redFlags"] == SCENARIO_A["redFlags"]
    assert analysis["missingSkills"] == ["leadership"]
    assert analysis["summary"] == "..."
    assert analysis["extractedText"] == "Experienced engineer"


def test_fallback_when_provider_rate_limited(make_client):
    client = make_client(lambda: httpx.Response(429))
    client.post("/analyze", headers=HEADERS, json={"jobDescription": "JD", "resumeText": "CV"})
    analysis = _wait_for_latest(client, lambda a: a["status"] == "analysis_complete")
    assert analysis["toxicityScore"] == 45
    assert analysis["fitScore"] == 72


def test_submit_requires_principal(make_client):
    resp = make_client().post("/analyze", json={"jobDescription": "JD", "resumeText": "CV"})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.parametrize("body", [
    {"resumeText": "CV"},
    {"jobDescription": "JD"},
    {"jobDescription": "JD", "resumeFile": "***"},
])
def test_submit_rejects_missing_fields(make_client, body):
    resp = make_client().post("/analyze", headers=HEADERS, json=body)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": resp.json()["error"]}


def test_submit_rejects_unparseable_body(make_client):
    resp = make_client().post(
        "/analyze", headers={**HEADERS, "content-type": "application/json"}, content=b"{nope")
    assert resp.status_code == 400


def test_latest_without_records(make_client):
    client = make_client()
    assert client.get("/analyses", headers=HEADERS).json() == {
        "success": True, "analysis": None, "message": "No analyses found"}
    assert client.get("/analyses").status_code == 401


def test_analyze_poll(make_client):
    client = make_client(lambda: httpx.Response(403))
    analysis_id = client.post(
        "/analyze", headers=HEADERS, json={"jobDescription": "JD", "resumeText": "CV"}).json()["analysisId"]

    resp = client.post("/analyze-poll", headers=HEADERS, json={"analysisId": analysis_id})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["analysisData"]["toxicityScore"] == 45

    missing = client.post("/analyze-poll", headers=HEADERS, json={"analysisId": "nope"})
    assert missing.status_code == 404
    assert client.post("/analyze-poll", headers=HEADERS, json={}).status_code == 400


def test_local_extraction_endpoints(make_client, monkeypatch):
    monkeypatch.setattr("infra.extraction.gateway.extract_resume_text", lambda path: "Parsed CV")
    client = make_client()
    store = client.app.state.container.store
    store.put("user-1/cv.pdf", b"%PDF-1.4")

    pending = client.get("/resume-text", params={"file": "user-1/other.pdf"})
    assert pending.status_code == 202
    assert pending.json()["extracted_text"] is None

    started = client.post("/kestra-extract", json={"file_path": "user-1/cv.pdf", "user_id": "user-1"})
    assert started.status_code == 200
    assert started.json()["job_id"].startswith("local-")

    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        ready = client.get("/resume-text", params={"file": "user-1/cv.pdf"})
        if ready.status_code == 200:
            break
        time.sleep(0.02)
    assert ready.json() == {"extracted_text": "Parsed CV", "status": "completed", "file": "user-1/cv.txt"}

    assert client.post("/kestra-extract", json={"file_path": "user-1/x.pdf", "user_id": "u"}).status_code == 404
    assert client.post("/kestra-extract", json={"file_path": "user-1/cv.pdf"}).status_code == 400


def test_document_submission_end_to_end(make_client, monkeypatch):
    monkeypatch.setattr("infra.extraction.gateway.extract_resume_text", lambda path: "Parsed CV")
    client = make_client()
    resp = client.post("/analyze", headers=HEADERS, json={
        "jobDescription": "JD",
        "resumeFile": base64.b64encode(b"%PDF-1.4").decode("ascii"),
        "resumeFileName": "cv.pdf",
    })
    assert resp.status_code == 200
    analysis = _wait_for_latest(client, lambda a: a["status"] == "analysis_complete")
    assert analysis["extractedText"] == "Parsed CV"
    assert analysis["fitScore"] == 40


def test_stuck_extraction_surfaces_as_client_timeout(make_client, monkeypatch):
    def broken(path):
        raise ValueError("not a pdf")

    monkeypatch.setattr("infra.extraction.gateway.extract_resume_text", broken)
    client = make_client()

    def proxy(request: httpx.Request) -> httpx.Response:
        r = client.request(request.method, request.url.path,
                           headers=dict(request.headers), content=request.content)
        return httpx.Response(r.status_code, headers={"content-type": "application/json"}, content=r.content)

    async def go():
        async with PollClient("http://testserver", "user-1", "user-1@example.com",
                              interval=0.05, max_attempts=5,
                              transport=httpx.MockTransport(proxy)) as poller:
            analysis_id = await poller.submit(
                "JD", resume_pdf=b"%PDF-1.4 broken", filename="cv.pdf")
            with pytest.raises(AnalysisTimeout):
                await poller.wait_for_completion(analysis_id)
            return analysis_id

    analysis_id = asyncio.run(go())
    row = client.app.state.container.orchestrator.repo.get(analysis_id)
    assert row["status"] == "processing"
    assert row["resume_text"] == ""


def test_health(make_client):
    assert make_client().get("/health").json() == {
        "status": "ok", "provider": "gemini", "extraction": "local"}


def test_health_reports_database_outage(make_client, monkeypatch, tmp_path):
    client = make_client()
    broken = create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite3'}")
    monkeypatch.setattr(client.app.state.container, "engine", broken)

    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json() == {"success": False, "error": "Database unavailable"}


def test_unknown_route_uses_error_envelope(make_client):
    resp = make_client().get("/no-such-route")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Not Found"}


def test_serve_runs_uvicorn_with_configured_address(monkeypatch):
    calls = []
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setattr("app.main.uvicorn.run", lambda target, **kw: calls.append((target, kw)))

    serve()

    assert calls == [("app.main:app", {"host": "0.0.0.0", "port": 9100, "log_level": "warning"})]
