import json
from typing import Callable, Dict, Optional

import httpx

GEMINI_HOST = "generativelanguage.googleapis.com"


def gemini_reply(payload) -> httpx.Response:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def llm_handler(response: Callable[[], httpx.Response]):
    """MockTransport handler answering every LLM call with ``response()``."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.host == GEMINI_HOST:
            return response()
        return httpx.Response(404)

    handler.calls = calls
    return handler


class FakeGateway:
    name = "fake"

    def __init__(self, texts: Optional[Dict[str, str]] = None, default: Optional[str] = None):
        self.texts = dict(texts or {})
        self.default = default
        self.started = []
        self.checks = 0

    async def start_extraction(self, storage_key, subject_id):
        self.started.append((storage_key, subject_id))
        return f"job-{len(self.started)}"

    async def check_extracted(self, storage_key):
        self.checks += 1
        return self.texts.get(storage_key, self.default)
