from typing import Any, Dict, Optional, Tuple, Type

from app.settings import Settings

Request = Tuple[str, Dict[str, str], Dict[str, Any]]


class CritiqueProvider:
    """One LLM backend. Builds the HTTP request for a prompt and pulls the
    completion text out of the backend's response body."""

    name = ""

    def __init__(self, api_key: Optional[str], model: str):
        self.api_key = api_key
        self.model = model

    def build_request(self, prompt: str) -> Request:
        raise NotImplementedError

    def extract_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class _ChatCompletionsProvider(CritiqueProvider):
    url = ""

    def build_request(self, prompt: str) -> Request:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.7,
            "max_tokens": 1000,
        }
        return self.url, headers, payload

    def extract_text(self, data: Dict[str, Any]) -> str:
        try:
            return data["choices"][0]["message"]["content"] or "{}"
        except (KeyError, IndexError, TypeError):
            return "{}"


class OpenAIProvider(_ChatCompletionsProvider):
    name = "openai"
    url = "https://api.openai.com/v1/chat/completions"


class GroqProvider(_ChatCompletionsProvider):
    name = "groq"
    url = "https://api.groq.com/openai/v1/chat/completions"


class GeminiProvider(CritiqueProvider):
    name = "gemini"

    def build_request(self, prompt: str) -> Request:
        url = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{self.model}:generateContent"
        )
        headers = {"x-goog-api-key": self.api_key or ""}
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        return url, headers, payload

    def extract_text(self, data: Dict[str, Any]) -> str:
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"] or "{}"
        except (KeyError, IndexError, TypeError):
            return "{}"


PROVIDERS: Dict[str, Type[CritiqueProvider]] = {
    GeminiProvider.name: GeminiProvider,
    GroqProvider.name: GroqProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def get_provider(name: str, settings: Settings) -> CritiqueProvider:
    key = (name or "").strip().lower()
    cls = PROVIDERS.get(key)
    if cls is None:
        raise ValueError(f"Unsupported AI_PROVIDER='{name}'")
    api_key = getattr(settings, f"{key.upper()}_API_KEY", None)
    model = getattr(settings, f"{key.upper()}_MODEL")
    return cls(api_key=api_key, model=model)
