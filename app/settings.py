import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings(BaseModel):
    APP_NAME: str = "Job Posting Critique"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    STORAGE_DIR: str = "storage"
    DATABASE_URL: str = "sqlite:///app.sqlite3"
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    AI_PROVIDER: str = "gemini"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT_S: float = 30.0
    LLM_MAX_ATTEMPTS: int = 3

    KESTRA_API_URL: str = "http://localhost:8080"
    KESTRA_API_TOKEN: Optional[str] = None
    KESTRA_NAMESPACE: str = "resume"
    KESTRA_FLOW_ID: str = "extract-pdf-text"
    ARTIFACT_BASE_URL: Optional[str] = None
    EXTRACTION_POLL_INTERVAL_S: float = 2.0
    EXTRACTION_MAX_ATTEMPTS: int = 60

    SHUTDOWN_GRACE_S: float = 10.0

    @property
    def workflow_configured(self) -> bool:
        token = self.KESTRA_API_TOKEN or ""
        return bool(token) and token not in {"your-token", "temp_placeholder_for_now"}


def load_settings() -> Settings:
    load_dotenv()
    sqlite_path = os.getenv("SQLITE_PATH")
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "Job Posting Critique"),
        ENV=os.getenv("ENV", "development"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        STORAGE_DIR=os.getenv("STORAGE_DIR", "storage"),
        DATABASE_URL=os.getenv("DATABASE_URL")
        or f"sqlite:///{sqlite_path or 'app.sqlite3'}",
        HOST=os.getenv("HOST", "127.0.0.1"),
        PORT=_env_int("PORT", 8000),
        AI_PROVIDER=os.getenv("AI_PROVIDER", "gemini").strip().lower(),
        GEMINI_API_KEY=os.getenv("GEMINI_API_KEY") or None,
        GEMINI_MODEL=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        GROQ_API_KEY=os.getenv("GROQ_API_KEY") or None,
        GROQ_MODEL=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY") or None,
        OPENAI_MODEL=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        LLM_TIMEOUT_S=_env_float("LLM_TIMEOUT_S", 30.0),
        LLM_MAX_ATTEMPTS=_env_int("LLM_MAX_ATTEMPTS", 3),
        KESTRA_API_URL=os.getenv("KESTRA_API_URL", "http://localhost:8080"),
        KESTRA_API_TOKEN=os.getenv("KESTRA_API_TOKEN") or None,
        KESTRA_NAMESPACE=os.getenv("KESTRA_NAMESPACE", "resume"),
        KESTRA_FLOW_ID=os.getenv("KESTRA_FLOW_ID", "extract-pdf-text"),
        ARTIFACT_BASE_URL=os.getenv("ARTIFACT_BASE_URL") or None,
        EXTRACTION_POLL_INTERVAL_S=_env_float("EXTRACTION_POLL_INTERVAL_S", 2.0),
        EXTRACTION_MAX_ATTEMPTS=_env_int("EXTRACTION_MAX_ATTEMPTS", 60),
        SHUTDOWN_GRACE_S=_env_float("SHUTDOWN_GRACE_S", 10.0),
    )
