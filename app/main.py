from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from app.container import build_container
from app.error_handlers import attach_error_handlers
from app.logging import configure_logging
from app.settings import Settings, load_settings
from api.router import api_router


def create_app(settings: Optional[Settings] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = build_container(settings, transport=transport)
        app.state.container = container
        try:
            yield
        finally:
            await container.aclose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    attach_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()


def serve() -> None:
    """Entry point for `critique-server`; same as `uvicorn app.main:app`."""
    settings = load_settings()
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT,
                log_level=settings.LOG_LEVEL.lower())
