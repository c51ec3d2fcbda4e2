import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.deps import get_container
from app.container import Container

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(container: Container = Depends(get_container)):
    try:
        with container.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database unavailable")
    orchestrator = container.orchestrator
    return {
        "status": "ok",
        "provider": orchestrator.provider.name,
        "extraction": orchestrator.gateway.name,
    }
