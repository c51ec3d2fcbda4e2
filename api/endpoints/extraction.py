from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.deps import get_container
from app.container import Container
from domain.errors import AnalysisNotFound, ValidationError
from domain.schemas import ExtractRequest, ExtractResponse
from infra.extraction.gateway import artifact_key

router = APIRouter()


@router.post("/kestra-extract", response_model=ExtractResponse)
async def start_extraction(body: ExtractRequest,
                           container: Container = Depends(get_container)) -> ExtractResponse:
    if not body.file_path or not body.user_id:
        raise ValidationError("Missing required fields: file_path, user_id")
    if not container.store.exists(body.file_path):
        raise AnalysisNotFound("file not found")
    handle = await container.orchestrator.gateway.start_extraction(body.file_path, body.user_id)
    return ExtractResponse(job_id=handle)


@router.get("/resume-text")
async def resume_text(file: Optional[str] = Query(default=None),
                      container: Container = Depends(get_container)):
    if not file:
        raise ValidationError("Missing or invalid file parameter")
    key = artifact_key(file)
    text = container.store.read_text(key)
    if not text:
        return JSONResponse(status_code=202, content={
            "extracted_text": None,
            "status": "processing",
            "message": "Extraction in progress...",
        })
    return {"extracted_text": text, "status": "completed", "file": key}
