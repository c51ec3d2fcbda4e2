from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.deps import get_orchestrator
from domain.schemas import (
    AdvanceRequest,
    AdvanceResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    LatestAnalysisResponse,
)
from domain.services.orchestrator import Orchestrator

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(body: AnalyzeRequest,
                  x_user_id: Optional[str] = Header(default=None),
                  x_user_email: Optional[str] = Header(default=None),
                  orchestrator: Orchestrator = Depends(get_orchestrator)) -> AnalyzeResponse:
    analysis_id = await orchestrator.submit(body, x_user_id, x_user_email)
    return AnalyzeResponse(
        analysisId=analysis_id,
        message="Resume and job description saved. Analysis is processing...",
    )


@router.get("/analyses", response_model=LatestAnalysisResponse)
async def latest_analysis(x_user_id: Optional[str] = Header(default=None),
                          orchestrator: Orchestrator = Depends(get_orchestrator)) -> LatestAnalysisResponse:
    analysis = orchestrator.latest(x_user_id)
    if analysis is None:
        return LatestAnalysisResponse(analysis=None, message="No analyses found")
    return LatestAnalysisResponse(analysis=analysis)


@router.post("/analyze-poll", response_model=AdvanceResponse)
async def analyze_poll(body: AdvanceRequest,
                       x_user_id: Optional[str] = Header(default=None),
                       orchestrator: Orchestrator = Depends(get_orchestrator)) -> AdvanceResponse:
    outcome = await orchestrator.advance(body.analysisId, x_user_id)
    return AdvanceResponse(status=outcome.status, analysisData=outcome.analysis,
                           message=outcome.message or None)
