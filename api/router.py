from fastapi import APIRouter
from api.endpoints.analyze import router as analyze_router
from api.endpoints.extraction import router as extraction_router
from api.endpoints.health import router as health_router

api_router = APIRouter()
api_router.include_router(analyze_router, tags=["analysis"])
api_router.include_router(extraction_router, tags=["extraction"])
api_router.include_router(health_router, tags=["health"])
