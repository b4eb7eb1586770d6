"""Health check endpoints."""
from fastapi import APIRouter

from examgen.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "examgen-ai",
        "environment": settings.ENVIRONMENT,
        "llm_provider": settings.LLM_PROVIDER,
        "dispatch_mode": settings.DISPATCH_MODE,
    }


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Examgen AI Service",
        "version": "0.1.0",
        "status": "running",
    }
