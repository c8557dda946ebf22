"""Health check endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from leadwatch.core.config import settings
from leadwatch.models.database import check_database_health

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
    )


@router.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with database status and external API configuration."""
    db_health = await check_database_health()
    db_status = "operational" if db_health.get("status") == "healthy" else "degraded"

    return {
        "status": "healthy" if db_status == "operational" else "degraded",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "services": {
            "api": "operational",
            "database": db_status,
            "linkup": "mock" if settings.LINKUP_MOCK else ("configured" if settings.LINKUP_API_KEY else "not_configured"),
            "apify": "configured" if settings.APIFY_API_KEY else "not_configured",
            "openai": "configured" if settings.OPENAI_API_KEY else "not_configured",
            "linkedin_oauth": "configured" if settings.LINKEDIN_CLIENT_ID else "not_configured",
        },
        "database_details": db_health,
    }
