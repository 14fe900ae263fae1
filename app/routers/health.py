# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Reports whether each external service has credentials configured.
# Only booleans are returned, never the values.
# =============================================================================

from fastapi import APIRouter, Response
from pydantic import BaseModel

from app.config import settings
from lib.utils import utc_now_iso

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class ServiceChecks(BaseModel):
    """Credential presence per external service."""
    supabase: bool
    dropbox: bool
    dropbox_refresh: bool
    resend: bool
    admin_email: bool
    google: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    environment: str
    version: str
    services: ServiceChecks


# =============================================================================
# Endpoints
# =============================================================================

@router.options("/health")
async def health_preflight() -> Response:
    return Response(status_code=200)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    status is "healthy" when the datastore, storage and email credentials
    are all present, "degraded" otherwise. Google Sign-In is optional.
    """
    services = ServiceChecks(
        supabase=bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY),
        dropbox=bool(settings.DROPBOX_ACCESS_TOKEN) or settings.dropbox_can_refresh,
        dropbox_refresh=settings.dropbox_can_refresh,
        resend=bool(settings.RESEND_API_KEY),
        admin_email=bool(settings.ADMIN_NOTIFICATION_EMAIL),
        google=bool(settings.GOOGLE_CLIENT_ID),
    )
    required = services.supabase and services.dropbox and services.resend

    return HealthResponse(
        status="healthy" if required else "degraded",
        timestamp=utc_now_iso(),
        environment=settings.ENVIRONMENT,
        version="1.0.0",
        services=services,
    )
