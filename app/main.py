# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Digital Photo Request API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
#   python -m app.main          (binds API_HOST:API_PORT)
# =============================================================================

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    PhotoRequestException,
    http_exception_handler,
    photo_request_exception_handler,
    unexpected_exception_handler,
)
from app.routers import admin, health, order, redeem

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration problems at startup; nothing to tear down."""
    logger.info(f"Starting Digital Photo Request API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    if not (settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY):
        logger.warning("Supabase credentials missing; every data action will fail")
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY missing; emails will not be sent")
    if settings.is_production and settings.JWT_SECRET.startswith("dev-"):
        logger.warning("JWT_SECRET is still the development default")

    yield

    logger.info("Shutting down Digital Photo Request API")


# Create FastAPI application
app = FastAPI(
    title="Digital Photo Request API",
    description="""
## Digital Photo Requests

Users upload a photo, pay out-of-band, and receive a one-time verification
code that unlocks a download link to their processed photos.

Each surface is a single POST endpoint keyed by an `action` field; the
session token travels in the body as `token`.

| Surface | Actions |
|---------|---------|
| `/api/auth` | signup, verify-email, login, verify-login-code, google-signin, forgot, reset, verify |
| `/api/order` | upload, status, history, request-payment |
| `/api/admin` | create-code, codes, clear-all, all-orders, approve-order, update-pickup, send-ready-email, user-count, all-users, pending-users, approve-user, reject-user, send-email |
| `/api/request` | code redemption |
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(PhotoRequestException, photo_request_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unexpected_exception_handler)


# =============================================================================
# Routers
# =============================================================================

app.include_router(auth_routes.router, prefix="/api", tags=["Auth"])
app.include_router(order.router, prefix="/api", tags=["Orders"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])
app.include_router(redeem.router, prefix="/api", tags=["Codes"])
app.include_router(health.router, prefix="/api", tags=["Health"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Digital Photo Request API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


def run() -> None:
    """Serve the app with uvicorn on API_HOST:API_PORT."""
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
