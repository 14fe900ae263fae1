# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for gateways and services.
# These are injected into route handlers using Depends(); tests replace
# the gateway providers through app.dependency_overrides.
# =============================================================================

from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request

from app.config import settings
from app.exceptions import ValidationFailedError
from core.services.admin_service import AdminService
from core.services.auth_service import AuthService
from core.services.code_service import CodeService
from core.services.notification_service import NotificationService
from core.services.order_service import OrderService
from lib.dropbox_client import DropboxClient
from lib.email_client import EmailClient
from lib.google_identity import GoogleIdentityVerifier
from lib.supabase_client import SupabaseClient


# =============================================================================
# Gateways
# =============================================================================

def get_store() -> Any:
    """
    Get the record store.

    Returns the singleton client wrapper.
    """
    return SupabaseClient


@lru_cache
def get_storage() -> DropboxClient:
    """One Dropbox client per process so its access token cache is shared."""
    return DropboxClient()


@lru_cache
def get_email_client() -> EmailClient:
    return EmailClient()


@lru_cache
def get_identity_verifier() -> GoogleIdentityVerifier:
    return GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)


def get_notifier(email_client: Annotated[EmailClient, Depends(get_email_client)]) -> NotificationService:
    return NotificationService(email_client)


# =============================================================================
# Services
# =============================================================================

def get_code_service(
    store: Annotated[Any, Depends(get_store)],
    storage: Annotated[DropboxClient, Depends(get_storage)],
    notifier: Annotated[NotificationService, Depends(get_notifier)],
) -> CodeService:
    return CodeService(store, storage, notifier)


def get_order_service(
    store: Annotated[Any, Depends(get_store)],
    storage: Annotated[DropboxClient, Depends(get_storage)],
    notifier: Annotated[NotificationService, Depends(get_notifier)],
    code_service: Annotated[CodeService, Depends(get_code_service)],
) -> OrderService:
    return OrderService(store, storage, notifier, code_service)


def get_auth_service(
    store: Annotated[Any, Depends(get_store)],
    notifier: Annotated[NotificationService, Depends(get_notifier)],
    verifier: Annotated[GoogleIdentityVerifier, Depends(get_identity_verifier)],
) -> AuthService:
    return AuthService(store, notifier, verifier)


def get_admin_service(
    store: Annotated[Any, Depends(get_store)],
    notifier: Annotated[NotificationService, Depends(get_notifier)],
) -> AdminService:
    return AdminService(store, notifier)


# =============================================================================
# Request Helpers
# =============================================================================

async def get_action_payload(request: Request) -> dict[str, Any]:
    """
    Parse the JSON body of an action request.

    Raises:
        ValidationFailedError: body is not a JSON object
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationFailedError("Invalid request body.")
    if not isinstance(payload, dict):
        raise ValidationFailedError("Invalid request body.")
    return payload


def get_base_url(request: Request) -> str:
    """
    Base URL for links that go out in emails.

    APP_BASE_URL wins; otherwise the URL is rebuilt from the proxy headers
    of the current request.
    """
    if settings.APP_BASE_URL:
        return settings.APP_BASE_URL.rstrip("/")
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


# Type aliases for dependency injection
StoreDep = Annotated[Any, Depends(get_store)]
PayloadDep = Annotated[dict[str, Any], Depends(get_action_payload)]
BaseUrlDep = Annotated[str, Depends(get_base_url)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
CodeServiceDep = Annotated[CodeService, Depends(get_code_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
