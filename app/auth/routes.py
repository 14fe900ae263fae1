# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# POST /api/auth dispatches on the body's `action`:
#
#   signup, verify-email, login, verify-login-code, google-signin,
#   forgot, reset, verify
# =============================================================================

import logging
from typing import Any, Callable

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from app.dependencies import AuthServiceDep, BaseUrlDep, PayloadDep
from core.models.actions import AuthAction, parse_action
from core.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

AuthHandler = Callable[[AuthService, dict[str, Any], str], dict[str, Any]]

_HANDLERS: dict[AuthAction, AuthHandler] = {
    AuthAction.SIGNUP: lambda service, p, base_url: service.signup(p.get("email"), p.get("password"), base_url),
    AuthAction.VERIFY_EMAIL: lambda service, p, base_url: service.verify_email(p.get("token")),
    AuthAction.LOGIN: lambda service, p, base_url: service.login(p.get("email"), p.get("password")),
    AuthAction.VERIFY_LOGIN_CODE: lambda service, p, base_url: service.verify_login_code(p.get("email"), p.get("code")),
    AuthAction.GOOGLE_SIGNIN: lambda service, p, base_url: service.google_signin(p.get("credential")),
    AuthAction.FORGOT: lambda service, p, base_url: service.forgot(p.get("email"), base_url),
    AuthAction.RESET: lambda service, p, base_url: service.reset(p.get("token"), p.get("password")),
    AuthAction.VERIFY: lambda service, p, base_url: service.verify(p.get("token")),
}


@router.options("/auth")
async def auth_preflight() -> Response:
    return Response(status_code=200)


@router.post("/auth")
async def auth_action(payload: PayloadDep, service: AuthServiceDep, base_url: BaseUrlDep):
    """
    Account actions.

    Returns:
        {"success": true, "message", ...} on success. Failures are raised
        as PhotoRequestException subclasses and rendered by the app-level
        handler.
    """
    action = parse_action(AuthAction, payload.get("action"))
    result = _HANDLERS[action](service, payload, base_url)

    if action is AuthAction.VERIFY and not result["valid"]:
        return JSONResponse(status_code=401, content=result)
    return result
