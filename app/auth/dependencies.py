# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Session tokens travel in the JSON body (`token` field), not in a header,
# so these dependencies read the parsed action payload.
#
# Usage:
#   from app.auth import get_session_user, require_admin, SessionUser
#
#   @router.post("/order")
#   async def order(user: SessionUser = Depends(get_session_user)):
#       return {"email": user.email}
# =============================================================================

import logging
from typing import Annotated

from fastapi import Depends

from app.auth.models import SessionUser
from app.dependencies import PayloadDep, StoreDep
from app.exceptions import AdminRequiredError, SessionExpiredError
from lib.security import decode_token

logger = logging.getLogger(__name__)


async def get_session_user(payload: PayloadDep) -> SessionUser:
    """
    Validate the session token in the request body.

    Raises:
        SessionExpiredError: 401 for any missing or unusable token
    """
    claims = decode_token(payload.get("token"))
    email = claims.get("email") if claims else None
    if not email:
        raise SessionExpiredError()

    return SessionUser(email=email, is_admin_hint=bool(claims.get("isAdmin")))


async def require_admin(
    user: Annotated[SessionUser, Depends(get_session_user)],
    store: StoreDep,
) -> SessionUser:
    """
    Admin gate for every admin action.

    The allow-list is consulted on each request; the token's isAdmin claim
    is never trusted since the list may have changed since login.

    Raises:
        AdminRequiredError: 403 if the email is not an admin
    """
    if not store.is_admin(user.email):
        logger.warning(f"Admin action refused for {user.email}")
        raise AdminRequiredError()
    return user


SessionUserDep = Annotated[SessionUser, Depends(get_session_user)]
AdminUserDep = Annotated[SessionUser, Depends(require_admin)]
