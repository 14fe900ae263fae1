# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Session-token authentication and the /api/auth action surface.
#
# Usage:
#   from app.auth import SessionUserDep, AdminUserDep
#
#   @router.post("/admin")
#   async def admin(user: AdminUserDep):
#       return {"email": user.email}
# =============================================================================

from app.auth.dependencies import (
    AdminUserDep,
    SessionUserDep,
    get_session_user,
    require_admin,
)
from app.auth.models import SessionUser

__all__ = [
    "AdminUserDep",
    "SessionUserDep",
    "get_session_user",
    "require_admin",
    "SessionUser",
]
