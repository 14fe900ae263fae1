# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel, ConfigDict


class SessionUser(BaseModel):
    """
    User extracted from a session token.

    is_admin_hint mirrors the token's isAdmin claim. It is for display only;
    admin routes check the allow-list again through require_admin.
    """

    model_config = ConfigDict(frozen=True)

    email: str
    is_admin_hint: bool = False
