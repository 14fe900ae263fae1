# =============================================================================
# core/models/account.py - Account Schemas
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuthProvider:
    EMAIL = "email"
    GOOGLE = "google"


class AccountSummary(BaseModel):
    """
    Account as shown in the admin panel.

    Only secret-free columns: never the password hash, reset token or
    login code.
    """

    model_config = ConfigDict(extra="ignore")

    id: Any = None
    email: str
    email_verified: bool = False
    admin_approved: bool = False
    display_name: str | None = None
    auth_provider: str | None = AuthProvider.EMAIL
    created_at: datetime | None = None

