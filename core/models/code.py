# =============================================================================
# core/models/code.py - Verification Code Schemas
# =============================================================================
# A verification code is unused until `used_by_email` is set, and then it is
# used forever. The admin panel sees codes in the camelCase shape below.
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VerificationCode(BaseModel):
    """One row of the verification_codes table."""

    model_config = ConfigDict(extra="ignore")

    id: Any
    code: str
    dropbox_link: str | None = None
    used_by_email: str | None = None
    used_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_used(self) -> bool:
        return bool(self.used_by_email)

    def to_admin_view(self) -> "CodeView":
        return CodeView(
            id=self.id,
            email=self.used_by_email or "",
            validation_code=self.code,
            dropbox_link=self.dropbox_link or "",
            is_used=self.is_used,
            created_at=self.created_at,
        )


class CodeView(BaseModel):
    """
    Code as listed in the admin panel.

    Example:
        {
            "id": 7,
            "email": "",
            "validationCode": "482913",
            "dropboxLink": "https://www.dropbox.com/scl/fo/...",
            "isUsed": false,
            "createdAt": "2024-01-15T10:30:00Z"
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Any
    email: str = ""
    validation_code: str = Field(alias="validationCode")
    dropbox_link: str = Field(default="", alias="dropboxLink")
    is_used: bool = Field(default=False, alias="isUsed")
    created_at: datetime | None = Field(default=None, alias="createdAt")
