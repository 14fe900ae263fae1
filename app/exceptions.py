# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error leaves the service as {"success": false, "message": ...} plus
# any flags the client needs to pick the right screen (sessionExpired,
# needsVerification, pendingApproval).
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again later."


class PhotoRequestException(Exception):
    """
    Base exception for the Digital Photo API.

    All custom exceptions inherit from this class. `details` are merged
    into the JSON body, so keys there are part of the client contract.
    """

    def __init__(
        self,
        message: str,
        code: str = "PHOTO_REQUEST_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "success": False,
            "message": self.message,
        }
        result.update(self.details)
        return result


# =============================================================================
# Request Exceptions
# =============================================================================

class ValidationFailedError(PhotoRequestException):
    """Raised for missing or malformed input."""

    def __init__(self, message: str):
        super().__init__(message=message, code="VALIDATION_FAILED", status_code=400)


class InvalidActionError(PhotoRequestException):
    """Raised when the `action` field names no known operation."""

    def __init__(self, action: Any = None):
        super().__init__(
            message="Invalid action",
            code="INVALID_ACTION",
            status_code=400,
        )
        self.action = action


# =============================================================================
# Authentication / Authorization Exceptions
# =============================================================================

class SessionExpiredError(PhotoRequestException):
    """
    Raised for any missing, malformed, expired or forged session token.

    The reason is deliberately never reported to the caller.
    """

    def __init__(self):
        super().__init__(
            message="Session expired. Please log in again.",
            code="SESSION_EXPIRED",
            status_code=401,
            details={"sessionExpired": True},
        )


class InvalidCredentialsError(PhotoRequestException):
    """Raised when an email/password pair does not match."""

    def __init__(self, message: str = "Invalid email or password."):
        super().__init__(message=message, code="INVALID_CREDENTIALS", status_code=401)


class AdminRequiredError(PhotoRequestException):
    """Raised when a non-admin calls an admin action."""

    def __init__(self):
        super().__init__(
            message="Admin access required.",
            code="ADMIN_REQUIRED",
            status_code=403,
        )


class EmailNotVerifiedError(PhotoRequestException):
    """Raised when a gated account has not confirmed its email."""

    def __init__(self, email: str):
        super().__init__(
            message="Please verify your email address before logging in.",
            code="EMAIL_NOT_VERIFIED",
            status_code=403,
            details={"needsVerification": True, "email": email},
        )


class PendingApprovalError(PhotoRequestException):
    """Raised when a gated account is still waiting for admin approval."""

    def __init__(self, email: str):
        super().__init__(
            message="Your account is pending admin approval.",
            code="PENDING_APPROVAL",
            status_code=403,
            details={"pendingApproval": True, "email": email},
        )


class IdentityProviderError(PhotoRequestException):
    """Raised when an external identity token cannot be accepted."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message=message, code="IDENTITY_PROVIDER_ERROR", status_code=status_code)


# =============================================================================
# Domain Exceptions
# =============================================================================

class NotFoundError(PhotoRequestException):
    """Raised when an account or order does not exist."""

    def __init__(self, message: str):
        super().__init__(message=message, code="NOT_FOUND", status_code=404)


class CodeNotFoundError(PhotoRequestException):
    """Raised when a submitted verification code matches nothing."""

    def __init__(self):
        super().__init__(
            message="Code not valid. Please reach out to us on WhatsApp.",
            code="CODE_NOT_FOUND",
            status_code=400,
        )


class CodeAlreadyUsedError(PhotoRequestException):
    """Raised when a verification code has already been redeemed."""

    def __init__(self):
        super().__init__(
            message="This code has already been used. Please reach out to us on WhatsApp.",
            code="CODE_ALREADY_USED",
            status_code=400,
        )


class CodeNotConfiguredError(PhotoRequestException):
    """Raised when a code exists but has no download link attached."""

    def __init__(self):
        super().__init__(
            message="Download link not configured. Please contact support.",
            code="CODE_NOT_CONFIGURED",
            status_code=400,
        )


class OrderTransitionError(PhotoRequestException):
    """Raised when an order is asked to move to a status it cannot reach."""

    def __init__(self, message: str, order_id: str, status: str):
        super().__init__(
            message=message,
            code="ORDER_TRANSITION_REJECTED",
            status_code=400,
            details={"orderId": order_id, "status": status},
        )


# =============================================================================
# Upload Exceptions
# =============================================================================

class InvalidFileTypeError(PhotoRequestException):
    """Raised when uploaded file type is not allowed."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Unsupported file type. Allowed: {', '.join(allowed)}",
            code="INVALID_FILE_TYPE",
            status_code=400,
        )
        self.filename = filename


class FileTooLargeError(PhotoRequestException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
        )


# =============================================================================
# Downstream Exceptions
# =============================================================================

class StorageOperationError(PhotoRequestException):
    """Raised when a critical Dropbox operation fails."""

    def __init__(self, message: str = "Failed to upload photo."):
        super().__init__(message=message, code="STORAGE_ERROR", status_code=500)


class EmailDeliveryError(PhotoRequestException):
    """Raised when a critical email could not be delivered."""

    def __init__(self, message: str = "We could not send the email. Please try again later."):
        super().__init__(message=message, code="EMAIL_DELIVERY_FAILED", status_code=500)


# =============================================================================
# Exception Handlers
# =============================================================================

async def photo_request_exception_handler(
    request: Request,
    exc: PhotoRequestException
) -> JSONResponse:
    """Convert PhotoRequestException to JSON response."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def unexpected_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle anything the services did not anticipate.

    Details go to the server log only; the caller gets a generic message.
    """
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": GENERIC_ERROR_MESSAGE}
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the same envelope."""
    logger.info(f"HTTP {exc.status_code} on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )
