# =============================================================================
# lib/security.py - Credential Utilities
# =============================================================================
# Password hashing, signed tokens and input validators.
#
# Two kinds of signed token share one signer:
# - session tokens carry {email, isAdmin} and prove who is calling
# - approval tokens carry {orderId, action} and grant one specific action
#   to whoever holds the link
#
# Usage:
#   from lib.security import create_session_token, decode_token
#   token = create_session_token("a@b.com", is_admin=False)
#   claims = decode_token(token)  # None if anything is wrong with it
# =============================================================================

import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from lib.utils import utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
APPROVE_ACTION = "approve"

OPAQUE_TOKEN_LENGTH = 32
SHORT_CODE_LENGTH = 6

_ALPHANUMERIC = string.ascii_letters + string.digits
_SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    """Hash a password with bcrypt (salt included in the hash)."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    """Check a plaintext password against a stored hash."""
    if not password or not hashed_password:
        return False  # Google-only accounts have no password
    try:
        return pwd_context.verify(password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


@dataclass(frozen=True)
class PasswordCheck:
    """Outcome of a password policy check."""
    valid: bool
    message: str | None = None


def validate_password(password: str | None) -> PasswordCheck:
    """
    Apply the password policy, reporting the first rule that fails.

    Rules, in order: at least 8 characters, an uppercase letter, a
    lowercase letter, a digit, a special character.
    """
    if not isinstance(password, str) or len(password) < 8:
        return PasswordCheck(False, "Password must be at least 8 characters long.")
    if not re.search(r"[A-Z]", password):
        return PasswordCheck(False, "Password must contain at least 1 uppercase letter.")
    if not re.search(r"[a-z]", password):
        return PasswordCheck(False, "Password must contain at least 1 lowercase letter.")
    if not re.search(r"[0-9]", password):
        return PasswordCheck(False, "Password must contain at least 1 number.")
    if not _SPECIAL_CHARACTERS.search(password):
        return PasswordCheck(False, "Password must contain at least 1 special character.")
    return PasswordCheck(True)


def validate_email(email: str | None) -> bool:
    """Shape check only: one @, no whitespace, a dot after the @."""
    return isinstance(email, str) and bool(_EMAIL_SHAPE.match(email))


# =============================================================================
# Random Tokens & Codes
# =============================================================================

def generate_opaque_token(length: int = OPAQUE_TOKEN_LENGTH) -> str:
    """Random alphanumeric string for reset and email-verification links."""
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_short_code() -> str:
    """
    Random 6-digit numeric code (100000-999999).

    Uniqueness is the caller's job; see CodeService.generate_unique_code.
    """
    return str(100000 + secrets.randbelow(900000))


# =============================================================================
# Signed Tokens
# =============================================================================

def _sign(claims: dict[str, Any], expires_in: timedelta) -> str:
    payload = dict(claims)
    now = utc_now()
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + expires_in).timestamp())
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def create_session_token(email: str, is_admin: bool) -> str:
    """
    Issue a session token for an authenticated user.

    `isAdmin` is a display hint for the client; privileged actions look the
    email up in the admin allow-list again on every request.
    """
    return _sign(
        {"email": email, "isAdmin": is_admin},
        timedelta(hours=settings.SESSION_TOKEN_EXPIRE_HOURS),
    )


def create_approval_token(order_id: str) -> str:
    """Issue the capability token embedded in a payment-approval link."""
    return _sign(
        {"orderId": str(order_id), "action": APPROVE_ACTION},
        timedelta(hours=settings.APPROVAL_TOKEN_EXPIRE_HOURS),
    )


def decode_token(token: str | None) -> dict[str, Any] | None:
    """
    Verify signature and expiry, returning the claims.

    Every failure (missing, malformed, expired, bad signature) collapses to
    None so callers cannot leak why a token was refused.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token rejected: {type(e).__name__}")
        return None


def verify_approval_token(token: str | None, order_id: str | None) -> bool:
    """True when `token` is a valid approval capability for exactly `order_id`."""
    claims = decode_token(token)
    if not claims or not order_id:
        return False
    return (
        claims.get("action") == APPROVE_ACTION
        and str(claims.get("orderId")) == str(order_id)
    )
