# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import re
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        order_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        order_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (the format Supabase stores)."""
    return utc_now().isoformat()


def expiry_from_now(**delta: float) -> str:
    """ISO timestamp `delta` into the future, e.g. expiry_from_now(minutes=10)."""
    return (utc_now() + timedelta(**delta)).isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a timestamp column into an aware datetime.

    Accepts datetimes, ISO strings with or without a trailing "Z", and
    None. Naive values are treated as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(value: Any) -> bool:
    """True when the timestamp is missing, unparseable, or in the past."""
    expires_at = parse_timestamp(value)
    return expires_at is None or utc_now() > expires_at


# =============================================================================
# String Utilities
# =============================================================================

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def normalize_email(email: str | None) -> str:
    """Case-fold and trim an email address."""
    if not isinstance(email, str):
        return ""
    return email.strip().lower()


def sanitize_path_segment(value: str) -> str:
    """Replace anything that is not a letter or digit with an underscore."""
    return _NON_ALNUM.sub("_", value)
