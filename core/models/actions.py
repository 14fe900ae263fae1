# =============================================================================
# core/models/actions.py - Action Names
# =============================================================================
# Each API surface is a single POST endpoint whose body names an `action`.
# The enums below are the closed set of actions per surface; anything else
# is rejected before a handler runs, as are body fields of the wrong type.
# =============================================================================

from enum import Enum
from typing import Any, TypeVar

from app.exceptions import InvalidActionError, ValidationFailedError

A = TypeVar("A", bound=Enum)


class AuthAction(str, Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    VERIFY_LOGIN_CODE = "verify-login-code"
    FORGOT = "forgot"
    RESET = "reset"
    VERIFY = "verify"
    VERIFY_EMAIL = "verify-email"
    GOOGLE_SIGNIN = "google-signin"


class OrderAction(str, Enum):
    UPLOAD = "upload"
    STATUS = "status"
    HISTORY = "history"
    REQUEST_PAYMENT = "request-payment"


class AdminAction(str, Enum):
    CREATE_CODE = "create-code"
    CODES = "codes"
    CLEAR_ALL = "clear-all"
    ALL_ORDERS = "all-orders"
    APPROVE_ORDER = "approve-order"
    UPDATE_PICKUP = "update-pickup"
    SEND_READY_EMAIL = "send-ready-email"
    USER_COUNT = "user-count"
    ALL_USERS = "all-users"
    PENDING_USERS = "pending-users"
    APPROVE_USER = "approve-user"
    REJECT_USER = "reject-user"
    SEND_EMAIL = "send-email"


def parse_action(enum_cls: type[A], value: Any) -> A:
    """
    Resolve the body's `action` to a member of `enum_cls`.

    Raises:
        InvalidActionError: for a missing or unknown action
    """
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise InvalidActionError(value)


def text_field(value: Any, message: str) -> str:
    """
    Require a non-empty string from a JSON body field.

    Raises:
        ValidationFailedError: missing, empty, or not a string
    """
    if not isinstance(value, str) or not value:
        raise ValidationFailedError(message)
    return value
