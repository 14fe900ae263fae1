# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - account.py: Account summaries for the admin panel
# - code.py: Verification codes and their admin view
# - order.py: Order rows, the status lifecycle, upload requests
# - actions.py: Action enums for each POST surface
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Account Models
# -----------------------------------------------------------------------------
from .account import AccountSummary, AuthProvider

# -----------------------------------------------------------------------------
# Code Models - one-time verification codes
# -----------------------------------------------------------------------------
from .code import CodeView, VerificationCode

# -----------------------------------------------------------------------------
# Order Models - pending -> paid -> approved -> completed
# -----------------------------------------------------------------------------
from .order import Order, OrderStatus, UploadRequest, source_statuses

# -----------------------------------------------------------------------------
# Action Models - dispatch keys
# -----------------------------------------------------------------------------
from .actions import AdminAction, AuthAction, OrderAction, parse_action, text_field

__all__ = [
    # Account
    "AccountSummary",
    "AuthProvider",
    # Code
    "CodeView",
    "VerificationCode",
    # Order
    "Order",
    "OrderStatus",
    "UploadRequest",
    "source_statuses",
    # Actions
    "AdminAction",
    "AuthAction",
    "OrderAction",
    "parse_action",
    "text_field",
]
