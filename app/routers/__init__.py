# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# One module per action surface:
# - health.py: Credential presence report
# - order.py: Upload, status, history, payment request, approval link
# - admin.py: Admin panel actions
# - redeem.py: Verification code redemption
#
# The auth surface lives in app/auth/routes.py. Each router is mounted in
# main.py under /api.
# =============================================================================

from . import admin
from . import health
from . import order
from . import redeem

__all__ = [
    "admin",
    "health",
    "order",
    "redeem",
]
