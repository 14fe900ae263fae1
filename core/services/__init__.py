# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .notification_service import NotificationService
from .code_service import CodeService
from .order_service import OrderService
from .auth_service import AuthService
from .admin_service import AdminService

__all__ = [
    "NotificationService",
    "CodeService",
    "OrderService",
    "AuthService",
    "AdminService",
]
