# =============================================================================
# app/routers/admin.py - Admin Panel Endpoint
# =============================================================================
# POST /api/admin dispatches on the body's `action`. Every action goes
# through require_admin first, which re-reads the admin allow-list.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import APIRouter, Response

from app.auth import AdminUserDep
from app.dependencies import (
    AdminServiceDep,
    BaseUrlDep,
    CodeServiceDep,
    OrderServiceDep,
    PayloadDep,
)
from core.models.actions import AdminAction, parse_action
from core.services.admin_service import AdminService
from core.services.code_service import CodeService
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class AdminContext:
    codes: CodeService
    orders: OrderService
    accounts: AdminService
    base_url: str


AdminHandler = Callable[[AdminContext, dict[str, Any]], dict[str, Any]]

_HANDLERS: dict[AdminAction, AdminHandler] = {
    # Codes
    AdminAction.CREATE_CODE: lambda ctx, p: ctx.codes.create_code(),
    AdminAction.CODES: lambda ctx, p: {"success": True, "codes": ctx.codes.list_codes()},
    AdminAction.CLEAR_ALL: lambda ctx, p: ctx.codes.clear_all(),
    # Orders
    AdminAction.ALL_ORDERS: lambda ctx, p: ctx.orders.list_all_orders(p.get("status")),
    AdminAction.APPROVE_ORDER: lambda ctx, p: ctx.orders.approve_order(p.get("orderId"), ctx.base_url),
    AdminAction.UPDATE_PICKUP: lambda ctx, p: ctx.orders.update_pickup(
        p.get("orderId"), p.get("pickupInstructions")
    ),
    AdminAction.SEND_READY_EMAIL: lambda ctx, p: ctx.orders.send_ready_email(p.get("orderId"), ctx.base_url),
    # Accounts
    AdminAction.USER_COUNT: lambda ctx, p: ctx.accounts.user_count(),
    AdminAction.ALL_USERS: lambda ctx, p: ctx.accounts.all_users(),
    AdminAction.PENDING_USERS: lambda ctx, p: ctx.accounts.pending_users(),
    AdminAction.APPROVE_USER: lambda ctx, p: ctx.accounts.approve_user(p.get("email"), ctx.base_url),
    AdminAction.REJECT_USER: lambda ctx, p: ctx.accounts.reject_user(p.get("email")),
    AdminAction.SEND_EMAIL: lambda ctx, p: ctx.accounts.send_broadcast(
        p.get("to"), p.get("subject"), p.get("message")
    ),
}


@router.options("/admin")
async def admin_preflight() -> Response:
    return Response(status_code=200)


@router.post("/admin")
async def admin_action(
    payload: PayloadDep,
    admin: AdminUserDep,
    codes: CodeServiceDep,
    orders: OrderServiceDep,
    accounts: AdminServiceDep,
    base_url: BaseUrlDep,
):
    """Admin panel actions."""
    action = parse_action(AdminAction, payload.get("action"))
    logger.info(f"Admin {admin.email}: {action.value}")
    context = AdminContext(codes=codes, orders=orders, accounts=accounts, base_url=base_url)
    return _HANDLERS[action](context, payload)
