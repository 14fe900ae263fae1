# =============================================================================
# app/routers/order.py - Order Endpoints
# =============================================================================
# POST /api/order   upload, status, history, request-payment (session token
#                   in the body)
# GET  /api/order   ?approve=true&orderId=..&token=.. approval link emailed
#                   to the admin; renders an HTML page
# =============================================================================

import logging
from html import escape
from typing import Any, Callable

from fastapi import APIRouter, Query, Response
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from app.auth import SessionUser, SessionUserDep
from app.dependencies import BaseUrlDep, OrderServiceDep, PayloadDep
from app.exceptions import PhotoRequestException, ValidationFailedError
from core.models.actions import OrderAction, parse_action
from core.models.order import UploadRequest
from core.services.order_service import OrderService
from lib.security import verify_approval_token
from lib.templates import render_result_page

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Actions
# =============================================================================

def _upload(service: OrderService, user: SessionUser, payload: dict[str, Any], base_url: str) -> dict[str, Any]:
    try:
        request = UploadRequest.model_validate(payload)
    except ValidationError:
        raise ValidationFailedError("Invalid upload request.")
    return service.upload(user.email, request)


OrderHandler = Callable[[OrderService, SessionUser, dict[str, Any], str], dict[str, Any]]

_HANDLERS: dict[OrderAction, OrderHandler] = {
    OrderAction.UPLOAD: _upload,
    OrderAction.STATUS: lambda service, user, p, base_url: service.current_status(user.email),
    OrderAction.HISTORY: lambda service, user, p, base_url: service.history(user.email),
    OrderAction.REQUEST_PAYMENT: lambda service, user, p, base_url: service.request_payment(
        user.email, p.get("orderId"), base_url
    ),
}


@router.options("/order")
async def order_preflight() -> Response:
    return Response(status_code=200)


@router.post("/order")
async def order_action(
    payload: PayloadDep,
    user: SessionUserDep,
    service: OrderServiceDep,
    base_url: BaseUrlDep,
):
    """Order actions for the signed-in user."""
    action = parse_action(OrderAction, payload.get("action"))
    return _HANDLERS[action](service, user, payload, base_url)


# =============================================================================
# Approval Link
# =============================================================================

def _page(title: str, message_html: str, success: bool, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(render_result_page(title, message_html, success), status_code=status_code)


@router.get("/order", response_class=HTMLResponse)
async def approve_from_link(
    service: OrderServiceDep,
    base_url: BaseUrlDep,
    approve: str | None = None,
    order_id: str | None = Query(default=None, alias="orderId"),
    token: str | None = None,
):
    """
    Approve an order from the link in the payment request email.

    The token is a capability for exactly one order; no session is needed.
    """
    if approve != "true" or not order_id:
        return _page("Invalid Request", "This link is incomplete.", False, status_code=400)

    if not verify_approval_token(token, order_id):
        logger.warning(f"Rejected approval link for order {order_id}")
        return _page("Invalid Link", "This approval link is invalid or has expired.", False, status_code=401)

    try:
        result = service.approve_order(order_id, base_url)
    except PhotoRequestException as e:
        return _page("Approval Failed", escape(e.message), False, status_code=e.status_code)

    if result["alreadyApproved"]:
        return _page("Already Approved", "This order was already approved.", True)

    user_email = escape(result["order"].get("user_email") or "")
    message = f"Payment approved for <strong>{user_email}</strong>.<br>Code: <strong>{escape(result['code'])}</strong>"
    if result["emailSent"]:
        message += "<br>The user has been emailed their code."
    else:
        message += "<br>The email to the user failed; please send the code manually."
    if result["dropboxLink"]:
        message += f'<br><a href="{escape(result["dropboxLink"])}">Open the Dropbox folder</a>'
    return _page("Payment Approved", message, True)
