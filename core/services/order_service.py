# =============================================================================
# core/services/order_service.py - Order Lifecycle
# =============================================================================
# Handles photo uploads and moves orders through their lifecycle:
#
#   pending -> paid -> approved -> completed
#
# Every status change goes through _advance(), which checks the transition
# table in core.models.order and then asks the record store for a guarded
# update, so a stale request can never push an order backwards.
# =============================================================================

import base64
import binascii
import logging
import time
from typing import Any
from urllib.parse import urlencode

from app.config import Settings, settings as default_settings
from app.exceptions import (
    EmailDeliveryError,
    FileTooLargeError,
    InvalidFileTypeError,
    NotFoundError,
    OrderTransitionError,
    StorageOperationError,
    ValidationFailedError,
)
from core.models.order import (
    Order,
    OrderStatus,
    TRANSITION_TIMESTAMPS,
    UploadRequest,
    source_statuses,
)
from core.services.code_service import CodeService
from core.services.notification_service import NotificationService
from lib.dropbox_client import USER_FOLDER_ROOT, DropboxClient, DropboxError
from lib.email_client import EmailSendError
from lib.security import create_approval_token
from lib.utils import normalize_email, sanitize_path_segment, utc_now_iso

logger = logging.getLogger(__name__)

ADMIN_ORDER_LIST_LIMIT = 100


def decode_file_data(file_data: str) -> bytes:
    """
    Decode a base64 payload, with or without a data-URL prefix
    ("data:image/jpeg;base64,...").

    Raises:
        ValidationFailedError: If the payload is not valid base64
    """
    payload = file_data.split(",", 1)[1] if "," in file_data else file_data
    try:
        return base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailedError("The photo could not be read. Please try another file.")


def _safe_file_name(file_name: str) -> str:
    name = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return name or "photo"


def _extension(file_name: str) -> str:
    dot = file_name.rfind(".")
    return file_name[dot:].lower() if dot != -1 else ""


def present(row: dict[str, Any] | None) -> dict[str, Any] | None:
    """Order row as returned to clients (timestamps normalized)."""
    if row is None:
        return None
    return Order.model_validate(row).model_dump(mode="json")


class OrderService:
    """
    Service for order operations.

    Provides a clean interface between API routes and the gateways.
    """

    def __init__(
        self,
        store: Any,
        storage: DropboxClient,
        notifier: NotificationService,
        code_service: CodeService,
        settings: Settings | None = None,
    ):
        self.store = store
        self.storage = storage
        self.notifier = notifier
        self.code_service = code_service
        self.settings = settings or default_settings

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_order(self, order_id: Any) -> dict[str, Any]:
        if not order_id or not isinstance(order_id, (str, int)):
            raise ValidationFailedError("Order ID is required.")
        order = self.store.find_order(order_id)
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def _advance(
        self,
        order: dict[str, Any],
        target: OrderStatus,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Move `order` to `target`, stamping the matching timestamp column.

        Raises:
            OrderTransitionError: if the transition is not allowed, or the
                order changed status underneath us
        """
        current = OrderStatus(order["status"])
        order_id = str(order["id"])
        if not current.can_move_to(target):
            raise OrderTransitionError(
                f"Order cannot move from {current.value} to {target.value}.",
                order_id=order_id,
                status=current.value,
            )

        fields = {TRANSITION_TIMESTAMPS[target]: utc_now_iso(), **(extra or {})}
        updated = self.store.transition_order(order["id"], source_statuses(target), target.value, fields)
        if updated is None:
            raise OrderTransitionError(
                "This order was updated by someone else. Please refresh and try again.",
                order_id=order_id,
                status=current.value,
            )

        logger.info(f"Order {order_id}: {current.value} -> {target.value}")
        return updated

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def upload(self, email: str, request: UploadRequest) -> dict[str, Any]:
        """
        Store an uploaded photo in the user's Dropbox folder and open a
        pending order for it.

        Required metadata (country, phone) is checked before the file.

        Raises:
            ValidationFailedError: missing metadata or unreadable file
            InvalidFileTypeError / FileTooLargeError: file limits
            StorageOperationError: Dropbox upload failed
        """
        email = normalize_email(email)

        if not request.country:
            raise ValidationFailedError("Please select a country.")
        if not request.phone:
            raise ValidationFailedError("Please enter your phone number.")
        if not request.file_name or not request.file_data:
            raise ValidationFailedError("Please choose a photo to upload.")

        file_name = _safe_file_name(request.file_name)
        allowed = self.settings.allowed_extensions_list
        if _extension(file_name) not in allowed:
            raise InvalidFileTypeError(file_name, allowed)

        content = decode_file_data(request.file_data)
        if not content:
            raise ValidationFailedError("The photo could not be read. Please try another file.")
        if len(content) > self.settings.max_upload_size_bytes:
            raise FileTooLargeError(len(content) / (1024 * 1024), self.settings.MAX_UPLOAD_SIZE_MB)

        folder_path = f"{USER_FOLDER_ROOT}/{sanitize_path_segment(email)}"
        file_path = f"{folder_path}/{int(time.time() * 1000)}_{file_name}"

        try:
            self.storage.create_folder(folder_path)
            metadata = self.storage.upload_file(content, file_path)
        except DropboxError as e:
            logger.error(f"Photo upload failed for {email}: {e.message} {e.summary}")
            raise StorageOperationError("Failed to upload photo.")

        shared_link = ""
        try:
            shared_link = self.storage.create_shared_link(folder_path)
        except DropboxError as e:
            logger.warning(f"No shared link for {folder_path}: {e.message}")

        order = self.store.insert_order({
            "user_email": email,
            "status": OrderStatus.PENDING.value,
            "dropbox_folder": folder_path,
            "dropbox_link": shared_link,
            "file_path": metadata.get("path_display", file_path),
            "country": request.country,
            "phone": request.phone,
            "address": request.address or None,
        })
        logger.info(f"Created order {order.get('id')} for {email}")

        self.cleanup_old_orders(email)

        return {"success": True, "message": "Photo uploaded!", "order": present(order)}

    def cleanup_old_orders(self, email: str, keep: int | None = None) -> int:
        """
        Delete all but the newest `keep` orders for a user.

        Best effort: errors are logged and swallowed so the upload that
        triggered the cleanup still succeeds. Dropbox folders are left alone.

        Returns:
            Number of orders deleted
        """
        keep = keep if keep is not None else self.settings.ORDER_RETENTION_COUNT
        try:
            orders = self.store.list_orders_for_user(email, limit=None, columns="id, created_at")
            stale_ids = [order["id"] for order in orders[keep:]]
            if not stale_ids:
                return 0
            self.store.delete_orders(stale_ids)
            logger.info(f"Cleaned up {len(stale_ids)} old orders for {email}")
            return len(stale_ids)
        except Exception as e:
            logger.warning(f"Order cleanup failed for {email} (non-fatal): {e}")
            return 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def current_status(self, email: str) -> dict[str, Any]:
        """Newest order that is not completed yet (or None)."""
        order = self.store.find_latest_order(
            normalize_email(email), exclude_status=OrderStatus.COMPLETED.value
        )
        return {"success": True, "order": present(order)}

    def history(self, email: str) -> dict[str, Any]:
        """Most recent orders regardless of status, newest first."""
        orders = self.store.list_orders_for_user(
            normalize_email(email), limit=self.settings.ORDER_HISTORY_LIMIT
        )
        return {"success": True, "orders": [present(o) for o in orders]}

    def list_all_orders(self, status: str | None = None) -> dict[str, Any]:
        """Admin view of every order, optionally filtered by status."""
        if status:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationFailedError("Unknown order status.")
        orders = self.store.list_orders(status=status, limit=ADMIN_ORDER_LIST_LIMIT)
        return {"success": True, "orders": [present(o) for o in orders]}

    # -------------------------------------------------------------------------
    # pending -> paid
    # -------------------------------------------------------------------------

    def request_payment(self, email: str, order_id: Any, base_url: str) -> dict[str, Any]:
        """
        User says they paid: email the admin an approval link, then mark
        the order paid.

        Without an order_id the user's newest pending order is used.

        Raises:
            NotFoundError: no matching order owned by this user
            OrderTransitionError: order is no longer pending
            EmailDeliveryError: admin email failed (order stays pending)
        """
        email = normalize_email(email)
        if order_id:
            if not isinstance(order_id, (str, int)):
                raise ValidationFailedError("Invalid order ID.")
            order = self.store.find_order(order_id)
            if not order or normalize_email(order.get("user_email")) != email:
                raise NotFoundError("Order not found.")
        else:
            order = self.store.find_latest_order(email, status=OrderStatus.PENDING.value)
            if not order:
                raise NotFoundError("Order not found.")

        status = OrderStatus(order["status"])
        if not status.can_move_to(OrderStatus.PAID):
            message = (
                "This order has already been approved."
                if status.is_at_least(OrderStatus.APPROVED)
                else "Payment has already been requested for this order."
            )
            raise OrderTransitionError(message, order_id=str(order["id"]), status=status.value)

        query = urlencode({
            "approve": "true",
            "orderId": str(order["id"]),
            "token": create_approval_token(str(order["id"])),
        })
        approval_link = f"{base_url}/api/order?{query}"

        try:
            self.notifier.send_payment_request(
                email, str(order["id"]), approval_link, order.get("dropbox_link") or None
            )
        except EmailSendError as e:
            logger.error(f"Payment request email failed for order {order['id']}: {e}")
            raise EmailDeliveryError("Failed to send payment request. Please try again.")

        updated = self._advance(order, OrderStatus.PAID)
        return {"success": True, "message": "Payment request sent!", "order": present(updated)}

    # -------------------------------------------------------------------------
    # paid -> approved
    # -------------------------------------------------------------------------

    def approve_order(self, order_id: Any, base_url: str) -> dict[str, Any]:
        """
        Approve an order's payment.

        Mints a verification code with its own Dropbox folder (where the
        admin drops the processed photos), records it on the order, and
        emails the code to the user. Approving an order that is already
        approved or completed is a successful no-op.

        Returns:
            dict with success, alreadyApproved, message, order and, for a
            fresh approval, code, dropboxLink, folderPath and emailSent

        Raises:
            StorageOperationError: the code folder could not be made; the
                order keeps its status and no code is stored
        """
        order = self._get_order(order_id)
        status = OrderStatus(order["status"])
        if status.is_at_least(OrderStatus.APPROVED):
            return {
                "success": True,
                "alreadyApproved": True,
                "message": "This order was already approved.",
                "order": present(order),
            }

        minted = self.code_service.mint_code()
        try:
            updated = self._advance(order, OrderStatus.APPROVED, {"verification_code": minted["code"]})
        except OrderTransitionError:
            # A concurrent approval won; its code is the one that counts
            logger.warning(f"Order {order['id']} approved concurrently; code {minted['code']} left unassigned")
            return {
                "success": True,
                "alreadyApproved": True,
                "message": "This order was already approved.",
                "order": present(self.store.find_order(order["id"]) or order),
            }

        email_sent = True
        try:
            self.notifier.send_payment_approved(order["user_email"], minted["code"], f"{base_url}/dashboard")
        except EmailSendError as e:
            email_sent = False
            logger.error(f"Order {order['id']} approved but code email failed: {e}")

        message = f"Payment approved for {order['user_email']}."
        message += " User has been notified via email." if email_sent else " The email to the user could not be sent."
        return {
            "success": True,
            "alreadyApproved": False,
            "message": message,
            "order": present(updated),
            "emailSent": email_sent,
            **minted,
        }

    # -------------------------------------------------------------------------
    # approved -> completed
    # -------------------------------------------------------------------------

    def update_pickup(self, order_id: Any, pickup_instructions: str | None) -> dict[str, Any]:
        """Set the pickup instructions shown in the ready-for-pickup email."""
        if not isinstance(pickup_instructions, str) or not pickup_instructions.strip():
            raise ValidationFailedError("Pickup instructions are required.")
        order = self._get_order(order_id)
        updated = self.store.update_order(order["id"], {"pickup_instructions": pickup_instructions.strip()})
        return {"success": True, "message": "Pickup instructions saved.", "order": present(updated or order)}

    def send_ready_email(self, order_id: Any, base_url: str) -> dict[str, Any]:
        """
        Email the user that their order is ready, then mark it completed.

        Sending without pickup instructions is allowed; the email then
        points the user at the dashboard instead.

        Raises:
            OrderTransitionError: order is not approved
            EmailDeliveryError: email failed (order stays approved)
        """
        order = self._get_order(order_id)
        status = OrderStatus(order["status"])
        if not status.can_move_to(OrderStatus.COMPLETED):
            message = (
                "The ready email was already sent for this order."
                if status == OrderStatus.COMPLETED
                else "Order must be approved before it can be marked ready."
            )
            raise OrderTransitionError(message, order_id=str(order["id"]), status=status.value)

        instructions = order.get("pickup_instructions")
        if not instructions:
            logger.warning(f"Sending ready email for order {order['id']} without pickup instructions")

        try:
            self.notifier.send_ready_for_pickup(order["user_email"], instructions, f"{base_url}/dashboard")
        except EmailSendError as e:
            logger.error(f"Ready email failed for order {order['id']}: {e}")
            raise EmailDeliveryError("Failed to send the ready-for-pickup email.")

        updated = self._advance(order, OrderStatus.COMPLETED)
        return {
            "success": True,
            "message": f"Ready email sent to {order['user_email']}.",
            "order": present(updated),
        }
