# =============================================================================
# core/services/admin_service.py - Account Administration
# =============================================================================
# Admin panel operations on accounts: counting, listing, approving,
# rejecting, and broadcast emails. Code and order administration live in
# CodeService and OrderService.
# =============================================================================

import logging
from typing import Any

from app.exceptions import EmailDeliveryError, NotFoundError, ValidationFailedError
from core.models.account import AccountSummary
from core.models.actions import text_field
from core.services.notification_service import NotificationService
from lib.email_client import EmailSendError
from lib.security import validate_email
from lib.utils import normalize_email

logger = logging.getLogger(__name__)

BROADCAST_ALL = "all"


class AdminService:
    """Service for admin account operations."""

    def __init__(self, store: Any, notifier: NotificationService):
        self.store = store
        self.notifier = notifier

    def _summaries(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [AccountSummary.model_validate(row).model_dump(mode="json") for row in rows]

    def user_count(self) -> dict[str, Any]:
        return {"success": True, "count": self.store.count_accounts()}

    def all_users(self) -> dict[str, Any]:
        return {"success": True, "users": self._summaries(self.store.list_accounts())}

    def pending_users(self) -> dict[str, Any]:
        return {"success": True, "users": self._summaries(self.store.list_accounts(approved=False))}

    def approve_user(self, email: str | None, base_url: str) -> dict[str, Any]:
        """
        Approve an account and tell its owner.

        The approval sticks even if the email fails.
        """
        email = normalize_email(text_field(email, "Email is required."))

        account = self.store.update_account(email, {"admin_approved": True})
        if not account:
            raise NotFoundError("User not found.")
        logger.info(f"Approved account {email}")

        email_sent = True
        try:
            self.notifier.send_account_approved(email, f"{base_url}/login")
        except EmailSendError as e:
            email_sent = False
            logger.warning(f"Approval email to {email} failed: {e}")

        return {"success": True, "message": f"{email} has been approved.", "emailSent": email_sent}

    def reject_user(self, email: str | None) -> dict[str, Any]:
        """Reject a registration by deleting the account row."""
        email = normalize_email(text_field(email, "Email is required."))

        if not self.store.delete_account(email):
            raise NotFoundError("User not found.")
        logger.info(f"Rejected account {email}")

        return {"success": True, "message": f"{email} has been rejected."}

    def _recipients(self, to: Any) -> list[str]:
        if to == BROADCAST_ALL:
            return [row["email"] for row in self.store.list_accounts(approved=True, columns="email")]
        if isinstance(to, str):
            to = [to]
        if not isinstance(to, list):
            raise ValidationFailedError("Recipient is required.")

        recipients = []
        for address in to:
            if not isinstance(address, str) or not validate_email(address.strip()):
                raise ValidationFailedError(f"Invalid recipient: {address}")
            recipients.append(address.strip())
        return recipients

    def send_broadcast(self, to: Any, subject: str | None, message: str | None) -> dict[str, Any]:
        """
        Send a free-form email.

        Args:
            to: one address, a list of addresses, or "all" for every
                approved account

        Recipients are sent one at a time; individual failures are counted
        and only fail the call when nothing went out.
        """
        if not to:
            raise ValidationFailedError("Recipient, subject and message are required.")
        subject = text_field(subject, "Recipient, subject and message are required.")
        message = text_field(message, "Recipient, subject and message are required.")

        recipients = self._recipients(to)
        if not recipients:
            raise ValidationFailedError("No recipients found.")

        sent = failed = 0
        for recipient in recipients:
            try:
                self.notifier.send_broadcast(recipient, subject, message)
                sent += 1
            except EmailSendError as e:
                failed += 1
                logger.warning(f"Broadcast to {recipient} failed: {e}")

        logger.info(f"Broadcast '{subject}': sent={sent} failed={failed}")
        if not sent:
            raise EmailDeliveryError("Failed to send the email to any recipient.")

        text = f"Email sent to {sent} recipient{'s' if sent != 1 else ''}."
        if failed:
            text += f" ({failed} failed)"
        return {"success": True, "message": text, "sent": sent, "failed": failed}
