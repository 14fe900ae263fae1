# =============================================================================
# core/services/notification_service.py - Transactional Emails
# =============================================================================
# One method per email the service sends. Each renders its template and
# hands it to the email client.
#
# Methods raise EmailSendError; callers decide whether that is fatal
# (login code, download link) or only worth a log line (admin alerts).
# =============================================================================

import logging

from app.config import Settings, settings as default_settings
from lib.email_client import EmailClient, EmailSendError
from lib import templates
from lib.utils import utc_now

logger = logging.getLogger(__name__)


class NotificationService:
    """Templated email sending."""

    def __init__(self, email_client: EmailClient, settings: Settings | None = None):
        self.email_client = email_client
        self.settings = settings or default_settings

    def _send(self, to: str | list[str], rendered: tuple[str, str]) -> str | None:
        subject, html = rendered
        return self.email_client.send(to, subject, html)

    # -------------------------------------------------------------------------
    # Admin-facing
    # -------------------------------------------------------------------------

    def notify_admin_new_user(self, email: str, provider: str) -> bool:
        """
        Tell the admin someone registered. Never raises.

        Returns:
            True if the email went out
        """
        admin = self.settings.ADMIN_NOTIFICATION_EMAIL
        if not admin:
            logger.debug("ADMIN_NOTIFICATION_EMAIL not set, skipping new user alert")
            return False
        try:
            registered_at = utc_now().strftime("%Y-%m-%d %H:%M UTC")
            self._send(admin, templates.render_new_user_alert(email, provider, registered_at))
            return True
        except EmailSendError as e:
            logger.warning(f"Failed to send new user notification: {e}")
            return False

    def send_payment_request(
        self,
        user_email: str,
        order_id: str,
        approval_link: str,
        photos_link: str | None,
    ) -> None:
        """Email the admin an approval link for an order."""
        admin = self.settings.ADMIN_NOTIFICATION_EMAIL
        if not admin:
            raise EmailSendError("ADMIN_NOTIFICATION_EMAIL is not configured")
        self._send(
            admin,
            templates.render_payment_request(user_email, order_id, approval_link, photos_link),
        )

    # -------------------------------------------------------------------------
    # User-facing
    # -------------------------------------------------------------------------

    def send_email_verification(self, to: str, link: str) -> None:
        self._send(to, templates.render_email_verification(link))

    def send_login_code(self, to: str, code: str) -> None:
        self._send(to, templates.render_login_code(code, self.settings.LOGIN_CODE_EXPIRE_MINUTES))

    def send_password_reset(self, to: str, link: str) -> None:
        self._send(to, templates.render_password_reset(link, self.settings.RESET_TOKEN_EXPIRE_MINUTES))

    def send_account_approved(self, to: str, login_link: str) -> None:
        self._send(to, templates.render_account_approved(login_link))

    def send_payment_approved(self, to: str, code: str, dashboard_link: str) -> None:
        self._send(to, templates.render_payment_approved(code, dashboard_link))

    def send_ready_for_pickup(self, to: str, pickup_instructions: str | None, dashboard_link: str) -> None:
        self._send(to, templates.render_ready_for_pickup(pickup_instructions, dashboard_link))

    def send_photo_download(self, to: str, download_link: str, code: str) -> None:
        self._send(to, templates.render_photo_download(download_link, code))

    def send_broadcast(self, to: str, subject: str, message: str) -> None:
        self._send(to, templates.render_broadcast(subject, message))
