# =============================================================================
# core/services/code_service.py - Verification Code Lifecycle
# =============================================================================
# Codes are minted (by an admin or by approving an order), redeemed exactly
# once for a download link, and bulk-cleared by an admin.
#
#   unused --(redeem)--> used   (terminal)
#
# Redemption relies on the record store's conditional update: the row is
# only marked used if it is still unused at write time, so concurrent
# redemptions of the same code yield exactly one success.
# =============================================================================

import logging
from typing import Any

from app.exceptions import (
    CodeAlreadyUsedError,
    CodeNotConfiguredError,
    CodeNotFoundError,
    EmailDeliveryError,
    StorageOperationError,
    ValidationFailedError,
)
from core.models.code import VerificationCode
from core.services.notification_service import NotificationService
from lib.dropbox_client import DropboxClient, DropboxError, code_folder_path, get_direct_download_link
from lib.email_client import EmailSendError
from lib.security import generate_short_code
from lib.utils import normalize_email

logger = logging.getLogger(__name__)

# 900,000 possible codes; running out of attempts means the table is
# nearly full and should be cleared.
MAX_CODE_ATTEMPTS = 1000


class CodeService:
    """
    Service for verification code operations.

    Args:
        store: record store gateway (SupabaseClient or a compatible fake)
        storage: Dropbox gateway
        notifier: email sender
    """

    def __init__(self, store: Any, storage: DropboxClient, notifier: NotificationService):
        self.store = store
        self.storage = storage
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def generate_unique_code(self) -> str:
        """
        Generate a 6-digit code not present anywhere in the codes table.

        Used codes count too: a code string identifies one row for as long
        as the row exists.
        """
        existing = self.store.list_code_values()
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_short_code()
            if code not in existing:
                return code
        raise RuntimeError("Could not generate a unique verification code; clear old codes")

    def mint_code(self) -> dict[str, Any]:
        """
        Create a code, its Dropbox folder and shared link, and store it.

        Nothing is stored unless the folder and link exist, so every stored
        code can be redeemed.

        Returns:
            {"code", "dropboxLink", "folderPath"}

        Raises:
            StorageOperationError: the folder or its link could not be made
        """
        code = self.generate_unique_code()
        folder_path = code_folder_path(code)

        try:
            _, shared_link = self.storage.create_folder_with_link(folder_path)
        except DropboxError as e:
            logger.error(f"Could not prepare Dropbox folder for code {code}: {e.message} {e.summary}")
            raise StorageOperationError("Failed to create the Dropbox folder for this code.")

        self.store.insert_code(code, shared_link)
        logger.info(f"Minted verification code {code}")

        return {"code": code, "dropboxLink": shared_link, "folderPath": folder_path}

    def create_code(self) -> dict[str, Any]:
        """Admin action: mint a code on demand."""
        minted = self.mint_code()
        return {"success": True, "message": "Code created successfully!", **minted}

    # -------------------------------------------------------------------------
    # Listing & Clearing
    # -------------------------------------------------------------------------

    def list_codes(self) -> list[dict[str, Any]]:
        """All codes in the admin panel shape, newest first."""
        return [
            VerificationCode.model_validate(row).to_admin_view().model_dump(by_alias=True, mode="json")
            for row in self.store.list_codes()
        ]

    def clear_all(self) -> dict[str, Any]:
        """
        Delete every code row, then each code's Dropbox folder.

        Folder deletion is best effort: failures are counted and reported
        but the rows stay deleted.
        """
        rows = self.store.list_codes()
        self.store.delete_all_codes()

        deleted = failed = 0
        for row in rows:
            code = row.get("code")
            if not code:
                continue
            try:
                self.storage.delete_folder(code_folder_path(code))
                deleted += 1
            except DropboxError as e:
                failed += 1
                logger.warning(f"Failed to delete Dropbox folder for code {code}: {e.message}")

        message = f"All data cleared! Deleted {deleted} Dropbox folders."
        if failed:
            message += f" ({failed} folders failed to delete)"
        logger.info(f"Cleared {len(rows)} codes; folders deleted={deleted} failed={failed}")

        return {
            "success": True,
            "message": message,
            "deletedCodes": len(rows),
            "deletedFolders": deleted,
            "failedFolders": failed,
        }

    # -------------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------------

    def redeem(self, code: str | None, email: str) -> dict[str, Any]:
        """
        Exchange a code for its direct download link and email it.

        Raises:
            ValidationFailedError: empty code
            CodeNotFoundError: no such code
            CodeAlreadyUsedError: redeemed before (or concurrently)
            CodeNotConfiguredError: code has no link yet
            EmailDeliveryError: the link could not be emailed (the code
                stays used)
        """
        code = (code or "").strip() if isinstance(code, str) else ""
        if not code:
            raise ValidationFailedError("Please enter your code.")

        row = self.store.find_code(code)
        if not row:
            raise CodeNotFoundError()

        entry = VerificationCode.model_validate(row)
        if entry.is_used:
            raise CodeAlreadyUsedError()
        if not entry.dropbox_link:
            raise CodeNotConfiguredError()

        email = normalize_email(email)
        if self.store.mark_code_used(entry.id, email) is None:
            # Lost the race to another redemption
            raise CodeAlreadyUsedError()
        logger.info(f"Code {code} redeemed by {email}")

        download_link = get_direct_download_link(entry.dropbox_link)
        try:
            self.notifier.send_photo_download(email, download_link, code)
        except EmailSendError as e:
            logger.error(f"Code {code} redeemed but download email failed: {e}")
            raise EmailDeliveryError(
                "Your code was accepted, but we could not email your download link. Please contact support."
            )

        return {
            "success": True,
            "message": "Success! The digital photo link has been sent to your email.",
            "dropboxLink": download_link,
        }
