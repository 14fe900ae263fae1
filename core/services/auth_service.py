# =============================================================================
# core/services/auth_service.py - Accounts & Sessions
# =============================================================================
# Registration, login and password recovery.
#
# Login is gated: an account can sign in only once its email is verified
# AND an admin approved it, unless the email is on the admin allow-list.
# A correct password does not yield a session directly; it mints a
# short-lived login code that is emailed and exchanged for the token by
# verify_login_code().
# =============================================================================

import logging
from typing import Any, Callable
from urllib.parse import urlencode

from app.config import Settings, settings as default_settings
from app.exceptions import (
    EmailDeliveryError,
    EmailNotVerifiedError,
    IdentityProviderError,
    InvalidCredentialsError,
    PendingApprovalError,
    ValidationFailedError,
)
from core.models.account import AuthProvider
from core.models.actions import text_field
from core.services.notification_service import NotificationService
from lib.email_client import EmailSendError
from lib.google_identity import GoogleIdentity, IdentityVerificationError
from lib.security import (
    create_session_token,
    decode_token,
    generate_opaque_token,
    generate_short_code,
    hash_password,
    validate_email,
    validate_password,
    verify_password,
)
from lib.utils import expiry_from_now, is_expired, normalize_email

logger = logging.getLogger(__name__)

FORGOT_MESSAGE = "If an account exists, a reset link has been sent."


class AuthService:
    """
    Service for account and session operations.

    Args:
        store: record store gateway
        notifier: email sender
        identity_verifier: callable turning a Google credential into a
            GoogleIdentity (raises IdentityVerificationError)
    """

    def __init__(
        self,
        store: Any,
        notifier: NotificationService,
        identity_verifier: Callable[[str], GoogleIdentity] | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.identity_verifier = identity_verifier
        self.settings = settings or default_settings

    # -------------------------------------------------------------------------
    # Gating
    # -------------------------------------------------------------------------

    def _check_gates(self, account: dict[str, Any], is_admin: bool) -> None:
        """Admins skip both gates; everyone else needs verified + approved."""
        if is_admin:
            return
        if not account.get("email_verified"):
            raise EmailNotVerifiedError(account["email"])
        if not account.get("admin_approved"):
            raise PendingApprovalError(account["email"])

    def _session(self, email: str, is_admin: bool) -> dict[str, Any]:
        return {
            "success": True,
            "token": create_session_token(email, is_admin),
            "email": email,
            "isAdmin": is_admin,
        }

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def signup(self, email: str | None, password: str | None, base_url: str) -> dict[str, Any]:
        """
        Create a password account.

        The account starts unverified and unapproved; a verification email
        goes to the user and a heads-up to the admin. Neither email is
        required for the signup to succeed.
        """
        email = normalize_email(text_field(email, "Email and password are required."))
        password = text_field(password, "Email and password are required.")
        if not validate_email(email):
            raise ValidationFailedError("Please enter a valid email address.")

        check = validate_password(password)
        if not check.valid:
            raise ValidationFailedError(check.message)

        if self.store.find_account_by_email(email):
            raise ValidationFailedError("An account with this email already exists.")

        is_admin = self.store.is_admin(email)
        verification_token = None if is_admin else generate_opaque_token()
        self.store.create_account(
            email,
            hash_password(password),
            email_verified=is_admin,
            admin_approved=is_admin,
            verification_token=verification_token,
        )

        if is_admin:
            return {"success": True, "message": "Account created successfully! You can now log in."}

        link = f"{base_url}/verify-email?{urlencode({'token': verification_token})}"
        try:
            self.notifier.send_email_verification(email, link)
        except EmailSendError as e:
            logger.warning(f"Verification email to {email} failed: {e}")
        self.notifier.notify_admin_new_user(email, AuthProvider.EMAIL)

        return {
            "success": True,
            "message": "Account created! Please check your email to verify your address.",
            "needsVerification": True,
        }

    def verify_email(self, token: str | None) -> dict[str, Any]:
        token = text_field(token, "Verification token is required.")

        account = self.store.find_account_by_verification_token(token)
        if not account:
            raise ValidationFailedError("Invalid or expired verification link.")

        self.store.update_account(
            account["email"],
            {"email_verified": True, "email_verification_token": None},
        )
        logger.info(f"Email verified: {account['email']}")

        message = "Email verified!"
        if not account.get("admin_approved"):
            message += " Your account is now waiting for admin approval."
        return {"success": True, "message": message}

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    def login(self, email: str | None, password: str | None) -> dict[str, Any]:
        """
        Check the password and gates, then email a login code.

        Returns:
            {"success", "requiresCode": True, "email", "message"}; no token

        Raises:
            InvalidCredentialsError: unknown email or wrong password
            EmailNotVerifiedError / PendingApprovalError: gated account
            EmailDeliveryError: the code could not be emailed
        """
        email = normalize_email(text_field(email, "Email and password are required."))
        password = text_field(password, "Email and password are required.")
        account = self.store.find_account_by_email(email)
        if not account:
            raise InvalidCredentialsError()
        if not account.get("password"):
            raise InvalidCredentialsError(
                "This account uses Google Sign-In. Please continue with Google."
            )
        if not verify_password(password, account["password"]):
            raise InvalidCredentialsError()

        self._check_gates(account, self.store.is_admin(email))

        code = generate_short_code()
        self.store.update_account(email, {
            "login_code": code,
            "login_code_expiry": expiry_from_now(minutes=self.settings.LOGIN_CODE_EXPIRE_MINUTES),
            "login_code_attempts": 0,
        })

        try:
            self.notifier.send_login_code(email, code)
        except EmailSendError as e:
            logger.error(f"Login code email to {email} failed: {e}")
            raise EmailDeliveryError("We could not send your login code. Please try again.")

        return {
            "success": True,
            "requiresCode": True,
            "email": email,
            "message": "We sent a login code to your email.",
        }

    def verify_login_code(self, email: str | None, code: str | None) -> dict[str, Any]:
        """
        Exchange a login code for a session token.

        An expired code is cleared. A wrong code counts against
        LOGIN_CODE_MAX_ATTEMPTS; the last allowed miss clears the code and
        the user must log in again. A matching code is cleared before the
        token is issued, so it works once.
        """
        email = normalize_email(text_field(email, "Email and code are required."))
        if isinstance(code, int) and not isinstance(code, bool):
            code = str(code)
        code = text_field(code, "Email and code are required.")
        account = self.store.find_account_by_email(email)
        stored = account.get("login_code") if account else None
        if not stored:
            raise InvalidCredentialsError("Invalid or expired code. Please log in again.")

        cleared = {"login_code": None, "login_code_expiry": None, "login_code_attempts": 0}
        if is_expired(account.get("login_code_expiry")):
            self.store.update_account(email, cleared)
            raise InvalidCredentialsError("Your code has expired. Please log in again.")

        if code.strip() != stored:
            attempts = (account.get("login_code_attempts") or 0) + 1
            if attempts >= self.settings.LOGIN_CODE_MAX_ATTEMPTS:
                self.store.update_account(email, cleared)
                logger.warning(f"Login code for {email} discarded after {attempts} wrong attempts")
                raise InvalidCredentialsError("Too many attempts. Please log in again.")
            self.store.update_account(email, {"login_code_attempts": attempts})
            raise InvalidCredentialsError("Invalid code. Please try again.")

        self.store.update_account(email, cleared)
        is_admin = self.store.is_admin(email)
        logger.info(f"Login completed for {email} (admin={is_admin})")
        return self._session(email, is_admin)

    def google_signin(self, credential: str | None) -> dict[str, Any]:
        """
        Sign in with a Google ID token.

        First sight creates a verified, unapproved account. Admins are let
        through immediately; everyone else waits for approval. No login code
        is needed since Google already proved the identity.
        """
        if not self.settings.GOOGLE_CLIENT_ID or self.identity_verifier is None:
            raise IdentityProviderError("Google Sign-In is not configured.", status_code=400)
        credential = text_field(credential, "Google credential is required.")

        try:
            identity = self.identity_verifier(credential)
        except IdentityVerificationError as e:
            raise IdentityProviderError(f"Google sign-in failed: {e}")

        email = normalize_email(identity.email)
        is_admin = self.store.is_admin(email)
        account = self.store.find_account_by_email(email)

        if not account:
            account = self.store.create_account(
                email,
                None,
                email_verified=True,
                admin_approved=is_admin,
                display_name=identity.name,
                profile_picture=identity.picture,
                auth_provider=AuthProvider.GOOGLE,
            )
            self.notifier.notify_admin_new_user(email, AuthProvider.GOOGLE)
        elif not account.get("email_verified"):
            # Google vouches for the address
            account = self.store.update_account(email, {"email_verified": True}) or account

        if not is_admin and not account.get("admin_approved"):
            raise PendingApprovalError(email)

        return self._session(email, is_admin)

    def verify(self, token: str | None) -> dict[str, Any]:
        """Check a session token; isAdmin comes from a fresh allow-list lookup."""
        claims = decode_token(token)
        email = claims.get("email") if claims else None
        if not email:
            return {"success": False, "valid": False, "message": "Invalid or expired token."}
        return {"success": True, "valid": True, "email": email, "isAdmin": self.store.is_admin(email)}

    # -------------------------------------------------------------------------
    # Password Recovery
    # -------------------------------------------------------------------------

    def forgot(self, email: str | None, base_url: str) -> dict[str, Any]:
        """
        Email a password reset link.

        The response is the same whether or not the account exists, and
        whether or not the email went out.
        """
        email = normalize_email(text_field(email, "Email is required."))
        account = self.store.find_account_by_email(email)
        if not account:
            logger.info("Password reset requested for unknown email")
            return {"success": True, "message": FORGOT_MESSAGE}

        token = generate_opaque_token()
        self.store.update_account(email, {
            "reset_token": token,
            "token_expiry": expiry_from_now(minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES),
        })

        link = f"{base_url}/reset-password?{urlencode({'token': token})}"
        try:
            self.notifier.send_password_reset(email, link)
        except EmailSendError as e:
            logger.error(f"Password reset email to {email} failed: {e}")

        return {"success": True, "message": FORGOT_MESSAGE}

    def reset(self, token: str | None, password: str | None) -> dict[str, Any]:
        token = text_field(token, "Token and password are required.")
        password = text_field(password, "Token and password are required.")

        check = validate_password(password)
        if not check.valid:
            raise ValidationFailedError(check.message)

        account = self.store.find_account_by_reset_token(token)
        if not account:
            raise ValidationFailedError("Invalid reset link.")
        if is_expired(account.get("token_expiry")):
            raise ValidationFailedError("Reset link has expired.")

        self.store.update_account(account["email"], {
            "password": hash_password(password),
            "reset_token": None,
            "token_expiry": None,
        })
        logger.info(f"Password reset for {account['email']}")

        return {"success": True, "message": "Password reset successfully! You can now log in."}
