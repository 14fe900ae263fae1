# =============================================================================
# lib/google_identity.py - Google Sign-In Token Verification
# =============================================================================
# Thin wrapper around google-auth's ID token verification so services can
# depend on a plain callable and tests can swap in a fake.
# =============================================================================

import logging
from dataclasses import dataclass

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)


class IdentityVerificationError(Exception):
    """Raised when an ID token cannot be verified."""


@dataclass(frozen=True)
class GoogleIdentity:
    email: str
    name: str | None = None
    picture: str | None = None


class GoogleIdentityVerifier:
    """
    Verify Google ID tokens for a single OAuth client.

    Usage:
        verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)
        identity = verifier(credential)
    """

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._request = google_requests.Request()

    @property
    def configured(self) -> bool:
        return bool(self.client_id)

    def __call__(self, credential: str) -> GoogleIdentity:
        if not self.client_id:
            raise IdentityVerificationError("GOOGLE_CLIENT_ID is not configured")

        try:
            claims = id_token.verify_oauth2_token(credential, self._request, self.client_id)
        except ValueError as e:
            logger.info(f"Rejected Google credential: {e}")
            raise IdentityVerificationError("Invalid Google credential") from e

        email = claims.get("email")
        if not email or not claims.get("email_verified", False):
            raise IdentityVerificationError("Google account has no verified email")

        return GoogleIdentity(email=email, name=claims.get("name"), picture=claims.get("picture"))
