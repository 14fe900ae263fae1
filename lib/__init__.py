# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains the gateways and helpers the services build on:
# - supabase_client.py: Typed Supabase wrapper for the record store
# - dropbox_client.py: Dropbox folders, shared links, uploads, token cache
# - email_client.py: Resend email sender
# - google_identity.py: Google ID token verification
# - templates.py: HTML email bodies and the approval result page
# - security.py: Password hashing, token signing, code generation
# - utils.py: Shared utilities (timestamps, email/path normalization)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.dropbox_client import DropboxClient, DropboxError
from lib.email_client import EmailClient, EmailSendError
from lib.utils import normalize_email, normalize_uuid

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Dropbox
    "DropboxClient",
    "DropboxError",
    # Email
    "EmailClient",
    "EmailSendError",
    # Utils
    "normalize_email",
    "normalize_uuid",
]
