# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - In-memory gateways (tests/fakes.py) wired into services and the app
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")
os.environ.setdefault("ADMIN_NOTIFICATION_EMAIL", "alerts@example.com")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client.apps.googleusercontent.com")
os.environ.setdefault("APP_BASE_URL", "https://photos.example.com")
os.environ.setdefault("DROPBOX_ACCESS_TOKEN", "test-dropbox-token")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

from core.services.admin_service import AdminService
from core.services.auth_service import AuthService
from core.services.code_service import CodeService
from core.services.notification_service import NotificationService
from core.services.order_service import OrderService
from lib.security import hash_password
from tests.fakes import FakeEmailClient, FakeIdentityVerifier, FakeStorage, FakeStore

BASE_URL = "https://photos.example.com"
STRONG_PASSWORD = "Sunset#2024"


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def settings_override(monkeypatch):
    """Temporarily change fields on the shared settings object."""
    from app.config import settings

    def _override(**values):
        for key, value in values.items():
            monkeypatch.setattr(settings, key, value)

    return _override


# =============================================================================
# Gateways
# =============================================================================

@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def identity_verifier():
    return FakeIdentityVerifier()


@pytest.fixture
def notifier(email_client):
    return NotificationService(email_client)


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def code_service(store, storage, notifier):
    return CodeService(store, storage, notifier)


@pytest.fixture
def order_service(store, storage, notifier, code_service):
    return OrderService(store, storage, notifier, code_service)


@pytest.fixture
def auth_service(store, notifier, identity_verifier):
    return AuthService(store, notifier, identity_verifier)


@pytest.fixture
def admin_service(store, notifier):
    return AdminService(store, notifier)


# =============================================================================
# Accounts
# =============================================================================

@pytest.fixture
def make_account(store):
    """Create an account directly in the fake store."""

    def _make(email, password=STRONG_PASSWORD, verified=True, approved=True, admin=False):
        row = store.create_account(
            email,
            hash_password(password) if password else None,
            email_verified=verified,
            admin_approved=approved,
        )
        if admin:
            store.admins.add(email)
        return row

    return _make
