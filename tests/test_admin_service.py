# =============================================================================
# tests/test_admin_service.py - Account Administration Tests
# =============================================================================

import pytest

from app.exceptions import EmailDeliveryError, NotFoundError, ValidationFailedError
from tests.conftest import BASE_URL


class TestListing:
    def test_user_count(self, admin_service, make_account):
        make_account("a@example.com")
        make_account("b@example.com", approved=False)

        assert admin_service.user_count()["count"] == 2

    def test_pending_users_have_no_secrets(self, admin_service, make_account, store):
        make_account("a@example.com")
        make_account("b@example.com", approved=False)
        store.update_account("b@example.com", {"reset_token": "secret", "login_code": "123456"})

        users = admin_service.pending_users()["users"]

        assert [u["email"] for u in users] == ["b@example.com"]
        assert "password" not in users[0]
        assert "reset_token" not in users[0]
        assert "login_code" not in users[0]

    def test_all_users_newest_first(self, admin_service, make_account):
        make_account("a@example.com")
        make_account("b@example.com")

        assert [u["email"] for u in admin_service.all_users()["users"]] == ["b@example.com", "a@example.com"]


class TestApproval:
    def test_approve_user_notifies(self, admin_service, make_account, store, email_client):
        make_account("b@example.com", approved=False)

        result = admin_service.approve_user("B@example.com", BASE_URL)

        assert result["emailSent"] is True
        assert store.accounts["b@example.com"]["admin_approved"] is True
        assert f"{BASE_URL}/login" in email_client.to("b@example.com")[0]["html"]

    def test_approval_survives_email_failure(self, admin_service, make_account, store, email_client):
        make_account("b@example.com", approved=False)
        email_client.fail_all = True

        result = admin_service.approve_user("b@example.com", BASE_URL)

        assert result["success"] is True
        assert result["emailSent"] is False
        assert store.accounts["b@example.com"]["admin_approved"] is True

    def test_approve_unknown_user(self, admin_service):
        with pytest.raises(NotFoundError):
            admin_service.approve_user("ghost@example.com", BASE_URL)

    @pytest.mark.parametrize("email", [123, ["b@example.com"], None])
    def test_non_string_email(self, admin_service, email):
        with pytest.raises(ValidationFailedError):
            admin_service.approve_user(email, BASE_URL)
        with pytest.raises(ValidationFailedError):
            admin_service.reject_user(email)

    def test_reject_deletes_account(self, admin_service, make_account, store):
        make_account("b@example.com", approved=False)

        admin_service.reject_user("b@example.com")

        assert "b@example.com" not in store.accounts
        with pytest.raises(NotFoundError):
            admin_service.reject_user("b@example.com")


class TestBroadcast:
    def test_single_address(self, admin_service, email_client):
        result = admin_service.send_broadcast("x@example.com", "Hello", "Studio closed <Friday>")

        assert result["sent"] == 1
        message = email_client.to("x@example.com")[0]
        assert message["subject"] == "Hello"
        assert "&lt;Friday&gt;" in message["html"]

    def test_all_means_approved_accounts(self, admin_service, make_account, email_client):
        make_account("a@example.com")
        make_account("b@example.com", approved=False)

        result = admin_service.send_broadcast("all", "News", "Hi")

        assert result["sent"] == 1
        assert [m["to"] for m in email_client.sent] == ["a@example.com"]

    def test_partial_failure_is_counted(self, admin_service, email_client):
        email_client.fail_for = {"b@example.com"}

        result = admin_service.send_broadcast(["a@example.com", "b@example.com"], "News", "Hi")

        assert result == {
            "success": True,
            "message": "Email sent to 1 recipient. (1 failed)",
            "sent": 1,
            "failed": 1,
        }

    def test_total_failure(self, admin_service, email_client):
        email_client.fail_all = True

        with pytest.raises(EmailDeliveryError):
            admin_service.send_broadcast(["a@example.com"], "News", "Hi")

    @pytest.mark.parametrize("to", [None, "", ["not-an-email"], 42])
    def test_bad_recipients(self, admin_service, to):
        with pytest.raises(ValidationFailedError):
            admin_service.send_broadcast(to, "News", "Hi")

    @pytest.mark.parametrize("subject, message", [(42, "Hi"), ("News", {"body": "Hi"}), ("News", None)])
    def test_non_string_subject_or_message(self, admin_service, email_client, subject, message):
        with pytest.raises(ValidationFailedError):
            admin_service.send_broadcast(["a@example.com"], subject, message)

        assert email_client.sent == []
