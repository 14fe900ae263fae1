# =============================================================================
# tests/test_order_service.py - Order Lifecycle Tests
# =============================================================================
# Upload validation and storage, retention cleanup, status queries, and the
# pending -> paid -> approved -> completed transitions.
#
# Run with: pytest tests/test_order_service.py -v
# =============================================================================

import base64

import pytest

from app.exceptions import (
    EmailDeliveryError,
    FileTooLargeError,
    InvalidFileTypeError,
    NotFoundError,
    OrderTransitionError,
    StorageOperationError,
    ValidationFailedError,
)
from core.models.order import UploadRequest
from core.services.order_service import decode_file_data
from tests.conftest import BASE_URL

USER = "user@example.com"
PHOTO = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


def upload_request(**overrides):
    data = {
        "fileName": "portrait.jpg",
        "fileData": "data:image/jpeg;base64," + base64.b64encode(PHOTO).decode(),
        "country": "Ghana",
        "phone": "+233 20 000 0000",
        "address": "12 Ocean Rd",
    }
    data.update(overrides)
    return UploadRequest.model_validate(data)


@pytest.fixture
def pending_order(order_service):
    return order_service.upload(USER, upload_request())["order"]


# =============================================================================
# Upload
# =============================================================================

class TestUpload:
    """Tests for photo upload."""

    def test_upload_stores_file_and_creates_pending_order(self, order_service, storage, store):
        result = order_service.upload("User@Example.com", upload_request())

        order = result["order"]
        assert result["success"] is True
        assert order["status"] == "pending"
        assert order["user_email"] == USER
        assert order["country"] == "Ghana"
        assert order["dropbox_folder"] == "/UserPhotos/user_example_com"
        assert order["file_path"].startswith("/UserPhotos/user_example_com/")
        assert order["file_path"].endswith("_portrait.jpg")
        assert storage.uploads[order["file_path"]] == PHOTO
        assert order["dropbox_link"]

    def test_metadata_checked_before_file(self, order_service, storage):
        with pytest.raises(ValidationFailedError, match="Please select a country."):
            order_service.upload(USER, upload_request(country="", fileName=None, fileData=None))

        with pytest.raises(ValidationFailedError, match="Please enter your phone number."):
            order_service.upload(USER, upload_request(phone=None, fileName="virus.exe"))

        assert storage.uploads == {}

    def test_missing_file(self, order_service):
        with pytest.raises(ValidationFailedError, match="choose a photo"):
            order_service.upload(USER, upload_request(fileData=""))

    def test_rejects_extension(self, order_service):
        with pytest.raises(InvalidFileTypeError):
            order_service.upload(USER, upload_request(fileName="notes.txt"))

    def test_rejects_oversized_file(self, order_service, settings_override):
        settings_override(MAX_UPLOAD_SIZE_MB=1)
        big = base64.b64encode(b"x" * (1024 * 1024 + 1)).decode()

        with pytest.raises(FileTooLargeError) as exc_info:
            order_service.upload(USER, upload_request(fileData=big))

        assert exc_info.value.status_code == 413

    def test_rejects_bad_base64(self, order_service):
        with pytest.raises(ValidationFailedError):
            order_service.upload(USER, upload_request(fileData="data:image/jpeg;base64,@@@not-base64"))

    def test_storage_failure(self, order_service, storage, store):
        storage.fail_upload = True

        with pytest.raises(StorageOperationError):
            order_service.upload(USER, upload_request())

        assert store.orders == []

    def test_path_components_stripped_from_file_name(self, order_service):
        order = order_service.upload(USER, upload_request(fileName="..\\..\\evil.png"))["order"]

        assert order["file_path"].endswith("_evil.png")
        assert ".." not in order["file_path"]

    def test_decode_plain_base64(self):
        assert decode_file_data(base64.b64encode(PHOTO).decode()) == PHOTO


class TestRetention:
    def test_keeps_newest_three(self, order_service, store):
        ids = [order_service.upload(USER, upload_request())["order"]["id"] for _ in range(5)]

        remaining = [o["id"] for o in store.list_orders_for_user(USER, limit=None)]
        assert remaining == list(reversed(ids[-3:]))

    def test_other_users_untouched(self, order_service, store):
        order_service.upload("other@example.com", upload_request())
        for _ in range(4):
            order_service.upload(USER, upload_request())

        assert len(store.list_orders_for_user("other@example.com", limit=None)) == 1

    def test_cleanup_failure_does_not_fail_upload(self, order_service, store):
        store.fail_deletes = True
        for _ in range(4):
            result = order_service.upload(USER, upload_request())
            assert result["success"] is True

        assert len(store.orders) == 4


# =============================================================================
# Queries
# =============================================================================

class TestQueries:
    def test_status_skips_completed(self, order_service, store, pending_order):
        store.update_order(pending_order["id"], {"status": "completed"})

        assert order_service.current_status(USER)["order"] is None

    def test_status_returns_latest_open_order(self, order_service, pending_order):
        assert order_service.current_status(USER)["order"]["id"] == pending_order["id"]

    def test_history_limit(self, order_service, store):
        for _ in range(12):
            store.insert_order({"user_email": USER, "status": "completed"})

        assert len(order_service.history(USER)["orders"]) == 10

    def test_all_orders_filter(self, order_service, store, pending_order):
        store.insert_order({"user_email": "b@example.com", "status": "paid"})

        assert len(order_service.list_all_orders()["orders"]) == 2
        assert [o["status"] for o in order_service.list_all_orders("paid")["orders"]] == ["paid"]

    def test_all_orders_unknown_status(self, order_service):
        with pytest.raises(ValidationFailedError):
            order_service.list_all_orders("shipped")


# =============================================================================
# Transitions
# =============================================================================

class TestRequestPayment:
    """pending -> paid"""

    def test_emails_admin_then_marks_paid(self, order_service, email_client, pending_order):
        result = order_service.request_payment(USER, None, BASE_URL)

        assert result["order"]["status"] == "paid"
        assert result["order"]["payment_requested_at"]
        sent = email_client.to("alerts@example.com")
        assert len(sent) == 1
        assert f"{BASE_URL}/api/order?approve=true" in sent[0]["html"]
        assert pending_order["id"] in sent[0]["html"]

    def test_by_order_id(self, order_service, pending_order):
        result = order_service.request_payment(USER, pending_order["id"], BASE_URL)

        assert result["order"]["id"] == pending_order["id"]

    def test_other_users_order_is_not_found(self, order_service, pending_order):
        with pytest.raises(NotFoundError):
            order_service.request_payment("intruder@example.com", pending_order["id"], BASE_URL)

    def test_no_pending_order(self, order_service):
        with pytest.raises(NotFoundError, match="Order not found."):
            order_service.request_payment(USER, None, BASE_URL)

    def test_cannot_request_twice(self, order_service, pending_order):
        order_service.request_payment(USER, pending_order["id"], BASE_URL)

        with pytest.raises(OrderTransitionError):
            order_service.request_payment(USER, pending_order["id"], BASE_URL)

    def test_email_failure_leaves_order_pending(self, order_service, store, email_client, pending_order):
        email_client.fail_all = True

        with pytest.raises(EmailDeliveryError):
            order_service.request_payment(USER, None, BASE_URL)

        assert store.find_order(pending_order["id"])["status"] == "pending"


class TestApproveOrder:
    """paid -> approved"""

    def test_approval_mints_code_and_emails_user(self, order_service, store, storage, email_client, pending_order):
        order_service.request_payment(USER, None, BASE_URL)

        result = order_service.approve_order(pending_order["id"], BASE_URL)

        assert result["alreadyApproved"] is False
        assert result["emailSent"] is True
        code = result["code"]
        assert result["order"]["status"] == "approved"
        assert result["order"]["verification_code"] == code
        assert store.find_code(code)["used_by_email"] is None
        assert f"/PhotoRequests/{code}" in storage.folders
        assert code in email_client.to(USER)[-1]["html"]

    def test_reapproval_is_a_no_op(self, order_service, store, pending_order):
        first = order_service.approve_order(pending_order["id"], BASE_URL)

        again = order_service.approve_order(pending_order["id"], BASE_URL)

        assert again["success"] is True
        assert again["alreadyApproved"] is True
        assert len(store.codes) == 1
        assert store.find_order(pending_order["id"])["verification_code"] == first["code"]

    def test_completed_order_counts_as_approved(self, order_service, store, pending_order):
        store.update_order(pending_order["id"], {"status": "completed"})

        assert order_service.approve_order(pending_order["id"], BASE_URL)["alreadyApproved"] is True
        assert store.find_order(pending_order["id"])["status"] == "completed"

    def test_user_email_failure_keeps_approval(self, order_service, store, email_client, pending_order):
        email_client.fail_for = {USER}

        result = order_service.approve_order(pending_order["id"], BASE_URL)

        assert result["success"] is True
        assert result["emailSent"] is False
        assert store.find_order(pending_order["id"])["status"] == "approved"

    def test_folder_failure_blocks_approval(self, order_service, store, storage, email_client, pending_order):
        """No code is emailed when its download folder could not be made."""
        order_service.request_payment(USER, None, BASE_URL)
        storage.fail_folders = True

        with pytest.raises(StorageOperationError):
            order_service.approve_order(pending_order["id"], BASE_URL)

        order = store.find_order(pending_order["id"])
        assert order["status"] == "paid"
        assert order.get("verification_code") is None
        assert store.codes == []
        assert email_client.to(USER) == []

    def test_unknown_order(self, order_service):
        with pytest.raises(NotFoundError):
            order_service.approve_order("missing", BASE_URL)


class TestReadyForPickup:
    """approved -> completed"""

    def test_pickup_then_ready_email(self, order_service, email_client, pending_order):
        order_service.approve_order(pending_order["id"], BASE_URL)
        order_service.update_pickup(pending_order["id"], "  Front desk, 9am-5pm  ")

        result = order_service.send_ready_email(pending_order["id"], BASE_URL)

        assert result["order"]["status"] == "completed"
        assert result["order"]["completed_at"]
        assert "Front desk, 9am-5pm" in email_client.to(USER)[-1]["html"]

    def test_ready_without_instructions_is_allowed(self, order_service, email_client, pending_order):
        order_service.approve_order(pending_order["id"], BASE_URL)

        result = order_service.send_ready_email(pending_order["id"], BASE_URL)

        assert result["order"]["status"] == "completed"
        assert "contact us on WhatsApp" in email_client.to(USER)[-1]["html"]

    def test_requires_approval(self, order_service, pending_order):
        with pytest.raises(OrderTransitionError):
            order_service.send_ready_email(pending_order["id"], BASE_URL)

    def test_email_failure_keeps_order_approved(self, order_service, store, email_client, pending_order):
        order_service.approve_order(pending_order["id"], BASE_URL)
        email_client.fail_all = True

        with pytest.raises(EmailDeliveryError):
            order_service.send_ready_email(pending_order["id"], BASE_URL)

        assert store.find_order(pending_order["id"])["status"] == "approved"

    def test_update_pickup_requires_text(self, order_service, pending_order):
        with pytest.raises(ValidationFailedError):
            order_service.update_pickup(pending_order["id"], "   ")


class TestMonotonicStatus:
    def test_observed_statuses_follow_the_lifecycle(self, order_service, store, pending_order):
        sequence = ["pending", "paid", "approved", "completed"]
        seen = [store.find_order(pending_order["id"])["status"]]

        order_service.request_payment(USER, None, BASE_URL)
        seen.append(store.find_order(pending_order["id"])["status"])
        with pytest.raises(OrderTransitionError):
            order_service.send_ready_email(pending_order["id"], BASE_URL)
        seen.append(store.find_order(pending_order["id"])["status"])
        order_service.approve_order(pending_order["id"], BASE_URL)
        seen.append(store.find_order(pending_order["id"])["status"])
        order_service.send_ready_email(pending_order["id"], BASE_URL)
        seen.append(store.find_order(pending_order["id"])["status"])
        with pytest.raises(OrderTransitionError):
            order_service.request_payment(USER, pending_order["id"], BASE_URL)
        seen.append(store.find_order(pending_order["id"])["status"])

        ranks = [sequence.index(s) for s in seen]
        assert ranks == sorted(ranks)
        assert seen[-1] == "completed"
