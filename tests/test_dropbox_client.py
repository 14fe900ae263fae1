# =============================================================================
# tests/test_dropbox_client.py - Dropbox Wrapper Tests
# =============================================================================
# Requests are served by httpx.MockTransport, so no network is touched.
# =============================================================================

import json
import threading
import time

import httpx
import pytest

from app.config import settings
from lib.dropbox_client import (
    AccessTokenCache,
    DropboxClient,
    DropboxError,
    code_folder_path,
    get_direct_download_link,
)


def make_client(handler, **overrides):
    config = settings.model_copy(update={"DROPBOX_ACCESS_TOKEN": "static-token", **overrides})
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return DropboxClient(settings=config, http_client=http)


def error(tag, inner=None, status=409):
    body = {"error_summary": f"{tag}/...", "error": {".tag": tag}}
    if inner:
        body["error"][tag] = {".tag": inner}
    return httpx.Response(status, json=body)


# =============================================================================
# Helpers
# =============================================================================

class TestDirectDownloadLink:
    @pytest.mark.parametrize(
        "link, expected",
        [
            ("https://dropbox.com/s/x?dl=0", "https://dropbox.com/s/x?dl=1"),
            ("https://dropbox.com/scl/fo/x?rlkey=a&dl=0", "https://dropbox.com/scl/fo/x?rlkey=a&dl=1"),
            ("https://dropbox.com/s/x", "https://dropbox.com/s/x?dl=1"),
            ("https://dropbox.com/s/x?rlkey=a", "https://dropbox.com/s/x?rlkey=a&dl=1"),
            ("https://dropbox.com/s/x?dl=1", "https://dropbox.com/s/x?dl=1"),
            (None, ""),
        ],
    )
    def test_rewrites(self, link, expected):
        assert get_direct_download_link(link) == expected

    def test_code_folder_path(self):
        assert code_folder_path("123456") == "/PhotoRequests/123456"


# =============================================================================
# Folders, Links, Files
# =============================================================================

class TestFolders:
    def test_create_folder(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"metadata": {}})

        assert make_client(handler).create_folder("/PhotoRequests/1") == "/PhotoRequests/1"
        assert seen[0].url.path == "/2/files/create_folder_v2"
        assert seen[0].headers["Authorization"] == "Bearer static-token"
        assert json.loads(seen[0].content)["path"] == "/PhotoRequests/1"

    def test_existing_folder_is_success(self):
        client = make_client(lambda request: error("path", "conflict"))

        assert client.create_folder("/PhotoRequests/1") == "/PhotoRequests/1"

    def test_other_folder_errors_raise(self):
        client = make_client(lambda request: error("path", "insufficient_space"))

        with pytest.raises(DropboxError) as exc_info:
            client.create_folder("/PhotoRequests/1")

        assert exc_info.value.status_code == 409

    def test_delete_missing_folder(self):
        client = make_client(lambda request: error("path_lookup", "not_found"))

        assert client.delete_folder("/PhotoRequests/1") is False

    def test_delete_folder(self):
        client = make_client(lambda request: httpx.Response(200, json={}))

        assert client.delete_folder("/PhotoRequests/1") is True


class TestSharedLinks:
    def test_new_link(self):
        client = make_client(lambda request: httpx.Response(200, json={"url": "https://db/x?dl=0"}))

        assert client.create_shared_link("/p") == "https://db/x?dl=0"

    def test_falls_back_to_existing_link(self):
        def handler(request):
            if request.url.path.endswith("create_shared_link_with_settings"):
                return error("shared_link_already_exists")
            return httpx.Response(200, json={"links": [{"url": "https://db/existing?dl=0"}]})

        assert make_client(handler).create_shared_link("/p") == "https://db/existing?dl=0"

    def test_no_existing_link(self):
        def handler(request):
            if request.url.path.endswith("create_shared_link_with_settings"):
                return error("shared_link_already_exists")
            return httpx.Response(200, json={"links": []})

        with pytest.raises(DropboxError):
            make_client(handler).create_shared_link("/p")

    def test_create_folder_with_link(self):
        def handler(request):
            if request.url.path.endswith("create_folder_v2"):
                return error("path", "conflict")
            return httpx.Response(200, json={"url": "https://db/x?dl=0"})

        assert make_client(handler).create_folder_with_link("/p") == ("/p", "https://db/x?dl=0")


class TestUpload:
    def test_upload_sends_bytes_and_api_arg(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"path_display": "/UserPhotos/u/1_a.jpg"})

        metadata = make_client(handler).upload_file(b"bytes", "/UserPhotos/u/1_a.jpg")

        assert metadata["path_display"] == "/UserPhotos/u/1_a.jpg"
        request = seen[0]
        assert request.url.host == "content.dropboxapi.com"
        assert request.content == b"bytes"
        assert json.loads(request.headers["Dropbox-API-Arg"])["autorename"] is True

    def test_upload_failure(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(DropboxError):
            client.upload_file(b"bytes", "/x")


# =============================================================================
# Tokens
# =============================================================================

class TestTokenRefresh:
    """Refresh-token flow and the retry on 401."""

    REFRESH = {
        "DROPBOX_REFRESH_TOKEN": "refresh",
        "DROPBOX_APP_KEY": "key",
        "DROPBOX_APP_SECRET": "secret",
    }

    def test_refresh_flow_used_when_configured(self):
        minted = []

        def handler(request):
            if request.url.path == "/oauth2/token":
                minted.append(request)
                return httpx.Response(200, json={"access_token": "fresh", "expires_in": 14400})
            assert request.headers["Authorization"] == "Bearer fresh"
            return httpx.Response(200, json={})

        client = make_client(handler, **self.REFRESH)
        client.create_folder("/a")
        client.create_folder("/b")

        assert len(minted) == 1
        assert b"grant_type=refresh_token" in minted[0].content

    def test_401_invalidates_and_retries_once(self):
        tokens = iter(["stale", "fresh"])
        calls = []

        def handler(request):
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": next(tokens), "expires_in": 14400})
            calls.append(request.headers["Authorization"])
            if request.headers["Authorization"] == "Bearer stale":
                return httpx.Response(401, json={"error_summary": "expired_access_token/"})
            return httpx.Response(200, json={})

        client = make_client(handler, **self.REFRESH)

        assert client.create_folder("/a") == "/a"
        assert calls == ["Bearer stale", "Bearer fresh"]
        assert client.token_cache.refresh_count == 2

    def test_second_401_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error_summary": "invalid_access_token/"})

        with pytest.raises(DropboxError):
            make_client(handler).create_folder("/a")

        assert len(calls) == 2

    def test_refresh_failure(self):
        client = make_client(lambda request: httpx.Response(400, text="bad grant"), **self.REFRESH)

        with pytest.raises(DropboxError, match="refresh"):
            client.create_folder("/a")

    def test_no_credentials(self):
        client = make_client(lambda request: httpx.Response(200, json={}), DROPBOX_ACCESS_TOKEN="")

        with pytest.raises(DropboxError, match="not configured"):
            client.create_folder("/a")


class TestAccessTokenCache:
    def test_reuses_until_expiry(self):
        now = [0.0]
        issued = iter(["t1", "t2"])
        cache = AccessTokenCache(lambda: (next(issued), 300), clock=lambda: now[0])

        assert cache.get_token() == "t1"
        now[0] = 200
        assert cache.get_token() == "t1"
        now[0] = 241
        assert cache.get_token() == "t2"
        assert cache.refresh_count == 2

    def test_static_token_never_expires(self):
        now = [0.0]
        cache = AccessTokenCache(lambda: ("static", None), clock=lambda: now[0])
        cache.get_token()
        now[0] = 10**9

        assert cache.get_token() == "static"
        assert cache.refresh_count == 1

    def test_invalidate_ignores_stale_token(self):
        issued = iter(["t1", "t2"])
        cache = AccessTokenCache(lambda: (next(issued), None))
        cache.get_token()

        cache.invalidate("old-token")
        assert cache.get_token() == "t1"

        cache.invalidate("t1")
        assert cache.get_token() == "t2"

    def test_single_flight_refresh(self):
        """Concurrent callers share one refresh."""
        started = threading.Event()
        release = threading.Event()

        def refresher():
            started.set()
            release.wait(timeout=5)
            return "shared", 3600

        cache = AccessTokenCache(refresher)
        results = []
        threads = [threading.Thread(target=lambda: results.append(cache.get_token())) for _ in range(8)]
        for thread in threads:
            thread.start()
        started.wait(timeout=5)
        time.sleep(0.05)
        release.set()
        for thread in threads:
            thread.join(timeout=5)

        assert results == ["shared"] * 8
        assert cache.refresh_count == 1


class TestMalformedResponses:
    """Transport and payload problems surface as DropboxError."""

    def test_token_endpoint_unreachable(self):
        def handler(request):
            if request.url.path == "/oauth2/token":
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200, json={})

        client = make_client(handler, **TestTokenRefresh.REFRESH)

        with pytest.raises(DropboxError, match="refresh failed"):
            client.delete_folder("/PhotoRequests/1")

    def test_token_response_without_access_token(self):
        def handler(request):
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"token_type": "bearer"})
            return httpx.Response(200, json={})

        with pytest.raises(DropboxError, match="Malformed"):
            make_client(handler, **TestTokenRefresh.REFRESH).create_folder("/a")

    def test_shared_link_response_without_url(self):
        client = make_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(DropboxError):
            client.create_shared_link("/p")

    def test_upload_response_not_json(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(DropboxError):
            client.upload_file(b"bytes", "/x")
