# =============================================================================
# lib/dropbox_client.py - Dropbox API Wrapper
# =============================================================================
# Folder creation, shared links, uploads and deletion against the Dropbox
# HTTP API v2.
#
# Access tokens come from an AccessTokenCache. With refresh credentials
# configured, the cache mints short-lived tokens from the OAuth endpoint and
# only one refresh runs at a time; concurrent callers wait for it and reuse
# its result. Without them, the static DROPBOX_ACCESS_TOKEN is used.
#
# Usage:
#   from lib.dropbox_client import DropboxClient
#   client = DropboxClient()
#   path, link = client.create_folder_with_link("/PhotoRequests/123456")
# =============================================================================

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable

import httpx

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"
TOKEN_URL = "https://api.dropbox.com/oauth2/token"

CODE_FOLDER_ROOT = "/PhotoRequests"
USER_FOLDER_ROOT = "/UserPhotos"

# Refresh this many seconds before the provider's stated expiry
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class DropboxError(Exception):
    """Error returned by (or while talking to) the Dropbox API."""

    def __init__(self, message: str, summary: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.summary = summary or ""
        self.status_code = status_code


def code_folder_path(code: str) -> str:
    """Folder that holds the processed photos for a verification code."""
    return f"{CODE_FOLDER_ROOT}/{code}"


def get_direct_download_link(shared_link: str | None) -> str:
    """
    Rewrite a shared link so it downloads instead of previewing.

    Examples:
        ".../x?dl=0"        -> ".../x?dl=1"
        ".../x?rlkey=a&dl=0" -> ".../x?rlkey=a&dl=1"
        ".../x"             -> ".../x?dl=1"
    """
    if not shared_link:
        return ""
    if "?dl=0" in shared_link:
        return shared_link.replace("?dl=0", "?dl=1")
    if "&dl=0" in shared_link:
        return shared_link.replace("&dl=0", "&dl=1")
    if "dl=1" not in shared_link:
        return shared_link + ("&dl=1" if "?" in shared_link else "?dl=1")
    return shared_link


# =============================================================================
# Access Token Cache
# =============================================================================

class AccessTokenCache:
    """
    Process-wide bearer token with an expiry and a single-flight refresh.

    `refresher` returns (token, lifetime_seconds); lifetime None means the
    token never expires.
    """

    def __init__(
        self,
        refresher: Callable[[], tuple[str, float | None]],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._refresher = refresher
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at: float | None = None
        self.refresh_count = 0

    def _is_fresh(self) -> bool:
        if self._token is None:
            return False
        return self._expires_at is None or self._clock() < self._expires_at

    def get_token(self) -> str:
        """Return a usable token, refreshing it first if stale."""
        if self._is_fresh():
            return self._token
        with self._lock:
            # Another thread may have refreshed while we waited
            if self._is_fresh():
                return self._token
            token, lifetime = self._refresher()
            self.refresh_count += 1
            self._token = token
            if lifetime is None:
                self._expires_at = None
            else:
                self._expires_at = self._clock() + max(lifetime - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
            return token

    def invalidate(self, token: str | None = None) -> None:
        """
        Drop the cached token.

        If `token` is given, only drop it when it is still the cached one,
        so a stale 401 cannot throw away a token someone else just fetched.
        """
        with self._lock:
            if token is None or token == self._token:
                self._token = None
                self._expires_at = None


# =============================================================================
# Client
# =============================================================================

class DropboxClient:
    """
    Thin wrapper over the Dropbox endpoints the service needs.

    Folder creation and deletion are idempotent: "already exists" and
    "not found" count as success.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.Client | None = None,
        token_cache: AccessTokenCache | None = None,
    ):
        self.settings = settings or default_settings
        self._http = http_client or httpx.Client(timeout=self.settings.HTTP_TIMEOUT_SECONDS)
        self.token_cache = token_cache or AccessTokenCache(self._fetch_access_token)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def _fetch_access_token(self) -> tuple[str, float | None]:
        """Mint an access token (refresh flow) or fall back to the static one."""
        if self.settings.dropbox_can_refresh:
            try:
                response = self._http.post(
                    TOKEN_URL,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": self.settings.DROPBOX_REFRESH_TOKEN,
                    },
                    auth=(self.settings.DROPBOX_APP_KEY, self.settings.DROPBOX_APP_SECRET),
                )
            except httpx.HTTPError as e:
                raise DropboxError(f"Dropbox token refresh failed: {e}")
            if response.status_code != 200:
                raise DropboxError(
                    "Failed to refresh Dropbox access token",
                    summary=response.text[:200],
                    status_code=response.status_code,
                )
            try:
                payload = response.json()
                token, lifetime = payload["access_token"], float(payload.get("expires_in", 14400))
            except (ValueError, KeyError, TypeError) as e:
                raise DropboxError(f"Malformed Dropbox token response: {e}", status_code=response.status_code)
            logger.info("Refreshed Dropbox access token")
            return token, lifetime

        if not self.settings.DROPBOX_ACCESS_TOKEN:
            raise DropboxError("Dropbox credentials are not configured")
        return self.settings.DROPBOX_ACCESS_TOKEN, None

    def _send(self, url: str, *, json_body: Any = None, content: bytes | None = None,
              headers: dict[str, str] | None = None) -> httpx.Response:
        """POST with a bearer token; on 401 refresh once and re-send."""
        for attempt in range(2):
            token = self.token_cache.get_token()
            request_headers = {"Authorization": f"Bearer {token}", **(headers or {})}
            try:
                if content is not None:
                    response = self._http.post(url, content=content, headers=request_headers)
                else:
                    response = self._http.post(url, json=json_body, headers=request_headers)
            except httpx.HTTPError as e:
                raise DropboxError(f"Dropbox request failed: {e}")

            if response.status_code == 401 and attempt == 0:
                logger.info("Dropbox token rejected, refreshing")
                self.token_cache.invalidate(token)
                continue
            return response
        return response

    @staticmethod
    def _json_field(response: httpx.Response, key: str) -> Any:
        """Read one field from a successful response body."""
        try:
            return response.json()[key]
        except (ValueError, KeyError, TypeError):
            raise DropboxError(f"Dropbox response is missing '{key}'", status_code=response.status_code)

    @staticmethod
    def _error_payload(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"error_summary": response.text[:200]}
        return payload if isinstance(payload, dict) else {}

    # -------------------------------------------------------------------------
    # Folders
    # -------------------------------------------------------------------------

    def create_folder(self, path: str) -> str:
        """
        Create a folder. An existing folder at `path` counts as success.

        Returns:
            The folder path

        Raises:
            DropboxError: for any other failure
        """
        response = self._send(
            f"{API_URL}/files/create_folder_v2",
            json_body={"path": path, "autorename": False},
        )
        if response.status_code == 200:
            logger.info(f"Created Dropbox folder: {path}")
            return path

        payload = self._error_payload(response)
        error = payload.get("error") or {}
        if error.get(".tag") == "path" and (error.get("path") or {}).get(".tag") == "conflict":
            logger.debug(f"Dropbox folder already exists: {path}")
            return path

        raise DropboxError(
            f"Failed to create folder {path}",
            summary=payload.get("error_summary"),
            status_code=response.status_code,
        )

    def delete_folder(self, path: str) -> bool:
        """
        Delete a folder. A missing folder counts as success.

        Returns:
            True if something was deleted, False if it was already gone
        """
        response = self._send(f"{API_URL}/files/delete_v2", json_body={"path": path})
        if response.status_code == 200:
            logger.info(f"Deleted Dropbox folder: {path}")
            return True

        payload = self._error_payload(response)
        error = payload.get("error") or {}
        if error.get(".tag") == "path_lookup":
            logger.debug(f"Dropbox folder not found, nothing to delete: {path}")
            return False

        raise DropboxError(
            f"Failed to delete folder {path}",
            summary=payload.get("error_summary"),
            status_code=response.status_code,
        )

    # -------------------------------------------------------------------------
    # Shared Links
    # -------------------------------------------------------------------------

    def create_shared_link(self, path: str) -> str:
        """
        Create a public viewer link, or return the one that already exists.

        Raises:
            DropboxError: If no link could be created or found
        """
        response = self._send(
            f"{API_URL}/sharing/create_shared_link_with_settings",
            json_body={
                "path": path,
                "settings": {
                    "requested_visibility": "public",
                    "audience": "public",
                    "access": "viewer",
                },
            },
        )
        if response.status_code == 200:
            return self._json_field(response, "url")

        payload = self._error_payload(response)
        error = payload.get("error") or {}
        if error.get(".tag") == "shared_link_already_exists":
            return self.get_existing_shared_link(path)

        raise DropboxError(
            f"Failed to create shared link for {path}",
            summary=payload.get("error_summary"),
            status_code=response.status_code,
        )

    def get_existing_shared_link(self, path: str) -> str:
        """Look up the link Dropbox already has for `path`."""
        response = self._send(
            f"{API_URL}/sharing/list_shared_links",
            json_body={"path": path, "direct_only": True},
        )
        links = self._error_payload(response).get("links") or []
        if response.status_code == 200 and links:
            try:
                return links[0]["url"]
            except (KeyError, TypeError):
                raise DropboxError(f"Malformed shared link listing for {path}", status_code=response.status_code)
        raise DropboxError(f"No shared link found for {path}", status_code=response.status_code)

    def create_folder_with_link(self, path: str) -> tuple[str, str]:
        """
        Create a folder (if needed) and return (path, shared_link).
        """
        self.create_folder(path)
        return path, self.create_shared_link(path)

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def upload_file(self, content: bytes, path: str) -> dict[str, Any]:
        """
        Upload bytes to `path`. Name clashes are auto-renamed by Dropbox.

        Returns:
            File metadata from Dropbox (includes the final path_display)
        """
        api_arg = {"path": path, "mode": "add", "autorename": True, "mute": False}
        response = self._send(
            f"{CONTENT_URL}/files/upload",
            content=content,
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(api_arg),
            },
        )
        if response.status_code != 200:
            payload = self._error_payload(response)
            raise DropboxError(
                f"Failed to upload {path}",
                summary=payload.get("error_summary"),
                status_code=response.status_code,
            )
        try:
            metadata = response.json()
        except ValueError:
            metadata = None
        if not isinstance(metadata, dict):
            raise DropboxError(f"Malformed upload response for {path}", status_code=response.status_code)
        logger.info(f"Uploaded {len(content)} bytes to Dropbox: {metadata.get('path_display', path)}")
        return metadata
