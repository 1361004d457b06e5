"""API client for the reMarkable document storage cloud."""

from __future__ import annotations

import random
import time
import uuid
from collections.abc import Sequence
from typing import Any

import httpx

from .config import config
from .exceptions import (
    RemSyncAPIError,
    RemSyncAuthenticationError,
    RemSyncConfigError,
    RemSyncInvalidResponseError,
    RemSyncNetworkError,
    RemSyncRateLimitError,
    RemSyncUploadError,
)
from .models import CommitResult, SlotResult, TargetDocEntry, UploadCandidate
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

DEVICE_DESCRIPTION = "desktop-linux"
STORAGE_GROUP = "auth0|5a68dc51cb30df3877a1d7c4"
STORAGE_API_PREFIX = "/document-storage/json/2"


class RemarkableClient:
    """Client for the reMarkable cloud document storage API.

    Pairing turns a one-time code into a long-lived device token. Each
    session exchanges the device token for a short-lived user token and
    discovers the document-storage host before the first storage call.
    """

    def __init__(
        self,
        device_token: str | None = None,
        auth_url: str | None = None,
        discovery_url: str | None = None,
        storage_host: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            device_token: Token from a previous pairing, if any
            auth_url: Token service URL (uses config if not provided)
            discovery_url: Service discovery URL (uses config if not provided)
            storage_host: Fixed document-storage host; skips discovery
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.device_token = device_token
        self.auth_url = (auth_url or config.auth_url).rstrip("/")
        self.discovery_url = (discovery_url or config.discovery_url).rstrip("/")
        self.storage_host = storage_host or config.storage_host
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._user_token: str | None = None
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> RemarkableClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def is_paired(self) -> bool:
        return bool(self.device_token)

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Map an HTTP error to an exception and decide whether to retry.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code in (400, 401, 403) and "/token/" in str(e.request.url):
            raise RemSyncAuthenticationError(
                "Pairing or token renewal rejected - the one-time code or "
                "device token is invalid"
            ) from e
        if status_code == 401:
            raise RemSyncAuthenticationError("Unauthorized - re-pair the device") from e
        if status_code == 429:
            error = RemSyncRateLimitError(
                "Rate limit exceeded - please try again later"
            )
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        if e.response.content:
            error_msg = f"{error_msg}: {e.response.text[:200]}"
        error = RemSyncAPIError(error_msg)
        # Retry on 5xx server errors
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (error, should_retry)

    def _send(
        self,
        method: str,
        url: str,
        token: str | None = None,
        expect_json: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Make a request with retry logic.

        Args:
            method: HTTP method
            url: Absolute URL
            token: Bearer token to send, if any
            expect_json: Parse the body as JSON (otherwise return text)
            **kwargs: Additional arguments passed to httpx

        Returns:
            Parsed JSON or response text

        Raises:
            RemSyncAPIError: If the request fails after all retries
        """
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()

                if not expect_json:
                    return response.text.strip()
                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    raise RemSyncInvalidResponseError(
                        f"Invalid JSON response from {url}"
                    ) from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error
                if should_retry:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e
            except RemSyncAPIError:
                raise
            except httpx.RequestError as e:
                error = RemSyncNetworkError(f"Network error: {e}")
                last_exception = error
                if attempt < self.max_retries:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise RemSyncAPIError("Request failed after all retry attempts")

    # =========================
    # Pairing and Tokens
    # =========================

    def register_device(
        self, one_time_code: str, device_id: str | None = None
    ) -> tuple[str, str]:
        """Pair this client with a reMarkable account.

        Args:
            one_time_code: Code from https://my.remarkable.com/device/desktop/connect
            device_id: Device UUID to register (random if not given)

        Returns:
            Tuple of (device_id, device_token)
        """
        device_id = device_id or str(uuid.uuid4())
        token = self._send(
            "POST",
            f"{self.auth_url}/token/json/2/device/new",
            expect_json=False,
            json={
                "code": one_time_code,
                "deviceDesc": DEVICE_DESCRIPTION,
                "deviceID": device_id,
            },
        )
        if not token:
            raise RemSyncAuthenticationError("Pairing returned an empty device token")
        self.device_token = token
        self._user_token = None
        return device_id, token

    def _ensure_user_token(self) -> str:
        if self._user_token is None:
            if not self.device_token:
                raise RemSyncConfigError(
                    "Device is not paired. Run 'pyremsync init' with a one-time code."
                )
            token = self._send(
                "POST",
                f"{self.auth_url}/token/json/2/user/new",
                token=self.device_token,
                expect_json=False,
            )
            if not token:
                raise RemSyncAuthenticationError(
                    "Token renewal returned an empty token"
                )
            self._user_token = token
        return self._user_token

    def _ensure_storage_host(self) -> str:
        if not self.storage_host:
            data = self._send(
                "GET",
                f"{self.discovery_url}/service/json/1/document-storage",
                params={
                    "environment": "production",
                    "group": STORAGE_GROUP,
                    "apiVer": "2",
                },
            )
            if not isinstance(data, dict) or data.get("Status") != "OK":
                raise RemSyncInvalidResponseError(
                    f"Service discovery failed: {data}"
                )
            self.storage_host = data["Host"]
        return self.storage_host

    def _storage_request(self, method: str, path: str, **kwargs: Any) -> Any:
        token = self._ensure_user_token()
        host = self._ensure_storage_host()
        if not host.startswith("http"):
            host = f"https://{host}"
        url = f"{host}{STORAGE_API_PREFIX}/{path.lstrip('/')}"
        return self._send(method, url, token=token, **kwargs)

    @staticmethod
    def _expect_list(data: Any, what: str) -> list[dict[str, Any]]:
        if not isinstance(data, list):
            raise RemSyncInvalidResponseError(f"Unexpected {what} response: {data}")
        return data

    # =========================
    # Document Storage
    # =========================

    def list_documents(self) -> list[TargetDocEntry]:
        """Fetch every document and folder as a flat list.

        Returns:
            List of TargetDocEntry objects with parent pointers
        """
        data = self._expect_list(self._storage_request("GET", "/docs"), "docs")
        return [TargetDocEntry.from_api_response(item) for item in data]

    def request_upload_slots(
        self, candidates: Sequence[UploadCandidate]
    ) -> list[SlotResult]:
        """Ask for one-time upload URLs for a batch of candidates.

        Args:
            candidates: Candidates with their decided next version

        Returns:
            One SlotResult per candidate
        """
        payload = [c.versioned_entry().to_upload_request() for c in candidates]
        data = self._storage_request("PUT", "/upload/request", json=payload)
        return [
            SlotResult.from_api_response(item)
            for item in self._expect_list(data, "upload request")
        ]

    def commit_metadata(
        self, candidates: Sequence[UploadCandidate]
    ) -> list[CommitResult]:
        """Commit name, parent and version for a batch of candidates."""
        payload = [c.versioned_entry().to_status_update() for c in candidates]
        data = self._storage_request("PUT", "/upload/update-status", json=payload)
        return [
            CommitResult.from_api_response(item)
            for item in self._expect_list(data, "update status")
        ]

    def delete_documents(self, entries: Sequence[TargetDocEntry]) -> list[CommitResult]:
        """Delete documents or folders from the target."""
        payload = [entry.to_delete_request() for entry in entries]
        data = self._storage_request("PUT", "/delete", json=payload)
        return [
            CommitResult.from_api_response(item)
            for item in self._expect_list(data, "delete")
        ]

    def put_content(self, url: str, blob: bytes) -> None:
        """Upload a packaged document to a one-time URL.

        Raises:
            RemSyncUploadError: If the transfer fails
        """
        try:
            response = self._get_client().put(url, content=blob)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemSyncUploadError(f"Blob upload failed: {e}") from e
        except httpx.RequestError as e:
            raise RemSyncUploadError(f"Network error during blob upload: {e}") from e
