"""
Bulk delivery client.

Sends a BulkRequest to ``{receiver_url}/_bulk`` on a background I/O thread
and reports the outcome through a Future. One attempt per ``execute()``
call; retry and backoff are left to the caller.

Usage:
    from bulklog import BulkClient, BulkRequest, Document

    client = BulkClient(
        receiver_url="https://logs.example.com",
        app_token="tok123",
    )
    batch = BulkRequest([Document('{"message": "hello"}', "event")])
    future = client.execute(batch)
    future.success(print).failure(lambda error, response, body: print(error))
    future.wait()
"""

import json
import logging
import os
import threading
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import httpx

from .bulk import BulkRequest
from .errors import DeserializationWarning, HTTPStatusError, TransportError
from .future import Future

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

JsonObject = dict

BULK_PATH = "/_bulk"
REQUEST_HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Accept": "application/json",
}


@dataclass
class TransportConfig:
    """Transport settings shared by every request of one client."""

    timeout: float = 30.0  # Per-request timeout in seconds
    resource_timeout: float | None = 60.0  # Default bound for Future.wait()
    max_workers: int = 4  # I/O threads running requests
    verify: bool = True  # TLS certificate verification
    trust_env: bool = True  # Honour proxy settings from the environment
    user_agent: str = f"bulklog/{__version__}"


def normalize_receiver_url(url: str) -> str:
    """Trim surrounding whitespace and at most one trailing slash."""
    cleaned = url.strip()
    if cleaned.endswith("/"):
        return cleaned[:-1]
    return cleaned


class BulkClient:
    """
    Client for a bulk ingestion endpoint.

    The httpx client and the configuration are shared read-only by
    concurrent ``execute()`` calls; each call owns its request and Future.
    """

    def __init__(
        self,
        receiver_url: str,
        app_token: str,
        config: TransportConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            receiver_url: Base URL of the bulk receiver
            app_token: Destination index name written into every action line
            config: Transport settings (timeouts, worker count, TLS)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self.receiver_url = normalize_receiver_url(receiver_url)
        self.app_token = app_token
        self.config = config or TransportConfig()

        self._http = httpx.Client(
            timeout=self.config.timeout,
            verify=self.config.verify,
            trust_env=self.config.trust_env,
            headers={"User-Agent": self.config.user_agent},
            transport=transport,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="bulklog-io",
        )
        self._lock = threading.Lock()

        # Stats
        self._request_count = 0
        self._success_count = 0
        self._failure_count = 0
        self._documents_sent = 0
        self._last_error: str | None = None
        self._last_success_time: float | None = None

        logger.info(f"BulkClient created for {self.receiver_url}")

    def __enter__(self) -> "BulkClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def bulk_url(self) -> str:
        return f"{self.receiver_url}{BULK_PATH}"

    def execute(self, batch: BulkRequest) -> Future[JsonObject]:
        """
        Send a bulk request asynchronously.

        Returns immediately with a Future resolved on an I/O thread:
        success with the decoded response object (``{}`` when the body is
        empty or not a JSON object), failure with the error, the response
        and the raw body when available.
        """
        request = self._http.build_request(
            "POST",
            self.bulk_url,
            content=batch.to_bytes(self.app_token),
            headers=REQUEST_HEADERS,
        )
        future: Future[JsonObject] = Future(wait_timeout=self.config.resource_timeout)

        with self._lock:
            self._request_count += 1

        logger.debug(f"Submitting bulk request with {len(batch)} documents to {self.bulk_url}")
        self._executor.submit(self._send, request, future, len(batch))
        return future

    def _send(self, request: httpx.Request, future: Future[JsonObject], documents: int) -> None:
        try:
            self._deliver(request, future, documents)
        except Exception as e:
            logger.error(f"Unexpected error handling bulk response: {e}")
            if not future.done:
                self._record_failure(str(e) or type(e).__name__)
                future.resolve_failure(e)

    def _deliver(self, request: httpx.Request, future: Future[JsonObject], documents: int) -> None:
        try:
            response = self._http.send(request)
        except httpx.HTTPError as e:
            self._fail_transport(future, e)
            return
        except Exception as e:
            logger.error(f"Unexpected error sending bulk request: {e}")
            self._fail_transport(future, e)
            return

        body = response.content or None

        if not 200 <= response.status_code <= 299:
            error = HTTPStatusError(response.status_code, response=response, body=body)
            self._record_failure(str(error))
            future.resolve_failure(error, response=response, body=body)
            return

        result = self._decode(body)
        self._record_success(documents)
        future.resolve_success(result)

    def _fail_transport(self, future: Future[JsonObject], cause: Exception) -> None:
        error = TransportError(str(cause) or type(cause).__name__)
        error.__cause__ = cause
        self._record_failure(str(error))
        future.resolve_failure(error)

    def _decode(self, body: bytes | None) -> JsonObject:
        """Decode a 2xx body, falling back to an empty object."""
        if body:
            try:
                decoded = json.loads(body)
            except (ValueError, RecursionError):
                decoded = None
            if isinstance(decoded, dict):
                return decoded

        message = "Couldn't deserialize json response, returning empty json object instead"
        logger.warning(message)
        try:
            warnings.warn(message, DeserializationWarning, stacklevel=2)
        except DeserializationWarning:
            # Raised when the active warnings filter is "error"
            logger.debug("DeserializationWarning escalated to an error, ignoring")
        return {}

    def _record_success(self, documents: int) -> None:
        with self._lock:
            self._success_count += 1
            self._documents_sent += documents
            self._last_success_time = time.time()

    def _record_failure(self, error: str) -> None:
        logger.debug(f"Bulk request to {self.bulk_url} failed: {error}")
        with self._lock:
            self._failure_count += 1
            self._last_error = error

    def get_stats(self) -> dict:
        """Get delivery statistics."""
        with self._lock:
            return {
                "request_count": self._request_count,
                "success_count": self._success_count,
                "failure_count": self._failure_count,
                "documents_sent": self._documents_sent,
                "last_error": self._last_error,
                "last_success_time": self._last_success_time,
            }

    def close(self) -> None:
        """Wait for in-flight requests, then release the HTTP client."""
        self._executor.shutdown(wait=True)
        self._http.close()


def from_env() -> BulkClient:
    """
    Create a BulkClient from environment variables.

    Environment variables:
        BULKLOG_RECEIVER_URL: Receiver base URL (required)
        BULKLOG_APP_TOKEN: Destination index token (required)
        BULKLOG_TIMEOUT: Per-request timeout in seconds (optional)
        BULKLOG_RESOURCE_TIMEOUT: Default Future wait bound in seconds (optional)

    Returns:
        Configured BulkClient instance
    """
    receiver_url = os.environ.get("BULKLOG_RECEIVER_URL")
    app_token = os.environ.get("BULKLOG_APP_TOKEN")

    if not receiver_url:
        raise ValueError("BULKLOG_RECEIVER_URL environment variable required")
    if not app_token:
        raise ValueError("BULKLOG_APP_TOKEN environment variable required")

    config = TransportConfig()
    if os.environ.get("BULKLOG_TIMEOUT"):
        config.timeout = float(os.environ["BULKLOG_TIMEOUT"])
    if os.environ.get("BULKLOG_RESOURCE_TIMEOUT"):
        config.resource_timeout = float(os.environ["BULKLOG_RESOURCE_TIMEOUT"])

    return BulkClient(receiver_url=receiver_url, app_token=app_token, config=config)
