"""
Error types raised or reported by bulklog.

Delivery failures are never raised from ``BulkClient.execute()``; they are
handed to the caller through the Future's failure callback. Reachability
setup errors are raised synchronously from ``ReachabilityMonitor.start()``.
"""

from typing import Any


class BulkLogError(Exception):
    """Base class for bulklog errors."""


class TransportError(BulkLogError):
    """The request failed before any HTTP response was received."""


class HTTPStatusError(BulkLogError):
    """The receiver answered with a status code outside 200-299."""

    def __init__(self, status_code: int, response: Any = None, body: bytes | None = None):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.response = response
        self.body = body


class DeserializationWarning(UserWarning):
    """A 2xx response body could not be decoded as a JSON object."""


class ReachabilitySetupError(BulkLogError):
    """Registering with the reachability source failed during start()."""

    def __init__(self, step: str, message: str | None = None):
        super().__init__(message or f"Unable to {step}")
        self.step = step
