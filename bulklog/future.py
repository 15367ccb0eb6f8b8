"""
Single-shot future bridging callback-driven delivery to blocking callers.

Usage:
    future = client.execute(batch)
    future.success(lambda result: print(result)).failure(
        lambda error, response, body: print(error)
    )
    future.wait(timeout=5.0)

Callbacks run on the thread that resolves the future (the client's I/O
thread), before any waiter is released.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[BaseException | None, Any, bytes | None], None]
AlwaysCallback = Callable[[], None]


@dataclass(frozen=True)
class Success(Generic[T]):
    """Resolved value of a successful future."""

    value: T


@dataclass(frozen=True)
class Failure:
    """Resolved failure: the error plus whatever response data was available."""

    error: BaseException | None = None
    response: Any = None
    body: bytes | None = None


class Future(Generic[T]):
    """
    Single-assignment result holder with callbacks and a blocking wait.

    Only the first resolution takes effect; later calls to
    ``resolve_success`` or ``resolve_failure`` return False and do nothing.
    One callback of each kind is kept; registering again replaces it.
    """

    def __init__(self, wait_timeout: float | None = None):
        self.wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._outcome: Success[T] | Failure | None = None
        self._success_cb: SuccessCallback | None = None
        self._failure_cb: FailureCallback | None = None
        self._always_cb: AlwaysCallback | None = None

    def __repr__(self) -> str:
        return f"Future(outcome={self._outcome!r})"

    @property
    def done(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> "Success[T] | Failure | None":
        """The resolved outcome, or None while pending."""
        return self._outcome

    def success(self, callback: SuccessCallback) -> "Future[T]":
        with self._lock:
            self._success_cb = callback
            outcome = self._outcome
        # Registered after resolution: fire now on this thread
        if isinstance(outcome, Success):
            self._invoke(callback, outcome.value)
        return self

    def failure(self, callback: FailureCallback) -> "Future[T]":
        with self._lock:
            self._failure_cb = callback
            outcome = self._outcome
        if isinstance(outcome, Failure):
            self._invoke(callback, outcome.error, outcome.response, outcome.body)
        return self

    def always(self, callback: AlwaysCallback) -> "Future[T]":
        with self._lock:
            self._always_cb = callback
            outcome = self._outcome
        if outcome is not None:
            self._invoke(callback)
        return self

    def resolve_success(self, value: T) -> bool:
        """Resolve with a value. Returns False if already resolved."""
        return self._resolve(Success(value))

    def resolve_failure(
        self,
        error: BaseException | None = None,
        response: Any = None,
        body: bytes | None = None,
    ) -> bool:
        """Resolve with a failure. Returns False if already resolved."""
        return self._resolve(Failure(error, response, body))

    def _resolve(self, outcome: "Success[T] | Failure") -> bool:
        with self._lock:
            if self._outcome is not None:
                logger.debug(f"Ignoring second resolution of {self!r}")
                return False
            self._outcome = outcome
            success_cb = self._success_cb
            failure_cb = self._failure_cb
            always_cb = self._always_cb

        try:
            if isinstance(outcome, Success):
                if success_cb:
                    self._invoke(success_cb, outcome.value)
            elif failure_cb:
                self._invoke(failure_cb, outcome.error, outcome.response, outcome.body)
            if always_cb:
                self._invoke(always_cb)
        finally:
            self._event.set()
        return True

    @staticmethod
    def _invoke(callback: Callable, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Future callback error: {e}")

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the future is resolved or the timeout elapses.

        Args:
            timeout: Seconds to wait; defaults to ``wait_timeout``. When both
                are None the wait is unbounded.

        Returns:
            True if resolved, False if the wait timed out. A timeout does not
            cancel the underlying operation.
        """
        if timeout is None:
            timeout = self.wait_timeout
        return self._event.wait(timeout)
