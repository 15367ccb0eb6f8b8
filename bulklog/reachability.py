"""
Network reachability monitoring.

A ReachabilityMonitor reads connectivity flag snapshots from a
ReachabilitySource (a platform backend or a fake), classifies them into a
coarse ReachabilityStatus and tells interested parties when the flags
change.

Usage:
    monitor = ReachabilityMonitor.for_internet_connection()
    monitor.when_reachable = lambda m: logger.info(f"online via {m.current_status}")
    monitor.when_unreachable = lambda m: logger.info("offline")
    monitor.add_listener(lambda event: print(event.status))
    monitor.start()
    ...
    monitor.stop()

All flag processing happens on one serial worker thread owned by the
monitor, so transitions are applied one at a time in arrival order.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from .errors import ReachabilitySetupError

logger = logging.getLogger(__name__)

REACHABILITY_CHANGED = "reachability_changed"


@dataclass(frozen=True)
class ReachabilityFlags:
    """Snapshot of the connectivity bits reported for a network path."""

    reachable: bool = False
    connection_required: bool = False
    transient_connection: bool = False
    connection_on_traffic: bool = False
    connection_on_demand: bool = False
    intervention_required: bool = False
    is_cellular: bool = False
    is_local_address: bool = False
    is_direct: bool = False

    @property
    def connection_on_traffic_or_demand(self) -> bool:
        return self.connection_on_traffic or self.connection_on_demand

    def describe(self, on_device: bool = True) -> str:
        """Compact flag rendering, e.g. ``"-R -t-----"``."""
        if on_device:
            cellular = "W" if self.is_cellular else "-"
        else:
            cellular = "X"
        bits = [
            ("c", self.connection_required),
            ("t", self.transient_connection),
            ("i", self.intervention_required),
            ("C", self.connection_on_traffic),
            ("D", self.connection_on_demand),
            ("l", self.is_local_address),
            ("d", self.is_direct),
        ]
        reachable = "R" if self.reachable else "-"
        return f"{cellular}{reachable} " + "".join(c if on else "-" for c, on in bits)


class ReachabilityStatus(Enum):
    """Coarse connectivity status."""

    UNREACHABLE = "No Connection"
    REACHABLE_WIFI = "WiFi"
    REACHABLE_CELLULAR = "Cellular"

    def __str__(self) -> str:
        return self.value


def classify(
    flags: ReachabilityFlags,
    allow_cellular: bool = True,
    on_device: bool = True,
) -> ReachabilityStatus:
    """
    Map a flag snapshot to a status.

    ``on_device`` is False for simulated or host environments, where the
    cellular bit is never trusted and every reachable path counts as WiFi.
    """
    if not flags.reachable:
        return ReachabilityStatus.UNREACHABLE

    if flags.connection_required and flags.transient_connection:
        return ReachabilityStatus.UNREACHABLE

    cellular = on_device and flags.is_cellular
    if cellular and not allow_cellular:
        return ReachabilityStatus.UNREACHABLE

    if cellular:
        return ReachabilityStatus.REACHABLE_CELLULAR
    return ReachabilityStatus.REACHABLE_WIFI


FlagsCallback = Callable[[ReachabilityFlags], None]


class ReachabilitySource(ABC):
    """
    Capability interface for connectivity flag backends.

    ``on_change`` registers (or, with None, clears) the callback that
    receives flag snapshots; ``start`` begins delivering them and ``stop``
    ends delivery. ``stop`` must be safe to call when not started.
    """

    @abstractmethod
    def current_flags(self) -> ReachabilityFlags:
        """Read the current flags; the all-false snapshot if unavailable."""

    @abstractmethod
    def on_change(self, callback: FlagsCallback | None) -> None:
        """Register the flag-change callback."""

    @abstractmethod
    def start(self) -> None:
        """Begin delivering flag snapshots to the callback."""

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering flag snapshots."""


@dataclass(frozen=True)
class ReachabilityChanged:
    """Event sent to listeners after a flag change has been processed."""

    monitor: "ReachabilityMonitor"
    status: ReachabilityStatus
    flags: ReachabilityFlags
    name: str = REACHABILITY_CHANGED


MonitorCallback = Callable[["ReachabilityMonitor"], None]
Listener = Callable[[ReachabilityChanged], None]


class ReachabilityMonitor:
    """
    Debouncing reachability monitor.

    States:
        Stopped: no callback registered with the source, no worker thread
        Running: source delivers flags, worker processes them in order

    Identical consecutive snapshots are skipped. For every other snapshot
    the matching ``when_reachable``/``when_unreachable`` callback is
    invoked with the monitor, then every listener receives a
    ReachabilityChanged event.
    """

    def __init__(
        self,
        source: ReachabilitySource,
        allow_cellular: bool = True,
        on_device: bool = True,
        name: str | None = None,
    ):
        self.source = source
        self.allow_cellular = allow_cellular
        self.on_device = on_device
        self.name = name or type(source).__name__

        self.when_reachable: MonitorCallback | None = None
        self.when_unreachable: MonitorCallback | None = None

        self._listeners: list[Listener] = []
        self._previous_flags: ReachabilityFlags | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._worker: threading.Thread | None = None
        self._running = False
        self._lock = threading.RLock()

    @classmethod
    def for_internet_connection(cls, interval: float = 5.0, **kwargs) -> "ReachabilityMonitor":
        """Monitor general internet connectivity via the host's interfaces."""
        from .sources import InterfaceReachabilitySource

        return cls(InterfaceReachabilitySource(interval=interval), **kwargs)

    @classmethod
    def for_local_wifi(cls, interval: float = 5.0, **kwargs) -> "ReachabilityMonitor":
        """Monitor link-local connectivity."""
        from .sources import InterfaceReachabilitySource

        return cls(InterfaceReachabilitySource(interval=interval, local_only=True), **kwargs)

    @classmethod
    def for_hostname(
        cls, hostname: str, port: int = 443, interval: float = 5.0, **kwargs
    ) -> "ReachabilityMonitor":
        """Monitor reachability of a specific host."""
        from .sources import HostnameReachabilitySource

        kwargs.setdefault("name", hostname)
        return cls(HostnameReachabilitySource(hostname, port=port, interval=interval), **kwargs)

    def __repr__(self) -> str:
        return f"ReachabilityMonitor[{self.name}]: {self.current_flags.describe(self.on_device)}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """
        Start monitoring.

        Raises:
            ReachabilitySetupError: the source rejected the callback or
                failed to start. Nothing stays registered and the monitor
                remains stopped.
        """
        with self._lock:
            if self._running:
                return

            try:
                self.source.on_change(self._flags_changed)
            except Exception as e:
                self._rollback()
                raise ReachabilitySetupError("set callback", f"Unable to set callback: {e}") from e

            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"reachability-{self.name}"
            )

            try:
                self.source.start()
            except Exception as e:
                self._rollback()
                raise ReachabilitySetupError(
                    "set dispatch queue", f"Unable to start reachability source: {e}"
                ) from e

            self._running = True
            # Initial check runs on the worker so it is ordered with source signals
            self._executor.submit(self._initial_check)

        logger.info(f"Reachability monitor '{self.name}' started")

    def stop(self) -> None:
        """Stop monitoring. Safe to call when already stopped."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            executor = self._executor
            self._executor = None

        # Outside the lock: a source thread may be blocked in _flags_changed
        self._release_source()
        if executor:
            # The worker cannot join itself when stop() runs inside a callback
            executor.shutdown(wait=threading.current_thread() is not self._worker)
        logger.info(f"Reachability monitor '{self.name}' stopped")

    def _rollback(self) -> None:
        self._release_source()
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _release_source(self) -> None:
        try:
            self.source.on_change(None)
        except Exception as e:
            logger.warning(f"Failed to clear reachability callback: {e}")
        try:
            self.source.stop()
        except Exception as e:
            logger.warning(f"Failed to stop reachability source: {e}")

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a listener for ReachabilityChanged events."""
        with self._lock:
            self._listeners = [*self._listeners, listener]

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners = [fn for fn in self._listeners if fn is not listener]

    # ------------------------------------------------------------------
    # Flag processing
    # ------------------------------------------------------------------

    def _flags_changed(self, flags: ReachabilityFlags) -> None:
        """Source callback; hands the snapshot to the serial worker."""
        with self._lock:
            if self._executor is None:
                return
            self._executor.submit(self._process, flags)

    def _initial_check(self) -> None:
        self._process(self.source.current_flags())

    def _process(self, flags: ReachabilityFlags) -> None:
        self._worker = threading.current_thread()
        try:
            self._reachability_changed(flags)
        except Exception as e:
            logger.error(f"Reachability monitor '{self.name}' failed to process flags: {e}")

    def _reachability_changed(self, flags: ReachabilityFlags) -> None:
        if flags == self._previous_flags:
            return

        status = classify(flags, self.allow_cellular, self.on_device)
        logger.debug(f"Reachability '{self.name}' flags {flags.describe(self.on_device)} -> {status}")

        if status is ReachabilityStatus.UNREACHABLE:
            callback = self.when_unreachable
        else:
            callback = self.when_reachable
        if callback:
            try:
                callback(self)
            except Exception as e:
                logger.warning(f"Reachability callback error: {e}")

        event = ReachabilityChanged(monitor=self, status=status, flags=flags)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Reachability listener error: {e}")

        self._previous_flags = flags

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_flags(self) -> ReachabilityFlags:
        return self.source.current_flags()

    @property
    def current_status(self) -> ReachabilityStatus:
        return classify(self.current_flags, self.allow_cellular, self.on_device)

    @property
    def current_status_string(self) -> str:
        return str(self.current_status)

    @property
    def last_flags(self) -> ReachabilityFlags | None:
        """Last processed snapshot, None before the first one."""
        return self._previous_flags

    @property
    def last_status(self) -> ReachabilityStatus | None:
        if self._previous_flags is None:
            return None
        return classify(self._previous_flags, self.allow_cellular, self.on_device)

    def is_reachable(self) -> bool:
        return self.current_status is not ReachabilityStatus.UNREACHABLE

    def is_reachable_via_wifi(self) -> bool:
        return self.current_status is ReachabilityStatus.REACHABLE_WIFI

    def is_reachable_via_cellular(self) -> bool:
        return self.current_status is ReachabilityStatus.REACHABLE_CELLULAR

    def is_connection_required(self) -> bool:
        """A connection must be established first (e.g. VPN on demand)."""
        return self.current_flags.connection_required

    def is_connection_on_demand(self) -> bool:
        flags = self.current_flags
        return flags.connection_required and flags.connection_on_traffic_or_demand

    def is_intervention_required(self) -> bool:
        flags = self.current_flags
        return flags.connection_required and flags.intervention_required
