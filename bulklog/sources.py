"""
Reachability flag sources.

InterfaceReachabilitySource and HostnameReachabilitySource poll the host's
network interfaces (via psutil) and DNS; StaticReachabilitySource is driven
by the caller and is what tests and embedding applications with their own
connectivity signal use.
"""

from __future__ import annotations

import dataclasses
import ipaddress
import logging
import socket
import threading
from abc import abstractmethod

import psutil

from .reachability import FlagsCallback, ReachabilityFlags, ReachabilitySource

logger = logging.getLogger(__name__)

# Interface naming conventions for mobile broadband links
CELLULAR_INTERFACE_PREFIXES = ("wwan", "pdp_ip", "rmnet", "cellular")


def is_cellular_interface(name: str) -> bool:
    return name.lower().startswith(CELLULAR_INTERFACE_PREFIXES)


def _parse_ip(address: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        # Strip IPv6 zone index, e.g. fe80::1%eth0
        return ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return None


def interface_flags(local_only: bool = False) -> ReachabilityFlags:
    """
    Derive reachability flags from the host's interfaces.

    An up, non-loopback interface carrying a routable address makes the
    internet reachable; WiFi/wired interfaces win over cellular ones. With
    ``local_only`` a link-local address is enough, and the path is reported
    as local and direct.
    """
    stats = psutil.net_if_stats()
    addrs = psutil.net_if_addrs()

    routable = False
    routable_non_cellular = False
    link_local = False

    for iface, st in stats.items():
        if not st.isup:
            continue
        cellular = is_cellular_interface(iface)
        for addr in addrs.get(iface, []):
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            ip = _parse_ip(addr.address)
            if ip is None or ip.is_loopback or ip.is_unspecified:
                continue
            if ip.is_link_local:
                if not cellular:
                    link_local = True
                continue
            routable = True
            if not cellular:
                routable_non_cellular = True

    if local_only:
        reachable = link_local or routable_non_cellular
        return ReachabilityFlags(
            reachable=reachable,
            is_local_address=reachable,
            is_direct=reachable,
        )

    return ReachabilityFlags(
        reachable=routable,
        is_cellular=routable and not routable_non_cellular,
    )


class PollingReachabilitySource(ReachabilitySource):
    """
    Base for sources that sample flags periodically.

    Every sample is delivered, changed or not; the monitor debounces.
    """

    def __init__(self, interval: float = 5.0):
        self.interval = interval
        self._callback: FlagsCallback | None = None
        self._shutdown = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @abstractmethod
    def _read_flags(self) -> ReachabilityFlags:
        """Sample the flags once; may raise OSError or psutil.Error."""

    def current_flags(self) -> ReachabilityFlags:
        try:
            return self._read_flags()
        except (OSError, psutil.Error) as e:
            logger.debug(f"Reading reachability flags failed: {e}")
            return ReachabilityFlags()

    def on_change(self, callback: FlagsCallback | None) -> None:
        with self._lock:
            self._callback = callback

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._shutdown.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name=f"{type(self).__name__}-poll"
        )
        self._thread.start()

    def stop(self) -> None:
        self._shutdown.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)

    def _poll_loop(self) -> None:
        """Background thread that samples and delivers flags."""
        while not self._shutdown.is_set():
            self._shutdown.wait(self.interval)
            if self._shutdown.is_set():
                break
            flags = self.current_flags()
            with self._lock:
                callback = self._callback
            if callback:
                callback(flags)


class InterfaceReachabilitySource(PollingReachabilitySource):
    """Flags for general internet (or link-local) connectivity."""

    def __init__(self, interval: float = 5.0, local_only: bool = False):
        super().__init__(interval=interval)
        self.local_only = local_only

    def _read_flags(self) -> ReachabilityFlags:
        return interface_flags(local_only=self.local_only)


class HostnameReachabilitySource(PollingReachabilitySource):
    """Flags for the path to a specific host: interfaces plus DNS resolution."""

    def __init__(self, hostname: str, port: int = 443, interval: float = 5.0):
        super().__init__(interval=interval)
        self.hostname = hostname
        self.port = port

    def _resolve(self) -> list:
        infos = socket.getaddrinfo(self.hostname, self.port, type=socket.SOCK_STREAM)
        return [ip for ip in (_parse_ip(info[4][0]) for info in infos) if ip is not None]

    def _read_flags(self) -> ReachabilityFlags:
        try:
            addresses = self._resolve()
        except (socket.gaierror, UnicodeError) as e:
            logger.debug(f"Could not resolve {self.hostname}: {e}")
            return ReachabilityFlags()

        if any(ip.is_loopback for ip in addresses):
            return ReachabilityFlags(reachable=True, is_local_address=True, is_direct=True)

        flags = interface_flags()
        if not addresses:
            return dataclasses.replace(flags, reachable=False)
        return dataclasses.replace(
            flags,
            is_local_address=any(ip.is_private for ip in addresses),
            is_direct=any(ip.is_link_local for ip in addresses),
        )


class StaticReachabilitySource(ReachabilitySource):
    """
    Caller-driven source.

    ``set_flags`` stores a snapshot and, once started, delivers it to the
    registered callback synchronously on the calling thread.
    """

    def __init__(self, flags: ReachabilityFlags | None = None):
        self._flags = flags or ReachabilityFlags()
        self._callback: FlagsCallback | None = None
        self._started = False
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self._started

    def current_flags(self) -> ReachabilityFlags:
        return self._flags

    def on_change(self, callback: FlagsCallback | None) -> None:
        with self._lock:
            self._callback = callback

    def start(self) -> None:
        self._started = True

    def stop(self) -> None:
        self._started = False

    def set_flags(self, flags: ReachabilityFlags) -> None:
        with self._lock:
            self._flags = flags
            callback = self._callback if self._started else None
        if callback:
            callback(flags)
