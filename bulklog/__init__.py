"""
bulklog - Client library for shipping documents to bulk ingestion endpoints.

This package provides:
- BulkRequest/Document: the bulk request wire format
- BulkClient: asynchronous delivery returning a Future
- ReachabilityMonitor: connectivity status with change notifications

Usage:
    from bulklog import BulkClient, BulkRequest, Document, ReachabilityMonitor

Example:
    monitor = ReachabilityMonitor.for_internet_connection()
    monitor.start()

    client = BulkClient(receiver_url="https://logs.example.com", app_token="tok123")
    if monitor.is_reachable():
        future = client.execute(BulkRequest([Document('{"msg": "hi"}', "event")]))
        future.failure(lambda error, response, body: print(error))
        future.wait()
"""

from .bulk import BulkRequest, Document
from .client import BulkClient, TransportConfig, from_env, normalize_receiver_url
from .errors import (
    BulkLogError,
    DeserializationWarning,
    HTTPStatusError,
    ReachabilitySetupError,
    TransportError,
)
from .future import Failure, Future, Success
from .reachability import (
    REACHABILITY_CHANGED,
    ReachabilityChanged,
    ReachabilityFlags,
    ReachabilityMonitor,
    ReachabilitySource,
    ReachabilityStatus,
    classify,
)
from .sources import (
    HostnameReachabilitySource,
    InterfaceReachabilitySource,
    PollingReachabilitySource,
    StaticReachabilitySource,
)

__all__ = [
    # Wire format
    "BulkRequest",
    "Document",
    # Delivery
    "BulkClient",
    "TransportConfig",
    "from_env",
    "normalize_receiver_url",
    "Future",
    "Success",
    "Failure",
    # Errors
    "BulkLogError",
    "TransportError",
    "HTTPStatusError",
    "DeserializationWarning",
    "ReachabilitySetupError",
    # Reachability
    "ReachabilityMonitor",
    "ReachabilityFlags",
    "ReachabilityStatus",
    "ReachabilityChanged",
    "ReachabilitySource",
    "REACHABILITY_CHANGED",
    "classify",
    "PollingReachabilitySource",
    "InterfaceReachabilitySource",
    "HostnameReachabilitySource",
    "StaticReachabilitySource",
]

__version__ = "1.0.0"
