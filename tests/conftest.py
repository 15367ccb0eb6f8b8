"""Pytest configuration and shared fixtures for bulklog tests."""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator

import httpx
import pytest

from bulklog import (
    BulkClient,
    BulkRequest,
    Document,
    ReachabilityChanged,
    ReachabilityMonitor,
    StaticReachabilitySource,
    TransportConfig,
)

from strategies import WIFI_FLAGS


class EventRecorder:
    """Listener that records ReachabilityChanged events and lets tests wait for them."""

    def __init__(self):
        self.events: list[ReachabilityChanged] = []
        self._cond = threading.Condition()

    def __call__(self, event: ReachabilityChanged) -> None:
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.events) >= count, timeout)

    @property
    def statuses(self) -> list:
        return [event.status for event in self.events]


@pytest.fixture
def sample_documents() -> list[Document]:
    """Return a small batch of documents."""
    return [
        Document('{"message": "started", "level": "info"}', "event"),
        Document('  {"message": "failed", "level": "error"}\n', "event"),
        Document('{"metric": "latency", "value": 12.5}', "metric"),
    ]


@pytest.fixture
def sample_batch(sample_documents: list[Document]) -> BulkRequest:
    return BulkRequest(sample_documents)


@pytest.fixture
def make_client() -> Generator[Callable[..., BulkClient], None, None]:
    """Factory for clients backed by an httpx MockTransport handler."""
    clients: list[BulkClient] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        receiver_url: str = "http://logs.example.com",
        app_token: str = "tok123",
        **config_kwargs,
    ) -> BulkClient:
        client = BulkClient(
            receiver_url=receiver_url,
            app_token=app_token,
            config=TransportConfig(**config_kwargs),
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def static_source() -> StaticReachabilitySource:
    return StaticReachabilitySource(WIFI_FLAGS)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def monitor(static_source: StaticReachabilitySource) -> Generator[ReachabilityMonitor, None, None]:
    """A stopped monitor over a static source; stopped again on teardown."""
    mon = ReachabilityMonitor(static_source, name="test")
    yield mon
    mon.stop()
