"""Tests for the re-registration heartbeat loop."""

from __future__ import annotations

from unittest import mock

import pytest

from beacon.heartbeat import run_heartbeat
from beacon.registry import (
    InMemoryStore,
    Node,
    PartialWriteFailure,
    Service,
    ServiceRegistry,
)


@pytest.fixture
def service() -> Service:
    return Service(name="svc", version="1", nodes=[Node(id="a", address="h", port=1)])


class TestHeartbeat:
    def test_refreshes_expiry_each_tick(self, service: Service) -> None:
        store = InMemoryStore()
        clock = iter([100, 110, 120])
        registry = ServiceRegistry(store, clock=lambda: next(clock))

        with mock.patch("beacon.heartbeat.time.sleep") as sleep:
            failures = run_heartbeat(registry, service, ttl=30, interval=10, iterations=3)

        assert failures == 0
        assert sleep.call_count == 2
        sleep.assert_called_with(10)
        assert store.get("node", "svc###1###a")["ttl"] == 150

    def test_failures_are_reported_and_retried(
        self, service: Service, capsys: pytest.CaptureFixture
    ) -> None:
        registry = mock.MagicMock(spec=ServiceRegistry)
        registry.register.side_effect = [PartialWriteFailure("register", 1), None]

        with mock.patch("beacon.heartbeat.time.sleep"):
            failures = run_heartbeat(registry, service, ttl=30, interval=10, iterations=2)

        assert failures == 1
        assert registry.register.call_count == 2
        err = capsys.readouterr().err
        assert "1 items were not registered" in err
        assert "init -> failing" in err
        assert "failing -> registered" in err

    def test_warns_when_interval_exceeds_ttl(
        self, service: Service, capsys: pytest.CaptureFixture
    ) -> None:
        registry = ServiceRegistry(InMemoryStore())
        with mock.patch("beacon.heartbeat.time.sleep"):
            run_heartbeat(registry, service, ttl=5, interval=10, iterations=1)
        assert "records may expire between ticks" in capsys.readouterr().err
