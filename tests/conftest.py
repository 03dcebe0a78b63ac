"""Shared fixtures: an in-memory registry and a small multi-version catalogue."""

from __future__ import annotations

from typing import Dict, List

import pytest

from beacon.config import RegistryConfig
from beacon.registry import InMemoryStore, Node, Service, ServiceRegistry

FIXED_NOW = 1_700_000_000


def _catalogue() -> Dict[str, List[Service]]:
    return {
        "foo": [
            Service(
                name="foo",
                version="1.0.0",
                nodes=[
                    Node(id="foo-1.0.0-123", address="localhost", port=9999),
                    Node(id="foo-1.0.0-321", address="localhost", port=9999),
                ],
            ),
            Service(
                name="foo",
                version="1.0.1",
                nodes=[Node(id="foo-1.0.1-321", address="localhost", port=6666)],
            ),
            Service(
                name="foo",
                version="1.0.3",
                nodes=[Node(id="foo-1.0.3-345", address="localhost", port=8888)],
            ),
        ],
        "bar": [
            Service(
                name="bar",
                version="default",
                nodes=[
                    Node(id="bar-1.0.0-123", address="localhost", port=9999),
                    Node(id="bar-1.0.0-321", address="localhost", port=9999),
                ],
            ),
            Service(
                name="bar",
                version="latest",
                nodes=[Node(id="bar-1.0.1-321", address="localhost", port=6666)],
            ),
        ],
    }


@pytest.fixture
def catalogue() -> Dict[str, List[Service]]:
    return _catalogue()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def registry(store: InMemoryStore) -> ServiceRegistry:
    return ServiceRegistry(store, RegistryConfig(backend="memory"), clock=lambda: FIXED_NOW)


@pytest.fixture
def populated(registry: ServiceRegistry, catalogue) -> ServiceRegistry:
    for versions in catalogue.values():
        for service in versions:
            registry.register(service)
    return registry
