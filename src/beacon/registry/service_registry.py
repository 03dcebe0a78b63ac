#!/usr/bin/env python3
"""
Service Registry over a single key-value table

This module provides:
- ServiceRegistry: register / deregister / get / list on top of a Store
- new_registry: build a ServiceRegistry for the configured backend
- DEFAULT_REGISTRIES: backend name -> factory

Service and node records share one table. A service version lives at
``(service, name###version)`` and each of its nodes at
``(node, name###version###node_id)``; all versions of a service and all nodes
of a version are found with sort-key prefix queries.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from ..config import RegistryConfig
from .dynamodb import DynamoDBStore
from .errors import (
    InvalidArgument,
    MarshalFailure,
    NotFound,
    PartialWriteFailure,
    QueryFailure,
    RecordError,
    StoreError,
    Unsupported,
    WriteFailure,
)
from .keys import (
    KIND_NODE,
    KIND_SERVICE,
    SEPARATOR_CHAR,
    has_separator,
    node_key,
    node_prefix,
    service_key,
    service_prefix,
)
from .records import (
    Item,
    node_to_record,
    record_to_node,
    record_to_service,
    service_to_record,
)
from .store import InMemoryStore, Store
from .types import Service

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Registry of services and their nodes, stored in one flat table.

    There is no in-process locking or caching: every call goes straight to
    the store, and concurrent registries sharing a table only get the store's
    per-item atomicity.
    """

    def __init__(self, store: Store, config: Optional[RegistryConfig] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.config = config if config is not None else RegistryConfig()
        self._clock = clock

    @property
    def name(self) -> str:
        return self.store.name

    def __str__(self) -> str:
        return self.name

    # -- writes -------------------------------------------------------------

    def register(self, service: Service, ttl: Optional[int] = None) -> None:
        """Write the service record and one record per node in a single batch.

        *ttl* (seconds) overrides the configured default. When positive, every
        record is stamped with ``now + ttl`` and left for the store to expire.
        """
        if not service.nodes:
            raise InvalidArgument("require at least one node to register service")
        self._validate_names(service, [n.id for n in service.nodes])

        ttl = self.config.ttl if ttl is None else ttl
        expiry = int(self._clock()) + int(ttl) if ttl and ttl > 0 else None

        try:
            items = [service_to_record(service, expiry)]
            items.extend(node_to_record(service, node, expiry) for node in service.nodes)
        except RecordError as e:
            raise MarshalFailure("register", str(e)) from e

        try:
            unprocessed = self.store.batch_put(items)
        except RecordError as e:
            raise MarshalFailure("register", str(e)) from e
        except StoreError as e:
            raise WriteFailure("register", str(e)) from e

        # Which items failed is not reported; callers retry the whole call
        if unprocessed:
            raise PartialWriteFailure("register", len(unprocessed))

        logger.info(
            "Registered %s %s with %d node(s)%s",
            service.name, service.version, len(service.nodes),
            f", expires at {expiry}" if expiry else "",
        )

    def deregister(self, service: Service, node_id: Optional[str] = None) -> None:
        """Remove nodes of one service version, then the service record if
        no nodes remain under it.

        With *node_id* only that node is removed; otherwise every node listed
        on *service*. The emptiness check and the service delete are two
        separate store calls, so a concurrent register in between can lose
        its service record.
        """
        if node_id is not None:
            targets = [node_id]
        else:
            targets = [n.id for n in service.nodes]
        if not targets:
            raise InvalidArgument("require at least one node to deregister")
        self._validate_names(service, targets)

        for nid in targets:
            try:
                self.store.delete(KIND_NODE, node_key(service.name, service.version, nid))
            except StoreError as e:
                raise WriteFailure("deregister", f"node {nid}: {e}") from e
            logger.info("Deregistered node %s of %s %s", nid, service.name, service.version)

        try:
            versions = self._lookup(service.name, "deregister")
        except NotFound:
            return

        for srv in versions:
            if srv.version == service.version and not srv.nodes:
                try:
                    self.store.delete(KIND_SERVICE, service_key(service.name, service.version))
                except StoreError as e:
                    raise WriteFailure("deregister", f"service {service.name}: {e}") from e
                logger.info("Removed service %s %s (no nodes left)", service.name, service.version)

    # -- reads --------------------------------------------------------------

    def get_service(self, name: str) -> List[Service]:
        """Return every registered version of *name*, each with its nodes."""
        return self._lookup(name, "get")

    def list_services(self) -> List[Service]:
        """Return every registered service version, without nodes."""
        items = self._query("list", KIND_SERVICE)
        return [self._to_service(item, "list") for item in items]

    def watch(self, *args, **kwargs):
        raise Unsupported(f"{self.name} registry does not support watch")

    # -- helpers ------------------------------------------------------------

    def _lookup(self, name: str, operation: str) -> List[Service]:
        records = self._query(operation, KIND_SERVICE, service_prefix(name))
        # Rows written before '#' was reserved can still share a key prefix
        records = [r for r in records if r.get("service") == name]
        if not records:
            raise NotFound(f"service {name} not found")

        services = []
        for item in records:
            service = self._to_service(item, operation)
            nodes = [
                n for n in self._query(operation, KIND_NODE, node_prefix(name, service.version))
                if n.get("service") == name and n.get("version") == service.version
            ]
            try:
                service.nodes = [record_to_node(n) for n in nodes]
            except RecordError as e:
                raise MarshalFailure(operation, str(e)) from e
            services.append(service)
        return services

    def _query(self, operation: str, kind: str, prefix: Optional[str] = None) -> List[Item]:
        try:
            return self.store.query(kind, prefix, consistent=self.config.consistent_read)
        except StoreError as e:
            raise QueryFailure(operation, str(e)) from e

    @staticmethod
    def _to_service(item: Item, operation: str) -> Service:
        try:
            return record_to_service(item)
        except RecordError as e:
            raise MarshalFailure(operation, str(e)) from e

    @staticmethod
    def _validate_names(service: Service, node_ids: List[str]) -> None:
        # '#' anywhere in a component would make prefix queries ambiguous
        components = [("service name", service.name), ("version", service.version)]
        components.extend(("node id", nid) for nid in node_ids)
        for label, value in components:
            if not isinstance(value, str):
                raise InvalidArgument(f"{label} must be a string, got {type(value).__name__}")
            if not value:
                raise InvalidArgument(f"{label} must not be empty")
            if has_separator(value):
                raise InvalidArgument(f"{label} {value!r} must not contain {SEPARATOR_CHAR!r}")


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------

def _new_dynamodb_registry(config: RegistryConfig, client=None) -> ServiceRegistry:
    store = DynamoDBStore(
        config.table_name,
        client=client,
        region=config.region,
        endpoint_url=config.endpoint_url,
    )
    return ServiceRegistry(store, config)


def _new_memory_registry(config: RegistryConfig, client=None) -> ServiceRegistry:
    return ServiceRegistry(InMemoryStore(), config)


DEFAULT_REGISTRIES: Dict[str, Callable[..., ServiceRegistry]] = {
    "dynamodb": _new_dynamodb_registry,
    "memory": _new_memory_registry,
}


def new_registry(config: Optional[RegistryConfig] = None, client=None) -> ServiceRegistry:
    """Build a registry for ``config.backend``.

    *client* is an optional pre-built DynamoDB client, e.g. one wrapped in a
    botocore Stubber or pointed at DynamoDB Local.
    """
    config = config if config is not None else RegistryConfig()
    factory = DEFAULT_REGISTRIES.get(config.backend)
    if factory is None:
        raise ValueError(
            f"Unknown registry backend '{config.backend}' "
            f"(expected one of: {', '.join(sorted(DEFAULT_REGISTRIES))})"
        )
    return factory(config, client=client)
