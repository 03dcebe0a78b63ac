"""
Service Discovery Registry

This package provides:
1. ServiceRegistry: register / deregister / look up services and their nodes
2. DynamoDBStore: single-table DynamoDB backend
3. InMemoryStore: dict-backed backend for tests and local runs
4. new_registry: builds a registry for a RegistryConfig
"""

from .dynamodb import DynamoDBStore
from .errors import (
    BackendFailure,
    InvalidArgument,
    MarshalFailure,
    NotFound,
    PartialWriteFailure,
    QueryFailure,
    RegistryError,
    Unsupported,
    WriteFailure,
)
from .service_registry import DEFAULT_REGISTRIES, ServiceRegistry, new_registry
from .store import InMemoryStore, Store
from .types import Endpoint, Node, Service, Value

__version__ = '0.1.0'
__all__ = [
    'ServiceRegistry',
    'new_registry',
    'DEFAULT_REGISTRIES',
    'Store',
    'InMemoryStore',
    'DynamoDBStore',
    'Service',
    'Node',
    'Endpoint',
    'Value',
    'RegistryError',
    'InvalidArgument',
    'NotFound',
    'Unsupported',
    'BackendFailure',
    'MarshalFailure',
    'QueryFailure',
    'WriteFailure',
    'PartialWriteFailure',
]
