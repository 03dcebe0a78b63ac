"""Composite key layout for the registry table.

Service and node records share one table. The partition key is the record
kind; the sort key is the service name, version and (for nodes) node id
joined by ``SEPARATOR``, so that every node of a service version sorts
directly after the prefix ``name###version###``.
"""

SEPARATOR = "###"
SEPARATOR_CHAR = "#"

KIND_SERVICE = "service"
KIND_NODE = "node"
KINDS = (KIND_SERVICE, KIND_NODE)

# Attribute names of the table key schema
KIND_ATTR = "kind"
NAME_ATTR = "name"
TTL_ATTR = "ttl"


def service_key(name: str, version: str) -> str:
    return f"{name}{SEPARATOR}{version}"


def node_key(name: str, version: str, node_id: str) -> str:
    return f"{name}{SEPARATOR}{version}{SEPARATOR}{node_id}"


def service_prefix(name: str) -> str:
    """Prefix matching every version of *name*."""
    return f"{name}{SEPARATOR}"


def node_prefix(name: str, version: str) -> str:
    """Prefix matching every node of one service version."""
    return f"{name}{SEPARATOR}{version}{SEPARATOR}"


def has_separator(component: str) -> bool:
    """True when *component* contains any separator character.

    A ``#`` at either end of a component merges with the adjacent separator:
    ``foo#`` at version ``#1`` has the same key as ``foo`` at version ``##1``.
    The character itself is reserved, not just the full token.
    """
    return SEPARATOR_CHAR in component
