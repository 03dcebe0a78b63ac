"""Explicit mapping between domain objects and stored attribute maps.

Each record kind has a fixed field-to-attribute layout so the table schema
stays auditable. Items are plain dicts of Python values; turning them into
wire-level attribute values is the store's job.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from .errors import RecordError
from .keys import (
    KIND_ATTR,
    KIND_NODE,
    KIND_SERVICE,
    NAME_ATTR,
    TTL_ATTR,
    node_key,
    service_key,
)
from .types import Endpoint, Node, Service, Value

# DynamoDB caps documents at 32 nesting levels; each value level costs two
# (a map inside a list) and an endpoint adds three more on top.
MAX_VALUE_DEPTH = 10

Item = Dict[str, Any]


# ---------------------------------------------------------------------------
# Endpoint / value trees
# ---------------------------------------------------------------------------

def value_to_attr(value: Value, depth: int = 1) -> Item:
    if depth > MAX_VALUE_DEPTH:
        raise RecordError(f"value '{value.name}' nests deeper than {MAX_VALUE_DEPTH} levels")
    return {
        "name": value.name,
        "type": value.type,
        "values": [value_to_attr(v, depth + 1) for v in value.values],
    }


def attr_to_value(attr: Item, depth: int = 1) -> Value:
    if depth > MAX_VALUE_DEPTH:
        raise RecordError(f"stored value nests deeper than {MAX_VALUE_DEPTH} levels")
    if not isinstance(attr, dict):
        raise RecordError(f"expected a value map, got {type(attr).__name__}")
    return Value(
        name=attr.get("name", ""),
        type=attr.get("type", ""),
        values=[attr_to_value(v, depth + 1) for v in attr.get("values") or []],
    )


def endpoint_to_attr(endpoint: Endpoint) -> Item:
    attr: Item = {
        "name": endpoint.name,
        "metadata": _str_map(endpoint.metadata),
    }
    # Absent rather than NULL so the stored map mirrors the dataclass
    if endpoint.request is not None:
        attr["request"] = value_to_attr(endpoint.request)
    if endpoint.response is not None:
        attr["response"] = value_to_attr(endpoint.response)
    return attr


def attr_to_endpoint(attr: Item) -> Endpoint:
    if not isinstance(attr, dict):
        raise RecordError(f"expected an endpoint map, got {type(attr).__name__}")
    request = attr.get("request")
    response = attr.get("response")
    return Endpoint(
        name=attr.get("name", ""),
        request=attr_to_value(request) if request is not None else None,
        response=attr_to_value(response) if response is not None else None,
        metadata=_str_map(attr.get("metadata")),
    )


# ---------------------------------------------------------------------------
# Service and node records
# ---------------------------------------------------------------------------

def service_to_record(service: Service, expiry: Optional[int] = None) -> Item:
    item: Item = {
        KIND_ATTR: KIND_SERVICE,
        NAME_ATTR: service_key(service.name, service.version),
        "service": service.name,
        "version": service.version,
        "metadata": _str_map(service.metadata),
        "endpoints": [endpoint_to_attr(e) for e in service.endpoints],
    }
    if expiry:
        item[TTL_ATTR] = int(expiry)
    return item


def record_to_service(item: Item) -> Service:
    """Build a Service (without nodes) from a stored service record."""
    _check_kind(item, KIND_SERVICE)
    try:
        return Service(
            name=item["service"],
            version=item["version"],
            metadata=_str_map(item.get("metadata")),
            endpoints=[attr_to_endpoint(e) for e in item.get("endpoints") or []],
        )
    except KeyError as e:
        raise RecordError(f"service record {item.get(NAME_ATTR)!r} is missing {e}") from e


def node_to_record(service: Service, node: Node, expiry: Optional[int] = None) -> Item:
    item: Item = {
        KIND_ATTR: KIND_NODE,
        NAME_ATTR: node_key(service.name, service.version, node.id),
        "service": service.name,
        "version": service.version,
        "node_id": node.id,
        "address": node.address,
        "port": int(node.port),
        "metadata": _str_map(node.metadata),
    }
    if expiry:
        item[TTL_ATTR] = int(expiry)
    return item


def record_to_node(item: Item) -> Node:
    _check_kind(item, KIND_NODE)
    try:
        return Node(
            id=item["node_id"],
            address=item.get("address", ""),
            port=_to_int(item.get("port", 0)),
            metadata=_str_map(item.get("metadata")),
        )
    except KeyError as e:
        raise RecordError(f"node record {item.get(NAME_ATTR)!r} is missing {e}") from e


def record_expiry(item: Item) -> int:
    """Return the stored expiry timestamp, 0 when the record never expires."""
    return _to_int(item.get(TTL_ATTR) or 0)


def _check_kind(item: Item, kind: str) -> None:
    if item.get(KIND_ATTR) != kind:
        raise RecordError(
            f"expected a {kind} record, got kind={item.get(KIND_ATTR)!r}"
        )


def _to_int(raw: Any) -> int:
    # boto3 hands numbers back as Decimal
    if isinstance(raw, Decimal):
        return int(raw)
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise RecordError(f"expected a number, got {raw!r}") from e


def _str_map(raw: Any) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RecordError(f"expected a string map, got {type(raw).__name__}")
    return {str(k): str(v) for k, v in raw.items()}
