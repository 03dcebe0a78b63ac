"""Domain model: services, their endpoints and the nodes serving them."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class Value:
    """A named, typed request/response schema with ordered children."""
    name: str
    type: str
    values: List['Value'] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Value':
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            values=[cls.from_dict(v) for v in data.get("values") or []],
        )


@dataclass
class Endpoint:
    """An RPC endpoint exposed by a service."""
    name: str
    request: Optional[Value] = None
    response: Optional[Value] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Endpoint':
        request = data.get("request")
        response = data.get("response")
        return cls(
            name=data.get("name", ""),
            request=Value.from_dict(request) if request else None,
            response=Value.from_dict(response) if response else None,
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Node:
    """A live network endpoint serving one service version."""
    id: str
    address: str
    port: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        return cls(
            id=str(data["id"]),
            address=data.get("address", ""),
            port=int(data.get("port", 0)),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Service:
    """A named, versioned service and (optionally) its nodes."""
    name: str
    version: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)
    endpoints: List[Endpoint] = field(default_factory=list)
    nodes: List[Node] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serialisable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Service':
        """Create from dictionary."""
        return cls(
            name=str(data["name"]),
            version=str(data.get("version", "")),
            metadata=dict(data.get("metadata") or {}),
            endpoints=[Endpoint.from_dict(e) for e in data.get("endpoints") or []],
            nodes=[Node.from_dict(n) for n in data.get("nodes") or []],
        )
