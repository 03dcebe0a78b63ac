"""Configuration loading and merging for Beacon."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml


DEFAULT_TABLE_NAME = "beacon-registry"


@dataclass
class RegistryConfig:
    # Store backend: "dynamodb" or "memory"
    backend: str = "dynamodb"

    # DynamoDB table holding both service and node records
    table_name: str = DEFAULT_TABLE_NAME
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    # Default registration TTL in seconds; 0 means records never expire
    ttl: int = 0

    # Strongly consistent reads for get/list queries
    consistent_read: bool = True

    # Seconds between re-registrations in heartbeat mode
    heartbeat_interval: int = 30


def load_config(path: str | Path) -> RegistryConfig:
    """Load a RegistryConfig from a YAML file."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    # Unknown keys are ignored so one file can carry other tools' settings
    valid_fields = {f.name for f in fields(RegistryConfig)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return RegistryConfig(**filtered)


def merge_cli_args(config: RegistryConfig, args) -> RegistryConfig:
    """Overlay CLI arguments onto an existing config. CLI values take precedence."""
    for f in fields(RegistryConfig):
        cli_val = getattr(args, f.name, None)
        if cli_val is not None:
            setattr(config, f.name, cli_val)
    return config


def config_to_yaml(config: RegistryConfig) -> str:
    """Serialize a RegistryConfig to YAML, leaving unset optional fields out."""
    data: dict = {}
    data["backend"] = config.backend
    data["table_name"] = config.table_name
    if config.region:
        data["region"] = config.region
    if config.endpoint_url:
        data["endpoint_url"] = config.endpoint_url
    data["ttl"] = config.ttl
    data["consistent_read"] = config.consistent_read
    data["heartbeat_interval"] = config.heartbeat_interval
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
