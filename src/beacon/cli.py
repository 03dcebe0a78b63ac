"""CLI entry point for Beacon."""

import argparse
import json
import sys
from pathlib import Path

import yaml

from .config import RegistryConfig, load_config, merge_cli_args
from .heartbeat import run_heartbeat
from .registry import (
    DynamoDBStore,
    NotFound,
    RegistryError,
    Service,
    ServiceRegistry,
    new_registry,
)
from .registry.errors import StoreError


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add config flags shared by every subcommand."""
    parser.add_argument("--config", type=str, help="Path to YAML config file")
    parser.add_argument(
        "--backend", type=str, choices=["dynamodb", "memory"],
        help="Registry store backend (default: dynamodb). 'memory' keeps records "
             "only for the current process, so they are gone when the command exits",
    )
    parser.add_argument(
        "--table-name", type=str, dest="table_name",
        help="DynamoDB table holding the registry (default: beacon-registry)",
    )
    parser.add_argument("--region", type=str, help="AWS region of the table")
    parser.add_argument(
        "--endpoint-url", type=str, dest="endpoint_url",
        help="Override the DynamoDB endpoint, e.g. http://localhost:8000 for DynamoDB Local",
    )


def _add_format_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )


def _build_config(args) -> RegistryConfig:
    """Build a RegistryConfig from a config file + CLI overrides."""
    if args.config:
        config = load_config(args.config)
    else:
        config = RegistryConfig()
    merge_cli_args(config, args)
    return config


def _build_registry(args) -> ServiceRegistry:
    return new_registry(_build_config(args))


def load_service_file(path: str | Path) -> Service:
    """Load a service description (name, version, metadata, endpoints, nodes) from YAML.

    Versions must be strings: an unquoted ``version: 1.10`` parses as the float
    1.1, so floats are rejected rather than silently rewritten.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if "name" not in data:
        raise ValueError(f"{path}: service file must set 'name'")
    version = data.get("version")
    if isinstance(version, float):
        raise ValueError(
            f"{path}: version {version!r} parsed as a number; quote it, e.g. version: \"1.10\""
        )
    return Service.from_dict(data)


def _load_service_or_exit(path: str) -> Service:
    try:
        return load_service_file(path)
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        print(f"Error: could not load service file '{path}': {e}", file=sys.stderr)
        sys.exit(1)


def _format_services(services, fmt: str) -> str:
    """Format a list of Service objects for output."""
    if fmt == "json":
        return json.dumps([s.to_dict() for s in services], indent=2)
    lines = []
    for s in services:
        lines.append(f"{s.name}  {s.version}  nodes={len(s.nodes)}")
        for n in s.nodes:
            lines.append(f"  {n.id}  {n.address}:{n.port}")
    return "\n".join(lines) if lines else "(no services)"


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def cmd_create_table(args) -> None:
    """Create the DynamoDB table and enable TTL on it."""
    registry = _build_registry(args)
    if not isinstance(registry.store, DynamoDBStore):
        print(f"Backend '{registry.name}' has no table to create.", file=sys.stderr)
        return
    try:
        registry.store.create_table(wait=not args.no_wait)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Created table {registry.store.table_name}", file=sys.stderr)


def cmd_register(args) -> None:
    service = _load_service_or_exit(args.service_file)
    registry = _build_registry(args)
    registry.register(service, ttl=args.ttl)
    print(
        f"Registered {service.name} {service.version} ({len(service.nodes)} node(s))",
        file=sys.stderr,
    )


def cmd_deregister(args) -> None:
    service = _load_service_or_exit(args.service_file)
    registry = _build_registry(args)
    registry.deregister(service, node_id=args.node_id)
    print(f"Deregistered {service.name} {service.version}", file=sys.stderr)


def cmd_get(args) -> None:
    registry = _build_registry(args)
    try:
        services = registry.get_service(args.name)
    except NotFound:
        print(f"Service '{args.name}' not found.", file=sys.stderr)
        sys.exit(1)
    print(_format_services(services, args.format))


def cmd_list(args) -> None:
    registry = _build_registry(args)
    print(_format_services(registry.list_services(), args.format))


def cmd_heartbeat(args) -> None:
    """Keep a service registered until interrupted."""
    service = _load_service_or_exit(args.service_file)
    config = _build_config(args)
    registry = new_registry(config)
    ttl = args.ttl if args.ttl is not None else config.ttl
    interval = args.interval if args.interval is not None else config.heartbeat_interval
    if ttl <= 0:
        print("Error: heartbeat needs a positive --ttl (or 'ttl' in the config).", file=sys.stderr)
        sys.exit(1)
    print(
        f"Heartbeat for {service.name} {service.version}: ttl={ttl}s interval={interval}s",
        file=sys.stderr,
    )
    try:
        run_heartbeat(registry, service, ttl=ttl, interval=interval)
    except KeyboardInterrupt:
        pass


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="beacon",
        description="Beacon: service discovery registry on a single DynamoDB table",
    )
    subparsers = parser.add_subparsers(dest="command")

    # create-table
    create_parser = subparsers.add_parser(
        "create-table", help="Create the registry table and enable TTL",
    )
    _add_common_args(create_parser)
    create_parser.add_argument(
        "--no-wait", action="store_true", dest="no_wait",
        help="Return without waiting for the table to become active",
    )
    create_parser.set_defaults(func=cmd_create_table)

    # register
    reg_parser = subparsers.add_parser("register", help="Register a service and its nodes")
    _add_common_args(reg_parser)
    reg_parser.add_argument("service_file", type=str, help="YAML service description")
    reg_parser.add_argument(
        "--ttl", type=int, default=None,
        help="Seconds until the records expire (default: config 'ttl', 0 = never)",
    )
    reg_parser.set_defaults(func=cmd_register)

    # deregister
    dereg_parser = subparsers.add_parser("deregister", help="Deregister service nodes")
    _add_common_args(dereg_parser)
    dereg_parser.add_argument("service_file", type=str, help="YAML service description")
    dereg_parser.add_argument(
        "--node-id", type=str, dest="node_id", default=None,
        help="Remove only this node (default: every node in the file)",
    )
    dereg_parser.set_defaults(func=cmd_deregister)

    # get
    get_parser = subparsers.add_parser("get", help="Show every version of a service")
    _add_common_args(get_parser)
    _add_format_arg(get_parser)
    get_parser.add_argument("name", type=str, help="Service name")
    get_parser.set_defaults(func=cmd_get)

    # list
    list_parser = subparsers.add_parser("list", help="List registered services")
    _add_common_args(list_parser)
    _add_format_arg(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # heartbeat
    hb_parser = subparsers.add_parser(
        "heartbeat", help="Re-register a service periodically so it does not expire",
    )
    _add_common_args(hb_parser)
    hb_parser.add_argument("service_file", type=str, help="YAML service description")
    hb_parser.add_argument("--ttl", type=int, default=None, help="Record TTL in seconds")
    hb_parser.add_argument(
        "--interval", type=int, default=None,
        help="Seconds between re-registrations (default: config 'heartbeat_interval')",
    )
    hb_parser.set_defaults(func=cmd_heartbeat)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
