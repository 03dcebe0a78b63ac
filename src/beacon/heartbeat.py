"""Keep a service registered by re-registering it before its TTL runs out."""

import sys
import time
from typing import Optional

from .registry import RegistryError, Service, ServiceRegistry


def run_heartbeat(
    registry: ServiceRegistry,
    service: Service,
    ttl: int,
    interval: int = 30,
    iterations: Optional[int] = None,
) -> int:
    """Re-register *service* with *ttl* every *interval* seconds.

    Each tick rewrites the service and node records with a fresh expiry, so
    *interval* should stay well below *ttl*. A failed tick is reported on
    stderr and retried at the next one. Runs forever unless *iterations* is
    given; returns the number of failed ticks.
    """
    if ttl > 0 and interval >= ttl:
        print(
            f"[heartbeat] warning: interval {interval}s >= ttl {ttl}s,"
            " records may expire between ticks",
            file=sys.stderr,
        )

    failures = 0
    last_ok: Optional[bool] = None
    tick = 0

    while iterations is None or tick < iterations:
        try:
            registry.register(service, ttl=ttl)
            ok = True
        except RegistryError as e:
            ok = False
            failures += 1
            print(f"[heartbeat] {service.name} {service.version}: {e}", file=sys.stderr)

        if ok != last_ok:
            print(
                f"[heartbeat] {service.name} {service.version}: "
                f"{_state(last_ok)} -> {_state(ok)}",
                file=sys.stderr,
            )
            last_ok = ok

        tick += 1
        if iterations is None or tick < iterations:
            time.sleep(interval)

    return failures


def _state(ok: Optional[bool]) -> str:
    if ok is None:
        return "init"
    return "registered" if ok else "failing"
