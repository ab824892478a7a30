"""
Prometheus instrumentation for tokenledger contracts.

Counts entry-point outcomes and tracks total supply per token. Helpers are
safe to call from inside a contract call and do nothing when metrics are
disabled through ``TOKENLEDGER_METRICS_ENABLED=0``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

from .config import SETTINGS

operations_counter = Counter(
    "tokenledger_operations_total",
    "Contract entry-point calls by outcome (ok, failed, rejected)",
    ["operation", "outcome"],
)

total_supply_gauge = Gauge(
    "tokenledger_total_supply", "Current total supply by token address", ["token"]
)


def record_operation(operation: str, outcome: str) -> None:
    """Increment the call counter for an entry point."""
    if not SETTINGS.metrics_enabled:
        return

    operations_counter.labels(operation=operation, outcome=outcome).inc()


def update_total_supply(token: str, total_supply: int) -> None:
    """Set the supply gauge for a token address after deployment, mint or burn."""
    if not SETTINGS.metrics_enabled or not token:
        return

    # Gauges hold floats; very large supplies are approximate.
    total_supply_gauge.labels(token=token).set(float(total_supply))
