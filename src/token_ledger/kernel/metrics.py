"""
Prometheus metrics collection for the token ledger.

Provides observability into operations, supply, withdrawals and governance.
"""

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# ============================================================================
# Core Event Store Metrics
# ============================================================================

events_appended_total = Counter(
    "ledger_events_appended_total",
    "Total number of events appended to the event store",
    ["stream_type", "event_type"],
)

events_loaded_total = Counter(
    "ledger_events_loaded_total",
    "Total number of events loaded from the event store",
    ["stream_type"],
)

stream_version_conflicts_total = Counter(
    "ledger_stream_version_conflicts_total",
    "Total number of optimistic locking version conflicts",
    ["stream_type"],
)

# ============================================================================
# Operation Metrics
# ============================================================================

command_duration_seconds = Histogram(
    "ledger_command_duration_seconds",
    "Duration of ledger operations in seconds",
    ["command_type"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

commands_processed_total = Counter(
    "ledger_commands_processed_total",
    "Total number of ledger operations processed",
    ["command_type", "status"],  # status: success, rejected, failure
)

# ============================================================================
# Ledger State Metrics
# ============================================================================

total_supply_units = Gauge(
    "ledger_total_supply_units",
    "Total issued units (base units, 18 decimals)",
)

withdrawal_window_utilization_ratio = Gauge(
    "ledger_withdrawal_window_utilization_ratio",
    "Withdrawn in current window divided by daily withdrawal limit",
)

pending_proposals_total = Gauge(
    "ledger_pending_proposals_total",
    "Number of parameter change proposals awaiting execution",
)

paused_state = Gauge(
    "ledger_paused",
    "Pause switch state (1=paused, 0=running)",
)

supply_invariant_violations_total = Counter(
    "ledger_supply_invariant_violations_total",
    "Number of audits that found total supply != sum of balances",
)


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server.

    Args:
        port: Port to listen on (default: 9090)
    """
    start_http_server(port)


def update_ledger_metrics(
    total_supply: int,
    window_utilization: float,
    pending_proposals: int,
    paused: bool,
) -> None:
    """
    Update ledger state gauges.

    Args:
        total_supply: Current total supply in base units
        window_utilization: Fraction of the daily limit used in the current window
        pending_proposals: Proposals awaiting execution
        paused: Pause switch state
    """
    total_supply_units.set(total_supply)
    withdrawal_window_utilization_ratio.set(window_utilization)
    pending_proposals_total.set(pending_proposals)
    paused_state.set(1 if paused else 0)
