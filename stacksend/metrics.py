from __future__ import annotations

"""
Prometheus metrics for the StackSend escrow ledger and rate oracle.

We expose counters and histograms covering:
- remittances: created, funded, released (with fee), cancelled (with refunds)
- contributions: count and amount distribution
- rejections: failed calls by component and error code
- oracle: rate updates by pair, stale reads
- emergency withdrawals (owner escape hatch)

All metrics live in a dedicated registry so embedding apps can choose to merge
it or expose it directly.
"""


from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   component: "escrow" | "oracle"
#   code: error code string, e.g. "ERR_INVALID_STATUS"
#   operation: public operation name, e.g. "contribute"
# ────────────────────────────────────────────────────────────────────────────────

REMITTANCES_CREATED = Counter(
    "stacksend_remittances_created_total",
    "Total remittances created.",
    registry=REGISTRY,
)

REMITTANCES_FUNDED = Counter(
    "stacksend_remittances_funded_total",
    "Total remittances that reached their target.",
    registry=REGISTRY,
)

REMITTANCES_RELEASED = Counter(
    "stacksend_remittances_released_total",
    "Total remittances released to their recipient.",
    registry=REGISTRY,
)

REMITTANCES_CANCELLED = Counter(
    "stacksend_remittances_cancelled_total",
    "Total remittances cancelled by their creator.",
    registry=REGISTRY,
)

CONTRIBUTIONS = Counter(
    "stacksend_contributions_total",
    "Total successful contributions.",
    registry=REGISTRY,
)

VALUE_MOVED = Counter(
    "stacksend_value_moved_units_total",
    "Value moved by the escrow, in smallest units, by flow.",
    labelnames=("flow",),  # flow: "contributed" | "released" | "fee" | "refunded" | "emergency"
    registry=REGISTRY,
)

REJECTED_CALLS = Counter(
    "stacksend_rejected_calls_total",
    "Calls rejected with a domain error, by component, operation and code.",
    labelnames=("component", "operation", "code"),
    registry=REGISTRY,
)

RATE_UPDATES = Counter(
    "stacksend_oracle_rate_updates_total",
    "Accepted exchange-rate updates by pair.",
    labelnames=("pair",),
    registry=REGISTRY,
)

STALE_READS = Counter(
    "stacksend_oracle_stale_reads_total",
    "Fresh-rate reads rejected as stale, by pair.",
    labelnames=("pair",),
    registry=REGISTRY,
)

EMERGENCY_WITHDRAWALS = Counter(
    "stacksend_emergency_withdrawals_total",
    "Owner emergency withdrawals from the escrow pool.",
    registry=REGISTRY,
)

_AMOUNT_BUCKETS = (
    1_000.0,
    10_000.0,
    100_000.0,
    1_000_000.0,
    10_000_000.0,
    100_000_000.0,
    1_000_000_000.0,
    10_000_000_000.0,
)

CONTRIBUTION_AMOUNT = Histogram(
    "stacksend_contribution_amount_units",
    "Distribution of single contribution amounts (smallest units).",
    buckets=_AMOUNT_BUCKETS,
    registry=REGISTRY,
)

REFUND_BATCH_SIZE = Histogram(
    "stacksend_refund_batch_contributors",
    "Number of contributors refunded per cancellation.",
    buckets=(0.0, 1.0, 2.0, 5.0, 10.0, 25.0, 50.0, 100.0),
    registry=REGISTRY,
)


# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_created() -> None:
    REMITTANCES_CREATED.inc()


def record_contribution(amount: int, *, funded: bool) -> None:
    CONTRIBUTIONS.inc()
    CONTRIBUTION_AMOUNT.observe(float(amount))
    VALUE_MOVED.labels(flow="contributed").inc(amount)
    if funded:
        REMITTANCES_FUNDED.inc()


def record_release(net: int, fee: int) -> None:
    REMITTANCES_RELEASED.inc()
    VALUE_MOVED.labels(flow="released").inc(net)
    VALUE_MOVED.labels(flow="fee").inc(fee)


def record_cancel(refunded: int, contributors: int) -> None:
    REMITTANCES_CANCELLED.inc()
    VALUE_MOVED.labels(flow="refunded").inc(refunded)
    REFUND_BATCH_SIZE.observe(float(contributors))


def record_emergency_withdraw(amount: int) -> None:
    EMERGENCY_WITHDRAWALS.inc()
    VALUE_MOVED.labels(flow="emergency").inc(amount)


def record_rejection(component: str, operation: str, code: str) -> None:
    REJECTED_CALLS.labels(component=component, operation=operation, code=code).inc()


def record_rate_update(pair: str) -> None:
    RATE_UPDATES.labels(pair=pair).inc()


def record_stale_read(pair: str) -> None:
    STALE_READS.labels(pair=pair).inc()


def render_latest() -> bytes:
    """Prometheus text exposition of the StackSend registry."""
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "REMITTANCES_CREATED",
    "REMITTANCES_FUNDED",
    "REMITTANCES_RELEASED",
    "REMITTANCES_CANCELLED",
    "CONTRIBUTIONS",
    "VALUE_MOVED",
    "REJECTED_CALLS",
    "RATE_UPDATES",
    "STALE_READS",
    "EMERGENCY_WITHDRAWALS",
    "CONTRIBUTION_AMOUNT",
    "REFUND_BATCH_SIZE",
    "record_created",
    "record_contribution",
    "record_release",
    "record_cancel",
    "record_emergency_withdraw",
    "record_rejection",
    "record_rate_update",
    "record_stale_read",
    "render_latest",
]
