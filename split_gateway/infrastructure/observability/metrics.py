"""Prometheus metrics for split creation, allocation rejections and settlement activity"""

from prometheus_client import Counter, Histogram

# Split metrics
split_created_counter = Counter(
    "split_created_total",
    "Total splits saved",
    ["method"],  # equal | percentage | custom | itemized
)

allocation_rejected_counter = Counter(
    "split_allocation_rejected_total",
    "Allocations refused at save time",
    ["reason"],  # incomplete_allocation | unassigned_item | zero_participants | ...
)

split_deleted_counter = Counter(
    "split_deleted_total",
    "Splits deleted by their owner",
)

split_participants_histogram = Histogram(
    "split_participants",
    "Participants per saved split",
    buckets=[1, 2, 3, 4, 6, 8, 12, 20, 50],
)

# Settlement metrics
settlement_change_counter = Counter(
    "split_settlement_change_total",
    "Participant settlement status changes",
    ["status", "actor"],  # paid | pending ; self | owner
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_split_created(method: str, participant_count: int) -> None:
    """Record split metrics for method mix and group-size distribution"""
    split_created_counter.labels(method=method).inc()
    split_participants_histogram.observe(participant_count)


def record_allocation_rejected(reason: str) -> None:
    allocation_rejected_counter.labels(reason=reason).inc()


def record_settlement_change(status: str, actor: str) -> None:
    settlement_change_counter.labels(status=status, actor=actor).inc()
