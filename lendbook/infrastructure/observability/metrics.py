"""Prometheus metrics for ledger activity, credit scores and reminder delivery"""

from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_operation_counter = Counter(
    "lendbook_ledger_operations_total",
    "Ledger operations attempted",
    ["operation", "outcome"],  # outcome: committed | rejected | failed
)

persistence_failure_counter = Counter(
    "lendbook_persistence_failures_total",
    "Commits that failed and were rolled back",
    ["operation"],
)

agreement_closure_counter = Counter(
    "lendbook_agreement_closure_transitions_total",
    "Agreements closed or reopened by ledger operations",
    ["transition"],  # closed | reopened
)

# Credit metrics
credit_profile_counter = Counter(
    "lendbook_credit_profiles_calculated_total",
    "Credit profiles calculated",
    ["risk_level"],
)

credit_score_histogram = Histogram(
    "lendbook_credit_score",
    "Distribution of calculated credit scores",
    buckets=[10, 20, 30, 40, 50, 60, 75, 90, 100],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "lendbook_reminder_webhook_latency_seconds",
    "Reminder webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "lendbook_reminder_webhook_failures_total",
    "Failed reminder webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_ledger_operation(operation: str, outcome: str) -> None:
    ledger_operation_counter.labels(operation=operation, outcome=outcome).inc()


def record_closure_transition(was_closed: bool, is_closed: bool) -> None:
    """Count agreements that closed or reopened during an operation"""
    if was_closed == is_closed:
        return
    agreement_closure_counter.labels(transition="closed" if is_closed else "reopened").inc()


def record_credit_profile(score: int, risk_level: str) -> None:
    credit_profile_counter.labels(risk_level=risk_level).inc()
    credit_score_histogram.observe(score)
