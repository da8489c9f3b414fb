from __future__ import annotations

from prometheus_client import Counter, generate_latest


lead_transitions_total = Counter(
    "lead_transitions_total",
    "Lead status transitions by outcome",
    ["from_status", "to_status", "outcome"],
)

lead_validation_errors_total = Counter(
    "lead_validation_errors_total",
    "Lead validation errors by field and reason",
    ["field", "reason"],
)

lead_version_conflicts_total = Counter(
    "lead_version_conflicts_total",
    "Optimistic concurrency conflicts on lead writes",
    ["outcome"],
)

lead_event_publish_failures_total = Counter(
    "lead_event_publish_failures_total",
    "Domain events that could not be delivered to the sink",
    ["event_type"],
)

lead_imports_rows_total = Counter(
    "lead_imports_rows_total",
    "Imported lead rows by outcome",
    ["outcome"],
)

authz_denied_total = Counter(
    "authz_denied_total",
    "Authorization denials by reason",
    ["reason"],
)

role_mutations_total = Counter(
    "role_mutations_total",
    "Role mutations by action and outcome",
    ["action", "outcome"],
)


def observe_transition(from_status: str, to_status: str, outcome: str) -> None:
    lead_transitions_total.labels(from_status=from_status, to_status=to_status, outcome=outcome).inc()


def observe_validation_error(field: str, reason: str) -> None:
    lead_validation_errors_total.labels(field=field, reason=reason).inc()


def observe_version_conflict(outcome: str) -> None:
    lead_version_conflicts_total.labels(outcome=outcome).inc()


def observe_event_publish_failure(event_type: str) -> None:
    lead_event_publish_failures_total.labels(event_type=event_type).inc()


def observe_import_rows(outcome: str, count: int = 1) -> None:
    if count > 0:
        lead_imports_rows_total.labels(outcome=outcome).inc(count)


def observe_authz_denied(reason: str) -> None:
    authz_denied_total.labels(reason=reason).inc()


def observe_role_mutation(action: str, outcome: str) -> None:
    role_mutations_total.labels(action=action, outcome=outcome).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()
