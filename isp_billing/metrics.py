from prometheus_client import Counter, Histogram

JOB_DURATION = Histogram(
    "job_duration_seconds",
    "Background job duration",
    ["task", "status"],
)
ROUTER_GATEWAY_CALLS = Counter(
    "router_gateway_calls_total",
    "Router control gateway calls",
    ["operation", "outcome"],
)
INVOICES_CREATED = Counter(
    "billing_invoices_created_total",
    "Monthly invoices created by the invoice run",
)
SUSPENSIONS = Counter(
    "subscriber_suspensions_total",
    "Suspension attempts by outcome",
    ["outcome"],
)


def observe_job(task_name: str, status: str, duration: float) -> None:
    JOB_DURATION.labels(task=task_name, status=status).observe(duration)


def observe_gateway_call(operation: str, success: bool) -> None:
    ROUTER_GATEWAY_CALLS.labels(
        operation=operation, outcome="success" if success else "failure"
    ).inc()
