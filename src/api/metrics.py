from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "task_assistant_requests_total",
    "Total AI requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "task_assistant_request_latency_seconds",
    "AI request latency",
    Histogram,
    labelnames=["endpoint"],
)

TASKS_CREATED_TOTAL = get_or_create_metric(
    "task_assistant_tasks_created_total",
    "Tasks created, by where they came from",
    Counter,
    labelnames=["source"],
)

ANALYZER_FALLBACK_TOTAL = get_or_create_metric(
    "task_assistant_analyzer_fallback_total",
    "Task analyses answered by the rule-based fallback",
    Counter,
)

PIPELINE_FAILURES_TOTAL = get_or_create_metric(
    "task_assistant_pipeline_failures_total",
    "Multi-agent pipeline runs aborted, by stage",
    Counter,
    labelnames=["stage"],
)
