"""
Prometheus metrics for the decision-support core.

Metrics Categories:
- LLM metrics: request rate, errors, latency, token usage, retries
- Resilience metrics: rate-limit waits, budget rejections
- Output quality metrics: schema validation failures
- Scoring metrics: gate evaluations, ranking runs

All metrics follow Prometheus naming conventions:
- Counters: _total suffix
- Histograms: _seconds suffix for duration
- Gauges: No special suffix
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Using default REGISTRY so the host process exposes everything from one endpoint
registry = REGISTRY

# ============================================================================
# LLM METRICS
# ============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total number of LLM completion requests",
    ["provider", "model", "status"],
    registry=registry,
)

llm_errors_total = Counter(
    "llm_errors_total",
    "Total number of LLM errors",
    ["provider", "error_type"],
    registry=registry,
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "LLM request latency in seconds (including retries)",
    ["provider", "model"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=registry,
)

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total number of tokens consumed",
    ["provider", "model", "token_type"],  # token_type: prompt | completion
    registry=registry,
)

llm_retries_total = Counter(
    "llm_retries_total",
    "Total number of retried LLM attempts",
    ["operation"],
    registry=registry,
)

llm_embeddings_total = Counter(
    "llm_embeddings_total",
    "Total number of embedding requests",
    ["provider", "status"],
    registry=registry,
)

# ============================================================================
# RESILIENCE METRICS
# ============================================================================

rate_limit_waits_total = Counter(
    "rate_limit_waits_total",
    "Total number of times a caller had to wait for rate limiter capacity",
    registry=registry,
)

budget_rejections_total = Counter(
    "budget_rejections_total",
    "Total number of calls rejected by the budget guard",
    ["scope"],  # global | workspace | monthly
    registry=registry,
)

budget_tokens_used = Gauge(
    "budget_tokens_used",
    "Tokens used in the rolling daily window",
    ["scope"],
    registry=registry,
)

# ============================================================================
# OUTPUT QUALITY & SCORING METRICS
# ============================================================================

schema_validation_failures_total = Counter(
    "schema_validation_failures_total",
    "Total number of LLM responses that failed schema validation",
    ["task"],
    registry=registry,
)

gate_evaluations_total = Counter(
    "gate_evaluations_total",
    "Total number of gate evaluations",
    ["result"],  # passed | failed | error
    registry=registry,
)

ranking_runs_total = Counter(
    "ranking_runs_total",
    "Total number of ranking computations",
    ["kind"],  # rank | what_if | sensitivity
    registry=registry,
)


def record_llm_request(provider: str, model: str, success: bool, duration_ms: float) -> None:
    """
    Record one completed (or failed) LLM completion call.

    Args:
        provider: Provider name (openai, anthropic, ...)
        model: Model identifier
        success: Whether the call ultimately succeeded
        duration_ms: Wall-clock duration including retries
    """
    status = "success" if success else "error"
    llm_requests_total.labels(provider=provider, model=model, status=status).inc()
    llm_request_duration_seconds.labels(provider=provider, model=model).observe(duration_ms / 1000.0)


def record_llm_error(provider: str, error_type: str) -> None:
    llm_errors_total.labels(provider=provider, error_type=error_type).inc()


def record_llm_tokens(provider: str, model: str, prompt_tokens: int, completion_tokens: int) -> None:
    """Record token usage split by prompt/completion."""
    if prompt_tokens:
        llm_tokens_total.labels(provider=provider, model=model, token_type="prompt").inc(prompt_tokens)
    if completion_tokens:
        llm_tokens_total.labels(provider=provider, model=model, token_type="completion").inc(completion_tokens)


def record_llm_retry(operation: str) -> None:
    llm_retries_total.labels(operation=operation).inc()


def record_embedding_request(provider: str, success: bool) -> None:
    llm_embeddings_total.labels(provider=provider, status="success" if success else "error").inc()


def record_rate_limit_wait() -> None:
    rate_limit_waits_total.inc()


def record_budget_rejection(scope: str) -> None:
    budget_rejections_total.labels(scope=scope).inc()


def update_budget_usage(scope: str, tokens: int) -> None:
    budget_tokens_used.labels(scope=scope).set(tokens)


def record_schema_validation_failure(task: str) -> None:
    schema_validation_failures_total.labels(task=task).inc()


def record_gate_evaluation(result: str) -> None:
    gate_evaluations_total.labels(result=result).inc()


def record_ranking_run(kind: str) -> None:
    ranking_runs_total.labels(kind=kind).inc()


def get_metrics() -> bytes:
    """
    Get Prometheus metrics in text format.

    Returns:
        Prometheus metrics text format
    """
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
