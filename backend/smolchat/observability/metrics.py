"""Prometheus metrics configuration."""

from __future__ import annotations

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    "smolchat_http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration_seconds = Histogram(
    "smolchat_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

# ============================================================================
# Generation Metrics
# ============================================================================

generations_total = Counter(
    "smolchat_generations_total",
    "In-process generations by termination reason",
    ["stop_reason"],
)

generation_duration_seconds = Histogram(
    "smolchat_generation_duration_seconds",
    "In-process generation duration in seconds (lock wait excluded)",
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0),
)

generated_tokens_total = Counter(
    "smolchat_generated_tokens_total",
    "Tokens processed by the in-process session",
    ["kind"],  # 'prompt' or 'completion'
)

extractions_total = Counter(
    "smolchat_extractions_total",
    "Structured extraction outcomes",
    ["task", "outcome"],  # outcome: 'extracted' or 'fallback'
)

# ============================================================================
# External Call Metrics
# ============================================================================

external_calls_total = Counter(
    "smolchat_external_calls_total",
    "Calls to external collaborators",
    ["target", "success"],
)

external_call_duration_seconds = Histogram(
    "smolchat_external_call_duration_seconds",
    "External call duration in seconds",
    ["target"],
    buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)


def record_generation(stop_reason: str, duration: float, prompt_tokens: int, completion_tokens: int) -> None:
    generations_total.labels(stop_reason=stop_reason).inc()
    generation_duration_seconds.observe(duration)
    generated_tokens_total.labels(kind="prompt").inc(prompt_tokens)
    generated_tokens_total.labels(kind="completion").inc(completion_tokens)


def record_extraction(task: str, fallback: bool) -> None:
    extractions_total.labels(task=task, outcome="fallback" if fallback else "extracted").inc()


def record_external_call(target: str, duration: float, *, success: bool) -> None:
    external_calls_total.labels(target=target, success=str(success).lower()).inc()
    external_call_duration_seconds.labels(target=target).observe(duration)


def record_http_request(method: str, path: str, status_code: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status_code=str(status_code)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def register_metrics_endpoint(app: FastAPI, path: str = "/metrics") -> None:
    """Expose the default registry in Prometheus text format."""

    @app.get(path, include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
