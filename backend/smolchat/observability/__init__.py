"""Logging, request context and metrics."""

from smolchat.observability.logging import configure_logging, request_id_var
from smolchat.observability.metrics import (
    record_external_call,
    record_extraction,
    record_generation,
    register_metrics_endpoint,
)
from smolchat.observability.middleware import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "configure_logging",
    "record_external_call",
    "record_extraction",
    "record_generation",
    "register_metrics_endpoint",
    "request_id_var",
]
