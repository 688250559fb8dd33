"""Observability for freshkey: structured logging and Prometheus metrics."""

from freshkey.observability.logging import LogContext, configure_logging
from freshkey.observability.metrics import get_metrics

__all__ = ["LogContext", "configure_logging", "get_metrics"]
