"""keygate telemetry - structured logging and OpenTelemetry metrics."""

from .logging import (
    GateLogger,
    StructuredLogFormatter,
    configure_logging,
    get_logger,
    reset_loggers,
)
from .metrics import GateMetrics, MetricLabels, get_metrics, reset_metrics

__all__ = [
    # Metrics
    "GateMetrics",
    "MetricLabels",
    "get_metrics",
    "reset_metrics",
    # Logging
    "GateLogger",
    "StructuredLogFormatter",
    "configure_logging",
    "get_logger",
    "reset_loggers",
]
