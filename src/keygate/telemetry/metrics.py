"""keygate metrics - OpenTelemetry conventions.

Counters:
- keygate_auth_decisions_total{outcome}: one per gate decision
- keygate_credentials_issued_total{type}: one per issued credential
- keygate_last_used_dropped_total: last-used updates dropped on a full queue

Instruments are no-ops until an SDK MeterProvider is installed.
"""

from __future__ import annotations

from dataclasses import dataclass

from opentelemetry import metrics
from opentelemetry.metrics import Counter

# Metric prefix for all keygate metrics
METRIC_PREFIX = "keygate"


@dataclass
class MetricLabels:
    """Standard metric labels/attributes."""

    OUTCOME = "outcome"
    CREDENTIAL_TYPE = "type"

    # Outcome values
    OUTCOME_ALLOWED = "allowed"


class GateMetrics:
    """keygate metrics collection."""

    def __init__(self, meter: metrics.Meter):
        """Initialize metrics.

        Args:
            meter: OpenTelemetry Meter instance
        """
        self._meter = meter
        self._setup_counters()

    def _setup_counters(self) -> None:
        """Set up counter metrics."""
        self.auth_decisions_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_auth_decisions_total",
            description="Total number of authorization decisions",
            unit="1",
        )

        self.credentials_issued_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_credentials_issued_total",
            description="Total number of credentials issued",
            unit="1",
        )

        self.last_used_dropped_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_last_used_dropped_total",
            description="Last-used updates dropped because the queue was full",
            unit="1",
        )

    def record_decision(self, outcome: str) -> None:
        """Record a gate decision.

        Args:
            outcome: "allowed" or the error code of the rejection
        """
        self.auth_decisions_total.add(1, {MetricLabels.OUTCOME: outcome})

    def record_issued(self, credential_type: str) -> None:
        """Record issuance of a credential."""
        self.credentials_issued_total.add(1, {MetricLabels.CREDENTIAL_TYPE: credential_type})

    def record_last_used_dropped(self) -> None:
        """Record a dropped last-used update."""
        self.last_used_dropped_total.add(1)


_metrics: GateMetrics | None = None


def get_metrics() -> GateMetrics:
    """Get the process-wide metrics instance bound to the global meter provider."""
    global _metrics
    if _metrics is None:
        _metrics = GateMetrics(metrics.get_meter(METRIC_PREFIX))
    return _metrics


def reset_metrics() -> None:
    """Reset metrics instance (for testing)."""
    global _metrics
    _metrics = None
