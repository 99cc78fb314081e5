"""In-process metrics with threshold alerts.

Alerts are structured log events at warning level; there is no external
sink. The service keeps the most recent metrics in memory and is shared
by every request the process handles.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

MAX_METRICS_IN_MEMORY = 1000


class MetricType(Enum):
    ERROR_RATE = "error_rate"
    EXECUTION_TIME = "execution_time"
    GATEWAY_FAILURE_RATE = "gateway_failure_rate"
    RATE_LIMIT_VIOLATIONS = "rate_limit_violations"


class AlertSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AlertRule:
    threshold: float
    severity: AlertSeverity
    message: str


ALERT_RULES = {
    MetricType.ERROR_RATE: AlertRule(0.05, AlertSeverity.WARNING, "Error rate exceeded 5%"),
    MetricType.EXECUTION_TIME: AlertRule(25000, AlertSeverity.WARNING, "Execution time exceeded 25 seconds"),
    MetricType.GATEWAY_FAILURE_RATE: AlertRule(0.10, AlertSeverity.WARNING, "Push gateway failure rate exceeded 10%"),
    MetricType.RATE_LIMIT_VIOLATIONS: AlertRule(
        100, AlertSeverity.WARNING, "Rate limit violations exceeded 100 per hour"
    ),
}


@dataclass
class Metric:
    type: MetricType
    value: float
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


class MonitoringService:
    """Collects request metrics and logs an alert when a rule trips.

    ``error_rate`` is recorded once per request as 0 or 1,
    ``execution_time`` in milliseconds, ``gateway_failure_rate`` as a
    fraction per dispatch and ``rate_limit_violations`` as a count.
    """

    def __init__(self, max_metrics: int = MAX_METRICS_IN_MEMORY, clock=None):
        self._metrics: deque[Metric] = deque(maxlen=max_metrics)
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.alerts_triggered: deque[dict] = deque(maxlen=max_metrics)

    def record_metric(self, metric_type: MetricType, value: float, **metadata) -> Metric:
        metric = Metric(type=metric_type, value=value, timestamp=self._clock(), metadata=metadata)
        with self._lock:
            self._metrics.append(metric)
        self._check_alerts(metric)
        return metric

    def get_metrics(
        self, metric_type: MetricType, start: datetime | None = None, end: datetime | None = None
    ) -> list[Metric]:
        with self._lock:
            metrics = [m for m in self._metrics if m.type == metric_type]
        if start is not None:
            metrics = [m for m in metrics if m.timestamp >= start]
        if end is not None:
            metrics = [m for m in metrics if m.timestamp <= end]
        return metrics

    def calculate_error_rate(self, window_minutes: int = 5) -> float:
        """Share of requests in the window that ended in an error."""
        since = self._clock() - timedelta(minutes=window_minutes)
        outcomes = [m.value for m in self.get_metrics(MetricType.ERROR_RATE) if m.timestamp > since]
        if not outcomes:
            return 0.0
        return sum(outcomes) / len(outcomes)

    def get_summary(self) -> dict[str, float]:
        since = self._clock() - timedelta(hours=1)
        durations = [m.value for m in self.get_metrics(MetricType.EXECUTION_TIME) if m.timestamp > since]
        requests = [m for m in self.get_metrics(MetricType.ERROR_RATE) if m.timestamp > since]

        return {
            "total_requests": len(requests),
            "error_rate": self.calculate_error_rate(60),
            "avg_execution_time_ms": sum(durations) / len(durations) if durations else 0.0,
            "rate_limit_violations": self._violations_since(since),
        }

    def _violations_since(self, since: datetime) -> float:
        return sum(m.value for m in self.get_metrics(MetricType.RATE_LIMIT_VIOLATIONS) if m.timestamp > since)

    def _check_alerts(self, metric: Metric) -> None:
        rule = ALERT_RULES.get(metric.type)
        if rule is None:
            return

        if metric.type == MetricType.RATE_LIMIT_VIOLATIONS:
            observed = self._violations_since(metric.timestamp - timedelta(hours=1))
        else:
            observed = metric.value

        if observed > rule.threshold:
            self._trigger_alert(rule, metric, observed)

    def _trigger_alert(self, rule: AlertRule, metric: Metric, observed: float) -> None:
        alert = {
            "severity": rule.severity.value,
            "type": metric.type.value,
            "message": rule.message,
            "value": observed,
            "threshold": rule.threshold,
            "timestamp": metric.timestamp.isoformat(),
            "metadata": metric.metadata,
        }
        self.alerts_triggered.append(alert)

        if rule.severity == AlertSeverity.CRITICAL:
            logger.error("Monitoring alert", **alert)
        elif rule.severity == AlertSeverity.WARNING:
            logger.warning("Monitoring alert", **alert)
        else:
            logger.info("Monitoring alert", **alert)
