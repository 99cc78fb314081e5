"""Tests for the in-process MonitoringService."""

from datetime import UTC, datetime, timedelta

from flash_offers.monitoring import MetricType, MonitoringService


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestRecordingMetrics:
    def test_get_metrics_by_type(self):
        monitor = MonitoringService()
        monitor.record_metric(MetricType.EXECUTION_TIME, 120, invocation="a")
        monitor.record_metric(MetricType.ERROR_RATE, 0)

        metrics = monitor.get_metrics(MetricType.EXECUTION_TIME)
        assert len(metrics) == 1
        assert metrics[0].value == 120
        assert metrics[0].metadata == {"invocation": "a"}

    def test_get_metrics_time_range(self):
        clock = _Clock()
        monitor = MonitoringService(clock=clock)
        monitor.record_metric(MetricType.EXECUTION_TIME, 1)
        clock.advance(minutes=10)
        monitor.record_metric(MetricType.EXECUTION_TIME, 2)

        recent = monitor.get_metrics(MetricType.EXECUTION_TIME, start=clock.now - timedelta(minutes=1))
        assert [m.value for m in recent] == [2]

    def test_memory_is_bounded(self):
        monitor = MonitoringService(max_metrics=5)
        for i in range(20):
            monitor.record_metric(MetricType.EXECUTION_TIME, i)
        assert [m.value for m in monitor.get_metrics(MetricType.EXECUTION_TIME)] == [15, 16, 17, 18, 19]


class TestErrorRateAndSummary:
    def test_error_rate_is_share_of_failed_requests(self):
        monitor = MonitoringService()
        for value in (0, 0, 0, 1):
            monitor.record_metric(MetricType.ERROR_RATE, value)
        assert monitor.calculate_error_rate() == 0.25

    def test_error_rate_without_requests(self):
        assert MonitoringService().calculate_error_rate() == 0.0

    def test_error_rate_ignores_old_requests(self):
        clock = _Clock()
        monitor = MonitoringService(clock=clock)
        monitor.record_metric(MetricType.ERROR_RATE, 1)
        clock.advance(minutes=10)
        monitor.record_metric(MetricType.ERROR_RATE, 0)
        assert monitor.calculate_error_rate(window_minutes=5) == 0.0

    def test_summary(self):
        monitor = MonitoringService()
        monitor.record_metric(MetricType.ERROR_RATE, 0)
        monitor.record_metric(MetricType.ERROR_RATE, 1)
        monitor.record_metric(MetricType.EXECUTION_TIME, 100)
        monitor.record_metric(MetricType.EXECUTION_TIME, 300)
        monitor.record_metric(MetricType.RATE_LIMIT_VIOLATIONS, 1)

        summary = monitor.get_summary()
        assert summary["total_requests"] == 2
        assert summary["error_rate"] == 0.5
        assert summary["avg_execution_time_ms"] == 200
        assert summary["rate_limit_violations"] == 1


class TestAlerts:
    def test_slow_execution_alerts(self):
        monitor = MonitoringService()
        monitor.record_metric(MetricType.EXECUTION_TIME, 26000)
        assert len(monitor.alerts_triggered) == 1
        assert monitor.alerts_triggered[0]["type"] == "execution_time"

    def test_below_threshold_is_quiet(self):
        monitor = MonitoringService()
        monitor.record_metric(MetricType.EXECUTION_TIME, 800)
        monitor.record_metric(MetricType.GATEWAY_FAILURE_RATE, 0.05)
        assert len(monitor.alerts_triggered) == 0

    def test_gateway_failure_rate_alerts(self):
        monitor = MonitoringService()
        monitor.record_metric(MetricType.GATEWAY_FAILURE_RATE, 0.5)
        assert monitor.alerts_triggered[-1]["type"] == "gateway_failure_rate"

    def test_rate_limit_violations_alert_on_hourly_total(self):
        monitor = MonitoringService()
        for _ in range(100):
            monitor.record_metric(MetricType.RATE_LIMIT_VIOLATIONS, 1)
        assert len(monitor.alerts_triggered) == 0

        monitor.record_metric(MetricType.RATE_LIMIT_VIOLATIONS, 1)
        assert len(monitor.alerts_triggered) == 1
        assert monitor.alerts_triggered[0]["value"] == 101
