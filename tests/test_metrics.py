"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from dentabot.services.metrics import MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
        with patch.object(MetricsClient, "_start_flush_thread"):
            return MetricsClient()


def _dim_map(metric) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestMetricsRecording:
    def test_record_success_appends_count_and_latency(self):
        client = _make_client()
        client.record_success("knowledge_base", "query_knowledgebases", latency_ms=123.4)
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"Backend/RequestCount", "Backend/Latency"}

    def test_record_failure_without_latency(self):
        client = _make_client()
        client.record_failure("scheduler", "schedule_appointment", error_type="5xx")
        names = [m["MetricName"] for m in client._buffer]
        assert names == ["Backend/RequestCount", "Backend/ErrorCount"]

    def test_record_failure_with_latency(self):
        client = _make_client()
        client.record_failure("clu", "analyze_conversations", error_type="4xx", latency_ms=50.0)
        assert len(client._buffer) == 3

    def test_success_dimensions(self):
        client = _make_client()
        client.record_success("scheduler", "get_availability", latency_ms=10.0)
        count = next(m for m in client._buffer if m["MetricName"] == "Backend/RequestCount")
        assert _dim_map(count) == {"Service": "scheduler", "Status": "success"}

    def test_failure_dimensions_include_error_type(self):
        client = _make_client()
        client.record_failure("knowledge_base", "query_knowledgebases", error_type="ConnectTimeout")
        error = next(m for m in client._buffer if m["MetricName"] == "Backend/ErrorCount")
        assert _dim_map(error)["ErrorType"] == "ConnectTimeout"

    def test_record_decision(self):
        client = _make_client()
        client.record_decision("report_availability")
        (metric,) = client._buffer
        assert metric["MetricName"] == "Dispatch/DecisionCount"
        assert _dim_map(metric) == {"Decision": "report_availability"}
        assert metric["Value"] == 1


class TestMetricsFlush:
    def test_flush_when_disabled_sends_nothing_and_clears(self):
        client = _make_client(enabled=False)
        client.record_decision("fallback")
        assert client.flush() == 0
        assert client._buffer == []

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_success("scheduler", "get_availability", latency_ms=100.0)
        sent = client.flush()

        assert sent == 2
        call_args = mock_cw.put_metric_data.call_args
        assert call_args[1]["Namespace"] == "ContosoDentistry"
        assert len(call_args[1]["MetricData"]) == 2

    def test_flush_empty_buffer_returns_zero(self):
        assert _make_client(enabled=True).flush() == 0

    def test_flush_failure_is_logged_not_raised(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        mock_cw.put_metric_data.side_effect = RuntimeError("throttled")
        client._cw_client = mock_cw

        client.record_decision("fallback")
        assert client.flush() == 0
