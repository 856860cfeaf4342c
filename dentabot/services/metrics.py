"""CloudWatch custom metrics emitter with background batching.

Publishes per-call metrics (count, latency, errors) for each backend the
assistant talks to (knowledge base, intent recognizer, scheduler) and a
count per dispatch decision.

* Data points are buffered in memory behind a lock.
* A daemon thread flushes the buffer every ``FLUSH_INTERVAL_SECONDS``.
* With ``METRICS_ENABLED`` unset or not ``"true"`` data points are only
  logged at DEBUG and dropped on flush.

>>> from dentabot.services.metrics import metrics
>>> metrics.record_success("knowledge_base", "query_knowledgebases", latency_ms=88.0)
>>> metrics.record_decision("fallback")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "ContosoDentistry"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit per call


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful backend call."""
        now = datetime.now(UTC)
        self._append(self._point(
            "Backend/RequestCount", _dims(Service=service, Status="success"), now,
        ))
        self._append(self._point(
            "Backend/Latency", _dims(Service=service, Operation=operation), now,
            value=latency_ms, unit="Milliseconds",
        ))
        logger.debug(
            "Metric: %s %s success latency=%.1fms", service, operation, latency_ms,
        )

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed backend call."""
        now = datetime.now(UTC)
        self._append(self._point(
            "Backend/RequestCount", _dims(Service=service, Status="failure"), now,
        ))
        self._append(self._point(
            "Backend/ErrorCount", _dims(Service=service, ErrorType=error_type), now,
        ))
        if latency_ms > 0:
            self._append(self._point(
                "Backend/Latency", _dims(Service=service, Operation=operation), now,
                value=latency_ms, unit="Milliseconds",
            ))
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    def record_decision(self, decision: str) -> None:
        """Count one dispatched turn under its decision."""
        self._append(self._point(
            "Dispatch/DecisionCount", _dims(Decision=decision), datetime.now(UTC),
        ))
        logger.debug("Metric: dispatch decision=%s", decision)

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    @staticmethod
    def _point(
        name: str,
        dimensions: list[dict[str, str]],
        timestamp: datetime,
        *,
        value: float = 1,
        unit: str = "Count",
    ) -> dict[str, Any]:
        return {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }

    def _append(self, metric_data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(metric_data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info(
            "Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS,
        )


metrics = MetricsClient()
