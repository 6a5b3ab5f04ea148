"""
Alert sinks: where emitted alerts end up.

The rule engine accepts any callable taking an ``Alert``. These are the
stock implementations used by the monitoring service and in tests.
"""

import threading
from collections import deque
from collections.abc import Iterable
from datetime import UTC, datetime

from rich.console import Console

from patient_monitor.domain.models import Alert, AlertRule
from patient_monitor.observability import logger
from patient_monitor.services.rule_engine import AlertSink

RULE_STYLES: dict[AlertRule, str] = {
    AlertRule.CRITICAL_SYSTOLIC: "bold red",
    AlertRule.CRITICAL_DIASTOLIC: "bold red",
    AlertRule.HYPOTENSIVE_HYPOXEMIA: "bold red",
    AlertRule.RAPID_SATURATION_DROP: "red",
    AlertRule.LOW_SATURATION: "yellow",
    AlertRule.PRESSURE_TREND: "yellow",
    AlertRule.ABNORMAL_ECG_PEAK: "magenta",
    AlertRule.MANUAL_ALERT: "cyan",
}


def _format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


class ConsoleAlertSink:
    """Development sink that prints alerts to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def __call__(self, alert: Alert) -> None:
        style = RULE_STYLES.get(alert.rule, "white")
        self.console.print(
            f"[{style}]ALERT[/{style}] Patient {alert.patient_id} - "
            f"Condition: {alert.condition} @ {_format_timestamp(alert.timestamp)}"
        )


class LoggingAlertSink:
    """Emits every alert as a structured log event."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="alert_sink")

    def __call__(self, alert: Alert) -> None:
        self.logger.warning(
            "alert_triggered",
            patient_id=alert.patient_id,
            condition=alert.condition,
            rule=alert.rule.value,
            timestamp=alert.timestamp,
        )


class AlertHistory:
    """Bounded, thread-safe in-memory record of recent alerts."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._alerts: deque[Alert] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __call__(self, alert: Alert) -> None:
        with self._lock:
            self._alerts.append(alert)

    def alerts(self) -> list[Alert]:
        with self._lock:
            return list(self._alerts)

    def for_patient(self, patient_id: int) -> list[Alert]:
        return [alert for alert in self.alerts() if alert.patient_id == patient_id]

    def clear(self) -> None:
        with self._lock:
            self._alerts.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)


class CompositeAlertSink:
    """Fans one alert out to several sinks; a failing sink does not stop the rest."""

    def __init__(self, sinks: Iterable[AlertSink]) -> None:
        self.sinks = list(sinks)
        self.logger = logger.bind(component="composite_alert_sink")

    def __call__(self, alert: Alert) -> None:
        for sink in self.sinks:
            try:
                sink(alert)
            except Exception as e:
                self.logger.error(
                    "alert_dispatch_failed",
                    error=str(e),
                    sink=type(sink).__name__,
                    condition=alert.condition,
                )
