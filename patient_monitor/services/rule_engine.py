"""
Clinical rule evaluation over a single patient's history.

Every rule is a pure function ``PatientSnapshot -> list[Alert]``. The engine
runs them in order and hands each alert to an injected sink; it keeps no
state between invocations, so the same engine can evaluate many patients
concurrently.

Thresholds below are fixed and must stay bit-for-bit compatible with the
alert stream downstream consumers already parse.
"""

from collections.abc import Callable, Sequence
from statistics import fmean
from typing import Protocol

from patient_monitor.domain.models import (
    Alert,
    AlertRule,
    Measurement,
    MeasurementKind,
    PatientSnapshot,
)
from patient_monitor.observability import logger
from patient_monitor.services.record_store import RecordStore

SYSTOLIC_HIGH = 180.0
SYSTOLIC_LOW = 90.0
DIASTOLIC_HIGH = 120.0
DIASTOLIC_LOW = 60.0
TREND_STEP_MMHG = 10.0

SATURATION_LOW = 92.0
SATURATION_DROP_PERCENT = 5.0
SATURATION_DROP_WINDOW_MS = 600_000

HYPOXEMIA_SYSTOLIC_LOW = 90.0
HYPOXEMIA_SATURATION_LOW = 92.0
HYPOXEMIA_WINDOW_MS = 300_000

ECG_WINDOW_SIZE = 10
ECG_PEAK_FACTOR = 1.5


class AlertSink(Protocol):
    """Anything that accepts alerts one at a time."""

    def __call__(self, alert: Alert) -> None: ...


Rule = Callable[[PatientSnapshot], list[Alert]]


def check_critical_systolic(snapshot: PatientSnapshot) -> list[Alert]:
    return [
        Alert(
            patient_id=snapshot.patient_id,
            condition=f"Critical Systolic: {record.value}",
            timestamp=record.timestamp,
            rule=AlertRule.CRITICAL_SYSTOLIC,
        )
        for record in snapshot.of_kind(MeasurementKind.SYSTOLIC)
        if record.value > SYSTOLIC_HIGH or record.value < SYSTOLIC_LOW
    ]


def check_critical_diastolic(snapshot: PatientSnapshot) -> list[Alert]:
    return [
        Alert(
            patient_id=snapshot.patient_id,
            condition=f"Critical Diastolic: {record.value}",
            timestamp=record.timestamp,
            rule=AlertRule.CRITICAL_DIASTOLIC,
        )
        for record in snapshot.of_kind(MeasurementKind.DIASTOLIC)
        if record.value > DIASTOLIC_HIGH or record.value < DIASTOLIC_LOW
    ]


def _trend_alerts(
    patient_id: int, readings: Sequence[Measurement], label: str
) -> list[Alert]:
    """Scan overlapping triples for two same-direction steps beyond the threshold."""
    alerts = []
    for first, second, third in zip(readings, readings[1:], readings[2:]):
        rise_1 = second.value - first.value
        rise_2 = third.value - second.value

        if rise_1 > TREND_STEP_MMHG and rise_2 > TREND_STEP_MMHG:
            direction = "Increasing"
        elif rise_1 < -TREND_STEP_MMHG and rise_2 < -TREND_STEP_MMHG:
            direction = "Decreasing"
        else:
            continue

        alerts.append(
            Alert(
                patient_id=patient_id,
                condition=f"{label} {direction} Trend",
                timestamp=third.timestamp,
                rule=AlertRule.PRESSURE_TREND,
            )
        )
    return alerts


def check_pressure_trends(snapshot: PatientSnapshot) -> list[Alert]:
    """Systolic and diastolic series are checked independently."""
    alerts = _trend_alerts(
        snapshot.patient_id, snapshot.sorted_of_kind(MeasurementKind.SYSTOLIC), "Systolic"
    )
    alerts.extend(
        _trend_alerts(
            snapshot.patient_id, snapshot.sorted_of_kind(MeasurementKind.DIASTOLIC), "Diastolic"
        )
    )
    return alerts


def check_low_saturation(snapshot: PatientSnapshot) -> list[Alert]:
    return [
        Alert(
            patient_id=snapshot.patient_id,
            condition="Low Oxygen Saturation",
            timestamp=record.timestamp,
            rule=AlertRule.LOW_SATURATION,
        )
        for record in snapshot.of_kind(MeasurementKind.BLOOD_SATURATION)
        if record.value < SATURATION_LOW
    ]


def check_rapid_saturation_drop(snapshot: PatientSnapshot) -> list[Alert]:
    """
    Flag a drop of at least 5 points from an anchor reading within 10 minutes.

    Each reading is compared only against its own anchor, not a rolling
    minimum, and the scan for that anchor stops at the first match.
    """
    readings = snapshot.sorted_of_kind(MeasurementKind.BLOOD_SATURATION)
    alerts = []
    for index, anchor in enumerate(readings):
        for later in readings[index + 1 :]:
            if later.timestamp - anchor.timestamp > SATURATION_DROP_WINDOW_MS:
                break
            if anchor.value - later.value >= SATURATION_DROP_PERCENT:
                alerts.append(
                    Alert(
                        patient_id=snapshot.patient_id,
                        condition="Rapid O2 Saturation Drop",
                        timestamp=later.timestamp,
                        rule=AlertRule.RAPID_SATURATION_DROP,
                    )
                )
                break
    return alerts


def check_hypotensive_hypoxemia(snapshot: PatientSnapshot) -> list[Alert]:
    """Low systolic pressure with low saturation less than 5 minutes apart."""
    low_saturation = [
        record
        for record in snapshot.sorted_of_kind(MeasurementKind.BLOOD_SATURATION)
        if record.value < HYPOXEMIA_SATURATION_LOW
    ]
    alerts = []
    for systolic in snapshot.sorted_of_kind(MeasurementKind.SYSTOLIC):
        if systolic.value >= HYPOXEMIA_SYSTOLIC_LOW:
            continue
        if any(
            abs(systolic.timestamp - saturation.timestamp) < HYPOXEMIA_WINDOW_MS
            for saturation in low_saturation
        ):
            alerts.append(
                Alert(
                    patient_id=snapshot.patient_id,
                    condition="Hypotensive Hypoxemia Alert",
                    timestamp=systolic.timestamp,
                    rule=AlertRule.HYPOTENSIVE_HYPOXEMIA,
                )
            )
    return alerts


def check_ecg_peaks(snapshot: PatientSnapshot) -> list[Alert]:
    """
    Slide a 10-reading window over the ECG series and flag readings above
    1.5x the window mean.

    Overlapping windows can flag the same reading more than once; those
    repeats are part of the output.
    """
    readings = snapshot.sorted_of_kind(MeasurementKind.ECG)
    alerts = []
    for start in range(len(readings) - ECG_WINDOW_SIZE + 1):
        window = readings[start : start + ECG_WINDOW_SIZE]
        average = fmean(record.value for record in window)
        for record in window:
            if record.value > average * ECG_PEAK_FACTOR:
                alerts.append(
                    Alert(
                        patient_id=snapshot.patient_id,
                        condition="Abnormal ECG Peak",
                        timestamp=record.timestamp,
                        rule=AlertRule.ABNORMAL_ECG_PEAK,
                    )
                )
    return alerts


def check_manual_alerts(snapshot: PatientSnapshot) -> list[Alert]:
    return [
        Alert(
            patient_id=snapshot.patient_id,
            condition="Manual Alert Triggered",
            timestamp=record.timestamp,
            rule=AlertRule.MANUAL_ALERT,
        )
        for record in snapshot.of_kind(MeasurementKind.MANUAL_ALERT)
    ]


DEFAULT_RULES: tuple[Rule, ...] = (
    check_critical_systolic,
    check_critical_diastolic,
    check_pressure_trends,
    check_low_saturation,
    check_rapid_saturation_drop,
    check_hypotensive_hypoxemia,
    check_ecg_peaks,
    check_manual_alerts,
)


class RuleEngine:
    """
    Runs the rule battery against patient snapshots.

    Design principles:
    - Rules are pure; the sink call is the only side effect
    - Never raises during evaluation (a failing sink is logged and skipped)
    - Stateless between calls, safe to share across threads
    """

    def __init__(self, sink: AlertSink, rules: Sequence[Rule] = DEFAULT_RULES) -> None:
        self.sink = sink
        self.rules = tuple(rules)
        self.logger = logger.bind(component="rule_engine")

    def evaluate(self, snapshot: PatientSnapshot) -> list[Alert]:
        """Run every rule on the snapshot and deliver each alert to the sink."""
        alerts: list[Alert] = []
        for rule in self.rules:
            alerts.extend(rule(snapshot))

        for alert in alerts:
            self._dispatch(alert)

        self.logger.debug(
            "rule_evaluation_completed",
            patient_id=snapshot.patient_id,
            records=len(snapshot.records),
            alerts=len(alerts),
        )
        return alerts

    def evaluate_patient(self, store: RecordStore, patient_id: int) -> list[Alert]:
        return self.evaluate(store.snapshot(patient_id))

    def _dispatch(self, alert: Alert) -> None:
        try:
            self.sink(alert)
        except Exception as e:
            self.logger.error(
                "alert_dispatch_failed",
                error=str(e),
                patient_id=alert.patient_id,
                condition=alert.condition,
            )
