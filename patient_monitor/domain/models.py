"""
Domain models for patient vitals monitoring.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation and immutability.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class MeasurementKind(str, Enum):
    """Signal types the clinical rules recognize."""

    SYSTOLIC = "Systolic"
    DIASTOLIC = "Diastolic"
    BLOOD_SATURATION = "BloodSaturation"
    ECG = "ECG"
    MANUAL_ALERT = "ManualAlert"


class AlertRule(str, Enum):
    """Rules that can produce an alert."""

    CRITICAL_SYSTOLIC = "critical_systolic"
    CRITICAL_DIASTOLIC = "critical_diastolic"
    PRESSURE_TREND = "pressure_trend"
    LOW_SATURATION = "low_saturation"
    RAPID_SATURATION_DROP = "rapid_saturation_drop"
    HYPOTENSIVE_HYPOXEMIA = "hypotensive_hypoxemia"
    ABNORMAL_ECG_PEAK = "abnormal_ecg_peak"
    MANUAL_ALERT = "manual_alert"


class Measurement(BaseModel):
    """Single timestamped reading for one patient."""

    model_config = ConfigDict(frozen=True)  # Shared between threads, never mutated

    patient_id: int
    value: float
    kind: str = Field(description="Record type label, e.g. 'Systolic' or 'ECG'")
    timestamp: int = Field(description="Epoch milliseconds")

    def is_kind(self, kind: MeasurementKind) -> bool:
        """Labels are compared ignoring case; unknown labels never match."""
        return self.kind.lower() == kind.value.lower()


class PatientSnapshot(BaseModel):
    """Point-in-time copy of one patient's full history, in insertion order."""

    model_config = ConfigDict(frozen=True)

    patient_id: int
    records: tuple[Measurement, ...] = ()

    def of_kind(self, kind: MeasurementKind) -> list[Measurement]:
        return [record for record in self.records if record.is_kind(kind)]

    def sorted_of_kind(self, kind: MeasurementKind) -> list[Measurement]:
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(self.of_kind(kind), key=lambda record: record.timestamp)


class Alert(BaseModel):
    """Alert emitted by a rule and handed to the sink."""

    model_config = ConfigDict(frozen=True)

    patient_id: int
    condition: str
    timestamp: int
    rule: AlertRule


class EvaluationReport(BaseModel):
    """Outcome of one evaluation pass over every known patient."""

    patients_evaluated: int = Field(ge=0)
    measurements_collected: int = Field(default=0, ge=0)
    alerts: list[Alert] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_seconds: float = Field(ge=0.0)

    @computed_field(return_type=dict[str, int])
    def alerts_by_rule(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for alert in self.alerts:
            counts[alert.rule.value] = counts.get(alert.rule.value, 0) + 1
        return counts
