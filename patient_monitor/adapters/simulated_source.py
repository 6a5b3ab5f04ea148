"""
Simulated bedside monitor feed.

Each simulated patient owns a ``PatientVitalsState`` that is random-walked on
every collection, so values drift realistically instead of jumping around.
Useful for demos and soak tests; in production this slot is taken by a
network or file adapter.
"""

import asyncio
import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from patient_monitor.domain.models import Measurement, MeasurementKind
from patient_monitor.observability import logger
from patient_monitor.services.measurement_collector import Result

MANUAL_ALERT_RATE = 0.1  # expected manual alerts per patient per collection
MANUAL_ALERT_RESOLVE_PROBABILITY = 0.9


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


@dataclass
class PatientVitalsState:
    """Last generated values for one simulated patient."""

    patient_id: int
    systolic: float
    diastolic: float
    saturation: float
    ecg_phase: float = 0.0
    manual_alert_active: bool = False


class SimulatedVitalsSource:
    """
    Random-walk generator for blood pressure, saturation, ECG and manual alerts.

    Args:
        patient_count: patients are numbered 1..patient_count
        seed: makes the stream reproducible
        manual_alert_rate: Poisson rate of the nurse-call button per collection
        clock: returns epoch milliseconds, injectable for tests
    """

    def __init__(
        self,
        patient_count: int,
        source_name: str = "simulator",
        seed: int | None = None,
        manual_alert_rate: float = MANUAL_ALERT_RATE,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if patient_count <= 0:
            raise ValueError("patient_count must be positive")

        self.source_name = source_name
        self.manual_alert_rate = manual_alert_rate
        self._random = random.Random(seed)
        self._clock = clock
        self.logger = logger.bind(source=source_name)
        self.states: dict[int, PatientVitalsState] = {
            patient_id: self._initial_state(patient_id)
            for patient_id in range(1, patient_count + 1)
        }

    def _initial_state(self, patient_id: int) -> PatientVitalsState:
        return PatientVitalsState(
            patient_id=patient_id,
            systolic=self._random.uniform(110.0, 130.0),
            diastolic=self._random.uniform(70.0, 85.0),
            saturation=float(self._random.randint(95, 100)),
        )

    async def collect_measurements(self) -> Result[list[Measurement], Exception]:
        await asyncio.sleep(0)

        timestamp = self._clock()
        measurements: list[Measurement] = []
        for state in self.states.values():
            measurements.extend(self._step(state, timestamp))

        self.logger.debug("simulated_measurements_generated", count=len(measurements))
        return Result.ok(measurements)

    def _step(self, state: PatientVitalsState, timestamp: int) -> list[Measurement]:
        rnd = self._random

        state.systolic = _clamp(state.systolic + rnd.uniform(-5.0, 5.0), 70.0, 200.0)
        state.diastolic = _clamp(state.diastolic + rnd.uniform(-3.0, 3.0), 40.0, 130.0)
        state.saturation = _clamp(state.saturation + rnd.randint(-1, 1), 90.0, 100.0)

        state.ecg_phase = (state.ecg_phase + rnd.uniform(0.8, 1.2)) % (2 * math.pi)
        ecg = math.sin(state.ecg_phase) + rnd.gauss(0.0, 0.05)

        readings = [
            (MeasurementKind.SYSTOLIC, round(state.systolic, 1)),
            (MeasurementKind.DIASTOLIC, round(state.diastolic, 1)),
            (MeasurementKind.BLOOD_SATURATION, state.saturation),
            (MeasurementKind.ECG, ecg),
        ]
        if self._toggle_manual_alert(state):
            readings.append((MeasurementKind.MANUAL_ALERT, 1.0))

        return [
            Measurement(
                patient_id=state.patient_id, value=value, kind=kind.value, timestamp=timestamp
            )
            for kind, value in readings
        ]

    def _toggle_manual_alert(self, state: PatientVitalsState) -> bool:
        """Returns True when a new manual alert is raised for this patient."""
        if state.manual_alert_active:
            if self._random.random() < MANUAL_ALERT_RESOLVE_PROBABILITY:
                state.manual_alert_active = False
            return False

        trigger_probability = -math.expm1(-self.manual_alert_rate)
        if self._random.random() < trigger_probability:
            state.manual_alert_active = True
            return True
        return False
