"""Tests for the random-walk simulator."""

import pytest

from patient_monitor.adapters.simulated_source import SimulatedVitalsSource
from patient_monitor.domain.models import MeasurementKind

T0 = 1714376789050


class TestSimulatedVitalsSource:
    async def test_each_patient_gets_every_vital_sign(self) -> None:
        source = SimulatedVitalsSource(4, seed=42, manual_alert_rate=0.0, clock=lambda: T0)

        measurements = (await source.collect_measurements()).unwrap()

        assert len(measurements) == 4 * 4
        assert {m.patient_id for m in measurements} == {1, 2, 3, 4}
        assert {m.kind for m in measurements} == {
            MeasurementKind.SYSTOLIC.value,
            MeasurementKind.DIASTOLIC.value,
            MeasurementKind.BLOOD_SATURATION.value,
            MeasurementKind.ECG.value,
        }
        assert all(m.timestamp == T0 for m in measurements)

    async def test_values_stay_in_physiological_ranges(self) -> None:
        source = SimulatedVitalsSource(3, seed=3, clock=lambda: T0)

        for _ in range(200):
            for m in (await source.collect_measurements()).unwrap():
                if m.kind == "BloodSaturation":
                    assert 90.0 <= m.value <= 100.0
                elif m.kind == "Systolic":
                    assert 70.0 <= m.value <= 200.0
                elif m.kind == "Diastolic":
                    assert 40.0 <= m.value <= 130.0

    async def test_same_seed_gives_same_stream(self) -> None:
        first = SimulatedVitalsSource(2, seed=11, clock=lambda: T0)
        second = SimulatedVitalsSource(2, seed=11, clock=lambda: T0)

        for _ in range(5):
            a = (await first.collect_measurements()).unwrap()
            b = (await second.collect_measurements()).unwrap()
            assert a == b

    async def test_state_is_tracked_per_patient(self) -> None:
        source = SimulatedVitalsSource(2, seed=5, clock=lambda: T0)

        measurements = (await source.collect_measurements()).unwrap()

        systolic = {m.patient_id: m.value for m in measurements if m.kind == "Systolic"}
        assert systolic[1] == round(source.states[1].systolic, 1)
        assert systolic[2] == round(source.states[2].systolic, 1)

    async def test_active_manual_alert_is_not_repeated(self) -> None:
        source = SimulatedVitalsSource(1, seed=0, manual_alert_rate=50.0, clock=lambda: T0)
        source.states[1].manual_alert_active = True

        # An already-active alert can only be resolved, never re-raised, on this call.
        measurements = (await source.collect_measurements()).unwrap()

        assert not any(m.kind == "ManualAlert" for m in measurements)

    def test_patient_count_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            SimulatedVitalsSource(0)
