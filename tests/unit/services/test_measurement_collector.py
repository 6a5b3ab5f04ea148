"""
Tests for the measurement collector and the Result type.

Sources are replaced by a small test double implementing the
MeasurementSource protocol; the store is the real one.
"""

import asyncio

import pytest

from patient_monitor.domain.models import Measurement
from patient_monitor.services.measurement_collector import (
    CollectorConfig,
    MeasurementCollector,
    Result,
)
from patient_monitor.services.record_store import RecordStore


class TestResult:
    def test_result_ok_creates_successful_result(self) -> None:
        result: Result[str, Exception] = Result.ok("success")
        assert result.is_ok()
        assert not result.is_err()
        assert result.unwrap() == "success"

    def test_result_error_creates_failed_result(self) -> None:
        result: Result[str, ValueError] = Result.err(ValueError("test error"))
        assert result.is_err()
        assert result.unwrap_or("default") == "default"

    def test_unwrap_raises_on_error_result(self) -> None:
        result: Result[str, ValueError] = Result.err(ValueError("test error"))

        with pytest.raises(ValueError, match="test error"):
            result.unwrap()

    def test_unwrap_err_on_ok_raises(self) -> None:
        with pytest.raises(ValueError):
            Result.ok(1).unwrap_err()

    def test_falsy_values_are_still_ok(self) -> None:
        assert Result.ok(0).unwrap() == 0
        assert Result.ok([]).unwrap() == []


class MockMeasurementSource:
    """Test double that implements MeasurementSource protocol."""

    def __init__(
        self,
        patient_id: int = 1,
        should_fail: bool = False,
        delay_seconds: float = 0.0,
        source_name: str = "mock-source",
    ) -> None:
        self.patient_id = patient_id
        self.should_fail = should_fail
        self.delay_seconds = delay_seconds
        self.source_name = source_name
        self.call_count = 0

    async def collect_measurements(self) -> Result[list[Measurement], Exception]:
        self.call_count += 1

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if self.should_fail:
            return Result.err(ConnectionError("Mock failure"))

        return Result.ok(
            [
                Measurement(
                    patient_id=self.patient_id,
                    value=120.0,
                    kind="Systolic",
                    timestamp=self.call_count,
                )
            ]
        )


class ExplodingSource:
    source_name = "exploding"

    async def collect_measurements(self) -> Result[list[Measurement], Exception]:
        raise RuntimeError("unexpected")


class TestCollectorConfig:
    def test_invalid_config_raises_validation_error(self) -> None:
        with pytest.raises(ValueError):
            CollectorConfig(collection_interval_seconds=0)

        with pytest.raises(ValueError):
            CollectorConfig(timeout_seconds=-1.0)


class TestMeasurementCollector:
    @pytest.fixture
    def store(self) -> RecordStore:
        return RecordStore()

    @pytest.fixture
    def collector(self, store: RecordStore) -> MeasurementCollector:
        return MeasurementCollector(
            store, CollectorConfig(collection_interval_seconds=0.01, timeout_seconds=0.2)
        )

    async def test_collect_requires_session(self, collector: MeasurementCollector) -> None:
        with pytest.raises(RuntimeError, match="collection_session"):
            await collector.collect_once()

    @pytest.mark.parametrize("success_count,fail_count", [(2, 1), (0, 2), (3, 0)])
    async def test_collect_once_with_mixed_sources(
        self,
        collector: MeasurementCollector,
        store: RecordStore,
        success_count: int,
        fail_count: int,
    ) -> None:
        for i in range(success_count):
            collector.add_source(MockMeasurementSource(patient_id=i, source_name=f"ok-{i}"))
        for i in range(fail_count):
            collector.add_source(MockMeasurementSource(should_fail=True, source_name=f"bad-{i}"))

        async with collector.collection_session():
            result = await collector.collect_once()

        if success_count > 0:
            assert result.unwrap() == success_count
            assert store.get_all_patient_ids() == set(range(success_count))
        else:
            assert result.is_err()
            assert len(store) == 0

    async def test_slow_source_times_out_without_blocking_others(
        self, collector: MeasurementCollector, store: RecordStore
    ) -> None:
        collector.add_source(MockMeasurementSource(patient_id=1, source_name="fast"))
        collector.add_source(
            MockMeasurementSource(patient_id=2, delay_seconds=5.0, source_name="slow")
        )

        async with collector.collection_session():
            result = await collector.collect_once()

        assert result.unwrap() == 1
        assert store.get_all_patient_ids() == {1}

    async def test_raising_source_is_contained(
        self, collector: MeasurementCollector, store: RecordStore
    ) -> None:
        collector.add_source(ExplodingSource())
        collector.add_source(MockMeasurementSource(patient_id=3))

        async with collector.collection_session():
            result = await collector.collect_once()

        assert result.unwrap() == 1
        assert 3 in store

    async def test_no_sources_is_an_empty_success(self, collector: MeasurementCollector) -> None:
        async with collector.collection_session():
            result = await collector.collect_once()

        assert result.unwrap() == 0

    async def test_continuous_collection_stops_gracefully(
        self, collector: MeasurementCollector, store: RecordStore
    ) -> None:
        source = MockMeasurementSource()
        collector.add_source(source)
        batches: list[int] = []

        async with collector.collection_session():
            async for stored in collector.collect_continuously():
                batches.append(stored)
                if len(batches) >= 3:
                    break

        assert batches == [1, 1, 1]
        assert store.measurement_count(1) == 3
        assert not collector.is_running

    def test_add_source_rejects_non_sources(self, collector: MeasurementCollector) -> None:
        with pytest.raises(TypeError):
            collector.add_source(object())  # type: ignore[arg-type]

    def test_remove_source(self, collector: MeasurementCollector) -> None:
        source = MockMeasurementSource()
        collector.add_source(source)
        collector.remove_source(source)

        assert collector.sources == []
