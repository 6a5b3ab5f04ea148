"""
Measurement ingestion from pluggable sources into the record store.

Key patterns:
- Protocol-based sources (simulators, file readers, network adapters)
- Result values for expected source failures instead of exceptions
- Structured concurrency with asyncio.TaskGroup and per-source timeouts
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, Field

from patient_monitor.domain.models import Measurement
from patient_monitor.observability import logger
from patient_monitor.services.record_store import RecordStore

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    A source that cannot reach its upstream returns ``Result.err``; the
    collector logs it and carries on with the other sources.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class MeasurementSource(Protocol):
    """Anything that can produce a batch of normalized measurements."""

    source_name: str

    async def collect_measurements(self) -> Result[list[Measurement], Exception]:
        """
        Collect the measurements available since the previous call.

        Returns:
            Result[list[Measurement], Exception]: the batch, or the failure.
        """
        ...


class CollectorConfig(BaseModel):
    """Collector tuning with validation."""

    collection_interval_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Interval between collections in seconds.",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Timeout for a single source collection in seconds.",
    )


class MeasurementCollector:
    """
    Pulls measurements from every registered source and appends them to the store.

    Partial failures are expected: a failing or slow source is logged and the
    rest of the batch is still stored.
    """

    def __init__(self, store: RecordStore, config: CollectorConfig | None = None) -> None:
        self.store = store
        self.config = config or CollectorConfig()
        self.sources: list[MeasurementSource] = []
        self.logger = logger.bind(component="measurement_collector")
        self._is_running: bool = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def add_source(self, source: MeasurementSource) -> None:
        if not hasattr(source, "collect_measurements"):
            raise TypeError(f"Source {source} must implement MeasurementSource protocol")
        self.sources.append(source)
        self.logger.info("source_added", source=source.source_name)

    def remove_source(self, source: MeasurementSource) -> None:
        self.sources.remove(source)
        self.logger.info("source_removed", source=source.source_name)

    @asynccontextmanager
    async def collection_session(self) -> AsyncIterator["MeasurementCollector"]:
        """Marks the collector running for the lifetime of the block."""
        self.logger.info("collection_session_started")
        self._is_running = True
        try:
            yield self
        finally:
            self._is_running = False
            self.logger.info("collection_session_ended")

    async def _collect_from(self, source: MeasurementSource) -> Result[list[Measurement], Exception]:
        """Error boundary: a source never takes the whole task group down."""
        try:
            return await asyncio.wait_for(
                source.collect_measurements(), timeout=self.config.timeout_seconds
            )
        except TimeoutError as e:
            self.logger.warning("source_collection_timeout", source=source.source_name)
            return Result.err(e)
        except Exception as e:
            self.logger.exception(
                "unexpected_source_collection_error", error=str(e), source=source.source_name
            )
            return Result.err(e)

    async def collect_once(self) -> Result[int, Exception]:
        """
        Collect from all sources concurrently and store what arrived.

        Returns the number of stored measurements, or an error when every
        source failed.
        """
        if not self._is_running:
            raise RuntimeError("Collector not running - use collection_session()")

        start_time = time.perf_counter()

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(self._collect_from(source), name=source.source_name)
                for source in self.sources
            ]

        stored = 0
        successful_sources = 0
        last_error: Exception | None = None
        for task in tasks:
            result = task.result()
            if result.is_err():
                last_error = result.unwrap_err()
                self.logger.warning(
                    "source_collection_failed",
                    error=str(last_error),
                    source=task.get_name(),
                )
                continue

            for measurement in result.unwrap():
                self.store.add(measurement)
                stored += 1
            successful_sources += 1

        self.logger.info(
            "measurement_collection_completed",
            stored=stored,
            successful_sources=successful_sources,
            total_sources=len(self.sources),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )

        if self.sources and successful_sources == 0 and last_error is not None:
            return Result.err(last_error)
        return Result.ok(stored)

    async def collect_continuously(self) -> AsyncIterator[int]:
        """Yield the stored count of each cycle until the session ends."""
        self.logger.info(
            "measurement_collection_started",
            interval_seconds=self.config.collection_interval_seconds,
        )

        while self._is_running:
            cycle_start = time.perf_counter()

            result = await self.collect_once()
            yield result.unwrap_or(0)

            elapsed = time.perf_counter() - cycle_start
            sleep_time = max(0, self.config.collection_interval_seconds - elapsed)
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
            else:
                self.logger.warning(
                    "measurement_collection_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.config.collection_interval_seconds,
                )
