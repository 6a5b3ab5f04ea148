"""
Monitoring service that ties ingestion, storage and rule evaluation together.

Pipeline per cycle:
1. Collect measurements from all sources into the record store
2. Snapshot every known patient and run the rule battery
3. Dispatch alerts to the configured sinks
4. Report what happened

Evaluation runs in worker threads so it overlaps with ongoing ingestion; the
record store's per-patient locks keep both sides consistent.
"""

import asyncio
import time
from collections.abc import AsyncIterator

from patient_monitor.config import AppConfig, get_config
from patient_monitor.domain.models import Alert, EvaluationReport
from patient_monitor.observability import logger
from patient_monitor.services.alert_sinks import AlertHistory, CompositeAlertSink, LoggingAlertSink
from patient_monitor.services.measurement_collector import (
    CollectorConfig,
    MeasurementCollector,
    MeasurementSource,
)
from patient_monitor.services.record_store import RecordStore
from patient_monitor.services.rule_engine import AlertSink, RuleEngine


class PatientMonitoringService:
    """
    Periodic driver around the record store and rule engine.

    The service owns no clinical state of its own: every evaluation pass
    starts from fresh snapshots, so the same records produce the same alerts
    on every pass.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        sink: AlertSink | None = None,
        store: RecordStore | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="patient_monitoring")

        self.store = store or RecordStore()
        self.alert_history = AlertHistory(maxlen=self.config.monitoring.alert_history_size)
        self.engine = RuleEngine(
            CompositeAlertSink([self.alert_history, sink or LoggingAlertSink()])
        )
        self.collector = MeasurementCollector(
            self.store,
            CollectorConfig(
                collection_interval_seconds=self.config.monitoring.collection_interval_seconds,
                timeout_seconds=self.config.monitoring.collection_timeout_seconds,
            ),
        )
        self._evaluation_slots = asyncio.Semaphore(
            self.config.monitoring.max_concurrent_evaluations
        )
        self._is_running = False

    def add_source(self, source: MeasurementSource) -> None:
        self.collector.add_source(source)

    async def evaluate_patient(self, patient_id: int) -> list[Alert]:
        async with self._evaluation_slots:
            return await asyncio.to_thread(self.engine.evaluate_patient, self.store, patient_id)

    async def run_evaluation_cycle(self, measurements_collected: int = 0) -> EvaluationReport:
        """Evaluate every currently known patient, in parallel."""
        cycle_start = time.perf_counter()
        patient_ids = sorted(self.store.get_all_patient_ids())

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(self.evaluate_patient(patient_id))
                for patient_id in patient_ids
            ]

        alerts = [alert for task in tasks for alert in task.result()]
        duration = time.perf_counter() - cycle_start

        self.logger.info(
            "evaluation_cycle_completed",
            patients_evaluated=len(patient_ids),
            alerts_generated=len(alerts),
            duration_seconds=round(duration, 3),
        )
        return EvaluationReport(
            patients_evaluated=len(patient_ids),
            measurements_collected=measurements_collected,
            alerts=alerts,
            duration_seconds=duration,
        )

    async def run_monitoring_cycle(self) -> EvaluationReport:
        """Collect once from every source, then evaluate."""
        if self._is_running:
            raise RuntimeError("Continuous monitoring is active - use run_evaluation_cycle()")

        async with self.collector.collection_session():
            result = await self.collector.collect_once()

        if result.is_err():
            self.logger.warning("no_measurements_collected", error=str(result.unwrap_err()))

        return await self.run_evaluation_cycle(measurements_collected=result.unwrap_or(0))

    async def _ingest_continuously(self) -> None:
        async for stored in self.collector.collect_continuously():
            self.logger.debug("ingestion_batch_stored", stored=stored)

    async def run_continuous_monitoring(self) -> AsyncIterator[EvaluationReport]:
        """
        Ingest in the background and evaluate on the configured cadence.

        Yields one report per evaluation pass; stop by breaking out of the
        loop or calling ``stop()``.
        """
        interval = self.config.monitoring.evaluation_interval_seconds
        self.logger.info("continuous_monitoring_starting", interval=interval)
        self._is_running = True

        async with self.collector.collection_session():
            ingestion = asyncio.create_task(self._ingest_continuously())
            try:
                while self._is_running:
                    await asyncio.sleep(interval)
                    ingestion_error = ingestion.exception() if ingestion.done() else None
                    if ingestion_error is not None:
                        raise ingestion_error
                    yield await self.run_evaluation_cycle()
            except asyncio.CancelledError:
                self.logger.info("continuous_monitoring_cancelled")
                raise
            finally:
                self._is_running = False
                ingestion.cancel()
                await asyncio.gather(ingestion, return_exceptions=True)

    async def stop(self) -> None:
        """Gracefully stop the monitoring loop after the current pass."""
        self.logger.info("stopping_monitoring_service")
        self._is_running = False


async def main() -> None:
    """Run the monitor against the simulator (and a data directory, if configured)."""

    from rich.console import Console
    from rich.table import Table

    from patient_monitor.adapters import FileMeasurementSource, SimulatedVitalsSource
    from patient_monitor.observability import configure_logging
    from patient_monitor.services.alert_sinks import ConsoleAlertSink

    config = get_config()
    configure_logging(config.logging.level, config.logging.format)
    console = Console()

    service = PatientMonitoringService(config, sink=ConsoleAlertSink(console))
    if config.simulation.enabled:
        service.add_source(
            SimulatedVitalsSource(
                config.simulation.patient_count,
                seed=config.simulation.seed,
                manual_alert_rate=config.simulation.manual_alert_rate,
            )
        )
    if config.ingestion.data_directory:
        service.add_source(FileMeasurementSource(config.ingestion.data_directory))

    try:
        async for report in service.run_continuous_monitoring():
            table = Table(title=f"Evaluation pass @ {report.generated_at:%H:%M:%S}")
            table.add_column("Rule")
            table.add_column("Alerts", justify="right")
            for rule, count in sorted(report.alerts_by_rule.items()):
                table.add_row(rule, str(count))
            console.print(table)
            console.print(
                f"Patients: {report.patients_evaluated}  "
                f"Alerts: {len(report.alerts)}  "
                f"Duration: {report.duration_seconds:.3f}s"
            )
    except KeyboardInterrupt:
        console.print("Monitoring stopped by user")
    finally:
        await service.stop()


if __name__ == "__main__":
    asyncio.run(main())
