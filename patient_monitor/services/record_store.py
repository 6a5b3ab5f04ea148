"""
Append-only, per-patient time-series store.

Concurrency model:
- One lock per patient guards append and copy of that patient's records
- A store-level lock guards create-if-absent so concurrent first touch
  yields exactly one history per patient id
- Readers always receive copies; nothing handed out aliases internal state
"""

import threading

from patient_monitor.domain.models import Measurement, PatientSnapshot
from patient_monitor.observability import logger


class PatientHistory:
    """All measurements ever recorded for one patient, in insertion order."""

    def __init__(self, patient_id: int) -> None:
        self.patient_id = patient_id
        self._records: list[Measurement] = []
        self._lock = threading.Lock()

    def append(self, measurement: Measurement) -> None:
        with self._lock:
            self._records.append(measurement)

    def snapshot(self) -> PatientSnapshot:
        with self._lock:
            records = tuple(self._records)
        return PatientSnapshot(patient_id=self.patient_id, records=records)

    def records_between(self, start: int, end: int) -> list[Measurement]:
        with self._lock:
            return [record for record in self._records if start <= record.timestamp <= end]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RecordStore:
    """
    Repository of patient histories keyed by patient id.

    Patients are created implicitly on their first measurement and never
    removed. Unknown ids are not an error: queries return empty results.
    """

    def __init__(self) -> None:
        self._patients: dict[int, PatientHistory] = {}
        self._patients_lock = threading.Lock()
        self.logger = logger.bind(component="record_store")

    def _history_for(self, patient_id: int) -> PatientHistory:
        history = self._patients.get(patient_id)
        if history is not None:
            return history

        with self._patients_lock:
            history = self._patients.get(patient_id)
            if history is None:
                history = PatientHistory(patient_id)
                self._patients[patient_id] = history
                self.logger.debug("patient_created", patient_id=patient_id)
        return history

    def add(self, measurement: Measurement) -> None:
        """Append an already-built measurement to its patient's history."""
        self._history_for(measurement.patient_id).append(measurement)

    def add_measurement(
        self, patient_id: int, value: float, kind: str, timestamp: int
    ) -> Measurement:
        """Record one reading, creating the patient entry if needed."""
        measurement = Measurement(
            patient_id=patient_id, value=value, kind=kind, timestamp=timestamp
        )
        self.add(measurement)
        return measurement

    def get_measurements(self, patient_id: int, start: int, end: int) -> list[Measurement]:
        """
        Return measurements with ``start <= timestamp <= end``.

        The returned list is a fresh copy; later appends never show up in it.
        """
        history = self._patients.get(patient_id)
        if history is None:
            return []
        return history.records_between(start, end)

    def snapshot(self, patient_id: int) -> PatientSnapshot:
        """Consistent copy of one patient's full history."""
        history = self._patients.get(patient_id)
        if history is None:
            return PatientSnapshot(patient_id=patient_id)
        return history.snapshot()

    def get_all_patient_ids(self) -> set[int]:
        with self._patients_lock:
            return set(self._patients)

    def measurement_count(self, patient_id: int) -> int:
        history = self._patients.get(patient_id)
        return len(history) if history is not None else 0

    def __contains__(self, patient_id: object) -> bool:
        return patient_id in self._patients

    def __len__(self) -> int:
        return len(self._patients)
