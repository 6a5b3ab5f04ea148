"""
Directory-backed measurement source.

Reads every ``*.txt`` and ``*.csv`` file in a directory, one record per line
in the ``patientId,measurementValue,recordType,timestamp`` format. Invalid
lines are skipped and logged, as are files that cannot be read or decoded.
Each file is read once; later calls only pick up files that appeared since.
"""

import asyncio
from pathlib import Path

from patient_monitor.adapters.parsing import MeasurementParseError, parse_file_line
from patient_monitor.domain.models import Measurement
from patient_monitor.observability import logger
from patient_monitor.services.measurement_collector import Result

SUPPORTED_SUFFIXES = (".txt", ".csv")


class FileMeasurementSource:
    """Loads measurement files from a directory into the collector."""

    def __init__(self, directory: str | Path, source_name: str | None = None) -> None:
        self.directory = Path(directory)
        self.source_name = source_name or f"file:{self.directory}"
        self.logger = logger.bind(source=self.source_name)
        self._seen: set[Path] = set()

    async def collect_measurements(self) -> Result[list[Measurement], Exception]:
        try:
            measurements = await asyncio.to_thread(self._read_new_files)
        except OSError as e:
            self.logger.error("file_source_read_failed", error=str(e))
            return Result.err(e)
        return Result.ok(measurements)

    def _read_new_files(self) -> list[Measurement]:
        if not self.directory.is_dir():
            raise NotADirectoryError(f"Invalid directory: {self.directory}")

        measurements: list[Measurement] = []
        for path in sorted(self.directory.iterdir()):
            if path.suffix.lower() not in SUPPORTED_SUFFIXES or path in self._seen:
                continue
            # An unreadable file is skipped for good; the rest of the pass still counts
            self._seen.add(path)
            try:
                measurements.extend(self._read_file(path))
            except (OSError, UnicodeDecodeError) as e:
                self.logger.error("measurement_file_unreadable", file=path.name, error=str(e))
        return measurements

    def _read_file(self, path: Path) -> list[Measurement]:
        measurements = []
        skipped = 0
        with path.open("r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    measurements.append(parse_file_line(line))
                except MeasurementParseError as e:
                    skipped += 1
                    self.logger.warning(
                        "invalid_line_skipped",
                        file=path.name,
                        line_number=line_number,
                        error=str(e),
                    )

        self.logger.info(
            "measurement_file_loaded", file=path.name, count=len(measurements), skipped=skipped
        )
        return measurements
