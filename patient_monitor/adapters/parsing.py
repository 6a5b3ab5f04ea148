"""
Parsers for the two textual record formats produced by upstream feeds.

- File lines:      ``patientId,measurementValue,recordType,timestamp``
- Stream messages: ``patientId,timestamp,label,data``

Both raise ``MeasurementParseError`` on malformed input; callers decide
whether to drop the record.
"""

from patient_monitor.domain.models import Measurement

FIELD_COUNT = 4


class MeasurementParseError(ValueError):
    """Raised when a line cannot be turned into a Measurement."""


def _split(line: str) -> list[str]:
    parts = [part.strip() for part in line.strip().split(",")]
    if len(parts) != FIELD_COUNT:
        raise MeasurementParseError(f"Invalid data format: expected {FIELD_COUNT} fields: {line!r}")
    return parts


def _build(patient_id: str, value: str, kind: str, timestamp: str, line: str) -> Measurement:
    if not kind:
        raise MeasurementParseError(f"Missing record type: {line!r}")
    try:
        return Measurement(
            patient_id=int(patient_id),
            value=float(value.rstrip("%")),
            kind=kind,
            timestamp=int(timestamp),
        )
    except ValueError as e:
        raise MeasurementParseError(f"Invalid field in {line!r}: {e}") from e


def parse_file_line(line: str) -> Measurement:
    """Parse ``patientId,measurementValue,recordType,timestamp``."""
    patient_id, value, kind, timestamp = _split(line)
    return _build(patient_id, value, kind, timestamp, line)


def parse_stream_message(message: str) -> Measurement:
    """Parse ``patientId,timestamp,label,data``; ``data`` may end in ``%``."""
    patient_id, timestamp, label, data = _split(message)
    return _build(patient_id, data, label, timestamp, message)
