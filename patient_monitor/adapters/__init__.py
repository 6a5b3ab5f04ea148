"""
Adapters that feed measurements into the core.

Each one implements the ``MeasurementSource`` protocol and translates bad
input into dropped records, never into exceptions reaching the store.
"""

from .file_source import FileMeasurementSource
from .parsing import MeasurementParseError, parse_file_line, parse_stream_message
from .simulated_source import PatientVitalsState, SimulatedVitalsSource

__all__ = [
    "FileMeasurementSource",
    "MeasurementParseError",
    "PatientVitalsState",
    "SimulatedVitalsSource",
    "parse_file_line",
    "parse_stream_message",
]
