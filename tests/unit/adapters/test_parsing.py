"""Tests for the file-line and stream-message parsers."""

import pytest

from patient_monitor.adapters.parsing import (
    MeasurementParseError,
    parse_file_line,
    parse_stream_message,
)
from patient_monitor.domain.models import Measurement


class TestParseFileLine:
    def test_parses_value_kind_and_timestamp(self) -> None:
        measurement = parse_file_line("1, 120.5, Systolic, 1714376789050\n")

        assert measurement == Measurement(
            patient_id=1, value=120.5, kind="Systolic", timestamp=1714376789050
        )

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "1,120.5,Systolic",
            "1,120.5,Systolic,1714376789050,extra",
            "one,120.5,Systolic,1714376789050",
            "1,high,Systolic,1714376789050",
            "1,120.5,Systolic,yesterday",
            "1,120.5,,1714376789050",
        ],
    )
    def test_malformed_lines_are_rejected(self, line: str) -> None:
        with pytest.raises(MeasurementParseError):
            parse_file_line(line)

    def test_parse_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_file_line("garbage")


class TestParseStreamMessage:
    def test_field_order_differs_from_file_format(self) -> None:
        measurement = parse_stream_message("7,1714376789050,ECG,0.42")

        assert measurement.patient_id == 7
        assert measurement.timestamp == 1714376789050
        assert measurement.kind == "ECG"
        assert measurement.value == 0.42

    def test_percent_suffix_is_stripped(self) -> None:
        measurement = parse_stream_message("3,1714376789050,BloodSaturation,95%")

        assert measurement.value == 95.0

    def test_malformed_message_is_rejected(self) -> None:
        with pytest.raises(MeasurementParseError):
            parse_stream_message("3,1714376789050,Alert")
