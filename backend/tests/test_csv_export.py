"""
Tests for CSV export.
"""

import numpy as np
import pytest

from cargosys.models.telemetry import ReadingSeries
from cargosys.services.csv_export import (
    CSV_HEADER,
    CsvExportError,
    escape_field,
    export_filename,
    format_number,
    to_csv,
)


@pytest.fixture
def three_readings():
    """Three known readings, one hour apart from 2026-01-01T00:00:00Z."""
    return ReadingSeries(
        tracking_code="CS-DEMO",
        timestamps=np.array([1767225600, 1767229200, 1767232800], dtype=np.int64),
        lat=np.array([51.9514, 51.872201, 51.865]),
        lon=np.array([4.029, 4.301, 4.596]),
        temperature_c=np.array([6.8, -1.5, 14.9]),
        relative_humidity_pct=np.array([48.2, 61.0, 35.0]),
        impact_g=np.array([0.21, 2.4, 9.8]),
        vibration_rms=np.array([0.412, 0.035, 0.77]),
        vibration_hz=np.array([28.3, 7.1, 40.2]),
        battery_pct=np.array([99.98, 99.95, 99.95]),
        battery_voltage=np.array([4.199, 4.2, 4.19]),
    )


class TestToCsv:
    """Tests for to_csv."""

    def test_header(self, three_readings):
        text = to_csv(three_readings)
        assert text.split("\n")[0] == CSV_HEADER
        assert CSV_HEADER == "ts,lat,lon,tempC,rhPct,impactG,vibrationRms,vibrationHz,batteryPct,batteryV"

    def test_round_trip_by_splitting(self, three_readings):
        """Splitting on newlines and commas gives back the field values."""
        lines = to_csv(three_readings).split("\n")

        assert len(lines) == 4
        rows = [line.split(",") for line in lines[1:]]

        assert [r[0] for r in rows] == [
            "2026-01-01T00:00:00Z",
            "2026-01-01T01:00:00Z",
            "2026-01-01T02:00:00Z",
        ]
        columns = ("lat", "lon", "temperature_c", "relative_humidity_pct", "impact_g",
                   "vibration_rms", "vibration_hz", "battery_pct", "battery_voltage")
        for i, row in enumerate(rows):
            assert len(row) == 10
            for field, name in zip(row[1:], columns):
                assert float(field) == three_readings.channel(name)[i]

    def test_numbers_use_shortest_form(self, three_readings):
        row = to_csv(three_readings).split("\n")[2]
        assert row == "2026-01-01T01:00:00Z,51.872201,4.301,-1.5,61.0,2.4,0.035,7.1,99.95,4.2"

    def test_no_trailing_newline(self, three_readings):
        assert not to_csv(three_readings).endswith("\n")

    def test_empty_series_is_header_only(self):
        assert to_csv(ReadingSeries.empty("CS-DEMO")) == CSV_HEADER

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_fails(self, three_readings, bad):
        three_readings.impact_g[1] = bad

        with pytest.raises(CsvExportError, match="impactG"):
            to_csv(three_readings)

    def test_export_error_is_value_error(self):
        assert issubclass(CsvExportError, ValueError)


class TestEscaping:
    """Tests for RFC4180-style minimal escaping."""

    def test_plain_field_unchanged(self):
        assert escape_field("2026-01-01T00:00:00Z") == "2026-01-01T00:00:00Z"

    def test_comma_is_quoted(self):
        assert escape_field("a,b") == '"a,b"'

    def test_quotes_are_doubled(self):
        assert escape_field('say "hi"') == '"say ""hi"""'

    def test_newline_is_quoted(self):
        assert escape_field("a\nb") == '"a\nb"'


class TestFormatting:
    """Tests for number formatting and file naming."""

    @pytest.mark.parametrize("value, text", [
        (2.4, "2.4"),
        (5, "5.0"),
        (-0.5, "-0.5"),
        (51.951412, "51.951412"),
    ])
    def test_format_number(self, value, text):
        assert format_number(value) == text

    def test_export_filename(self):
        assert export_filename("CS-DEMO") == "cargosys-CS-DEMO.csv"

    def test_export_filename_blank_code(self):
        assert export_filename("  ") == "cargosys-demo.csv"
