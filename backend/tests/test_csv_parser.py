"""
Tests for reading CSV parsing and record normalization.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from cargosys.models.telemetry import SimulationOptions
from cargosys.services.csv_export import to_csv
from cargosys.services.csv_parser import ReadingCsvParser, parse_readings_csv
from cargosys.services.normalizer import map_columns, normalize_records
from cargosys.services.simulator import generate


@pytest.fixture
def export_csv_content():
    """CSV in the export format."""
    return """ts,lat,lon,tempC,rhPct,impactG,vibrationRms,vibrationHz,batteryPct,batteryV
2026-01-01T00:00:00Z,51.9514,4.029,6.8,48.2,0.21,0.412,28.3,99.98,4.199
2026-01-01T00:30:00Z,51.8722,4.301,6.5,49.0,2.4,0.388,27.9,99.97,4.198
2026-01-01T01:00:00Z,51.865,4.596,6.1,50.3,0.18,0.401,30.1,99.95,4.2"""


@pytest.fixture
def export_csv_file(export_csv_content, tmp_path):
    """Create a temporary CSV file named after its tracking code."""
    csv_file = tmp_path / "CS-DEMO.csv"
    csv_file.write_text(export_csv_content)
    return csv_file


@pytest.fixture
def legacy_csv_content():
    """Older dashboard export with short column names, out of order."""
    return """# exported by dashboard
ts,temp,rh,impactG,vibHz
2026-01-01T02:00:00Z,5.0,60,0.3,22.0
2026-01-01T01:00:00Z,5.5,58,,21.0
"""


class TestReadingCsvParser:
    """Tests for ReadingCsvParser."""

    def test_parse_export_format(self, export_csv_file):
        series = ReadingCsvParser().parse_file(export_csv_file)

        assert len(series) == 3
        assert series.tracking_code == "CS-DEMO"
        assert series.source == "recorded"
        assert series.timestamps[0] == 1767225600
        assert series.impact_g.tolist() == [0.21, 2.4, 0.18]
        assert series.battery_voltage[-1] == 4.2

    def test_explicit_tracking_code(self, export_csv_file):
        series = parse_readings_csv(export_csv_file, "CS-OTHER")
        assert series.tracking_code == "CS-OTHER"

    def test_parse_text(self, export_csv_content):
        series = parse_readings_csv(export_csv_content, "CS-DEMO")
        assert len(series) == 3
        assert series.lat[1] == 51.8722

    def test_legacy_columns_and_resort(self, legacy_csv_content):
        series = parse_readings_csv(legacy_csv_content, "CS-OLD")

        assert len(series) == 2
        assert np.all(np.diff(series.timestamps) > 0)
        assert series.temperature_c.tolist() == [5.5, 5.0]
        assert series.relative_humidity_pct.tolist() == [58.0, 60.0]
        assert series.vibration_hz.tolist() == [21.0, 22.0]
        assert np.isnan(series.impact_g[0])
        assert np.all(np.isnan(series.lat))

    def test_bad_timestamps_dropped(self):
        text = "ts,impactG\nnot-a-date,1.0\n2026-01-01T00:00:00Z,2.0"

        series = parse_readings_csv(text, "CS-DEMO")

        assert len(series) == 1
        assert series.impact_g[0] == 2.0

    def test_missing_timestamp_column(self):
        with pytest.raises(ValueError):
            parse_readings_csv("lat,lon\n51.0,4.0", "CS-DEMO")

    def test_empty_text(self):
        series = parse_readings_csv("", "CS-DEMO")
        assert len(series) == 0
        assert series.source == "recorded"

    def test_header_only(self):
        series = parse_readings_csv(
            "ts,lat,lon,tempC,rhPct,impactG,vibrationRms,vibrationHz,batteryPct,batteryV",
            "CS-DEMO",
        )
        assert len(series) == 0

    def test_generated_series_survives_export(self):
        """Export then parse reproduces every generated value exactly."""
        original = generate(
            "CS-DEMO",
            SimulationOptions(days=3, start_date=datetime(2026, 1, 1, tzinfo=timezone.utc)),
        )

        parsed = parse_readings_csv(to_csv(original), "CS-DEMO")

        assert np.array_equal(parsed.timestamps, original.timestamps)
        for name in ("lat", "lon", "temperature_c", "relative_humidity_pct", "impact_g",
                     "vibration_rms", "vibration_hz", "battery_pct", "battery_voltage"):
            assert np.array_equal(parsed.channel(name), original.channel(name)), name


class TestNormalizeRecords:
    """Tests for alias-aware record normalization."""

    def test_aliases(self):
        records = [
            {"timestamp": "2026-01-01T00:00:00Z", "latitude": 51.0, "lng": 4.0,
             "temp": "5.5", "rh": 60, "impactG": 2.5, "vibHz": 20, "battery": 99.0},
        ]

        series = normalize_records(records, "CS-API")

        assert len(series) == 1
        assert series.source == "api"
        assert series.lat[0] == 51.0
        assert series.lon[0] == 4.0
        assert series.temperature_c[0] == 5.5
        assert series.relative_humidity_pct[0] == 60.0
        assert series.impact_g[0] == 2.5
        assert series.vibration_hz[0] == 20.0
        assert series.battery_pct[0] == 99.0
        assert np.isnan(series.battery_voltage[0])

    def test_resorts_by_timestamp(self):
        records = [
            {"ts": "2026-01-01T02:00:00Z", "tempC": 3.0},
            {"ts": "2026-01-01T00:00:00Z", "tempC": 1.0},
            {"ts": "2026-01-01T01:00:00Z", "tempC": 2.0},
        ]

        series = normalize_records(records, "CS-API")

        assert series.temperature_c.tolist() == [1.0, 2.0, 3.0]

    def test_unparseable_values_become_nan(self):
        records = [{"ts": "2026-01-01T00:00:00Z", "impactG": "n/a", "tempC": None}]

        series = normalize_records(records, "CS-API")

        assert np.isnan(series.impact_g[0])
        assert np.isnan(series.temperature_c[0])

    def test_records_without_timestamp_dropped(self):
        records = [
            {"impactG": 1.0},
            {"ts": "garbage", "impactG": 2.0},
            {"ts": "2026-01-01T00:00:00Z", "impactG": 3.0},
        ]

        series = normalize_records(records, "CS-API")

        assert series.impact_g.tolist() == [3.0]

    def test_empty_records(self):
        assert len(normalize_records([], "CS-API")) == 0

    def test_map_columns_first_alias_wins(self):
        col_map = map_columns(["temp", "tempC", "ts"])
        assert col_map["temperature_c"] == "tempC"
        assert col_map["ts"] == "ts"
        assert col_map["lat"] is None
