"""
Tests for the tracking data model and time helpers.
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from cargosys.models.telemetry import Phase, ReadingSeries, SeriesSummary, SimulationOptions
from cargosys.utils.time import format_iso_z, parse_iso, to_epoch_seconds


def _series(timestamps):
    n = len(timestamps)
    values = np.arange(n, dtype=np.float64)
    return ReadingSeries(
        tracking_code="CS-TEST",
        timestamps=np.asarray(timestamps, dtype=np.int64),
        lat=values.copy(),
        lon=values.copy(),
        temperature_c=values.copy(),
        relative_humidity_pct=values.copy(),
        impact_g=np.where(values == 1, np.nan, values),
        vibration_rms=values.copy(),
        vibration_hz=values.copy(),
        battery_pct=values.copy(),
        battery_voltage=values.copy(),
    )


class TestReadingSeries:
    """Tests for ReadingSeries."""

    def test_indexing(self):
        series = _series([30, 10, 20])

        reading = series[-1]

        assert reading.timestamp == datetime.fromtimestamp(20, tz=timezone.utc)
        assert reading.lat == 2.0
        assert reading.tracking_code == "CS-TEST"

    def test_nan_becomes_none(self):
        assert _series([1, 2, 3])[1].impact_g is None

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            _series([1, 2])[2]

    def test_iteration(self):
        assert [r.lat for r in _series([1, 2, 3])] == [0.0, 1.0, 2.0]

    def test_sorted_is_stable(self):
        series = _series([30, 10, 10, 20])

        ordered = series.sorted()

        assert ordered.timestamps.tolist() == [10, 10, 20, 30]
        assert ordered.lat.tolist() == [1.0, 2.0, 3.0, 0.0]
        # Original untouched
        assert series.timestamps.tolist() == [30, 10, 10, 20]

    def test_sorted_returns_self_when_ordered(self):
        series = _series([1, 2, 3])
        assert series.sorted() is series

    def test_time_range(self):
        assert _series([30, 10, 20]).get_time_range() == (10, 30)
        assert ReadingSeries.empty("CS-TEST").get_time_range() == (0, 0)

    def test_unknown_channel(self):
        with pytest.raises(KeyError):
            _series([1]).channel("speed")

    def test_to_dict(self):
        record = _series([1767225600])[0].to_dict()
        assert record["ts"] == "2026-01-01T00:00:00Z"
        assert record["temperature_c"] == 0.0

    def test_summary(self):
        summary = SeriesSummary.from_series(_series([1767225600, 1767229200]))

        assert summary.reading_count == 2
        assert summary.first_ts == "2026-01-01T00:00:00Z"
        assert summary.last_ts == "2026-01-01T01:00:00Z"

    def test_empty_summary(self):
        summary = SeriesSummary.from_series(ReadingSeries.empty("CS-TEST"))
        assert summary.first_ts is None and summary.reading_count == 0


class TestPhase:
    def test_travel_phases(self):
        travel = {p for p in Phase if p.is_travel}
        assert Phase.LOAD_STOP not in travel
        assert Phase.REST not in travel
        assert len(travel) == 4

    def test_long_haul(self):
        assert Phase.LONG_HAUL_OUT.is_long_haul
        assert not Phase.SHORT_HAUL_IN.is_long_haul


class TestSimulationOptions:
    def test_defaults(self):
        options = SimulationOptions()
        assert options.days == 60.0
        assert options.sample_minutes == 30.0
        assert options.impact_threshold_g == 2.0
        assert options.start_date is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CARGOSYS_DAYS", "7")
        monkeypatch.setenv("CARGOSYS_GPS_JITTER_KM", "0.2")

        options = SimulationOptions.from_env()

        assert options.days == 7.0
        assert options.gps_jitter_km == 0.2
        assert options.battery_drain_days == 90.0


class TestTimeHelpers:
    """Tests for instant conversion."""

    def test_parse_z_suffix(self):
        assert parse_iso("2026-01-01T00:00:00Z") == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert to_epoch_seconds(datetime(2026, 1, 1)) == 1767225600

    def test_offset_respected(self):
        tz = timezone(timedelta(hours=2))
        assert to_epoch_seconds(datetime(2026, 1, 1, 2, tzinfo=tz)) == 1767225600

    def test_numbers_floored(self):
        assert to_epoch_seconds(10.9) == 10
        assert to_epoch_seconds(None) is None

    def test_round_up(self):
        assert to_epoch_seconds(10.1, round_up=True) == 11
        assert to_epoch_seconds(10, round_up=True) == 10
        assert to_epoch_seconds("2026-01-01T00:00:00.250Z", round_up=True) == 1767225601
        assert to_epoch_seconds(None, round_up=True) is None

    def test_format(self):
        assert format_iso_z(1767225600) == "2026-01-01T00:00:00Z"
