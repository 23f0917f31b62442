"""
Tests for the reading repository and demo data generation.
"""

from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest

from cargosys.models.telemetry import SimulationOptions
from cargosys.services.repository import (
    ReadingRepository,
    configured_data_folder,
    get_repository,
    init_repository,
)
from cargosys.services.simulator import SimulationConfigError, generate
from cargosys.utils.sample_data import (
    DEMO_CODES,
    DEMO_START,
    generate_demo_data_set,
    generate_recorded_run,
)


START = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def recorded_folder(tmp_path):
    """Folder with two recorded series."""
    folder = tmp_path / "recorded"
    generate_demo_data_set(folder, codes=("CS-REC-1", "CS-REC-2"), days=2)
    return folder


class TestSampleData:
    """Tests for demo CSV generation."""

    def test_generate_recorded_run(self, tmp_path):
        output = tmp_path / "nested" / "CS-DEMO.csv"

        result = generate_recorded_run(output, "CS-DEMO", days=1)

        assert result.exists()
        lines = result.read_text().split("\n")
        assert lines[0].startswith("ts,lat,lon")
        assert len(lines) > 40

    def test_demo_set_default_codes(self, tmp_path):
        files = generate_demo_data_set(tmp_path, days=1)
        assert sorted(f.stem for f in files) == sorted(DEMO_CODES)


class TestReadingRepository:
    """Tests for ReadingRepository."""

    def test_scan_folder(self, recorded_folder):
        repo = ReadingRepository(recorded_folder)
        assert repo.recorded_codes == ["CS-REC-1", "CS-REC-2"]

    def test_missing_folder(self, tmp_path):
        repo = ReadingRepository(tmp_path / "nope")
        assert repo.recorded_codes == []

    def test_recorded_series(self, recorded_folder):
        repo = ReadingRepository(recorded_folder)

        series = repo.get_series("CS-REC-1")

        assert series.source == "recorded"
        assert series.tracking_code == "CS-REC-1"
        assert len(series) > 0

    def test_recorded_matches_generated(self, recorded_folder):
        """A recorded demo file holds exactly what the simulator produced."""
        repo = ReadingRepository(recorded_folder)
        recorded = repo.get_series("CS-REC-1")

        simulated = generate("CS-REC-1", SimulationOptions(days=2, start_date=DEMO_START))

        assert np.array_equal(recorded.timestamps, simulated.timestamps)
        assert np.array_equal(recorded.impact_g, simulated.impact_g)

    def test_unknown_code_is_simulated(self, recorded_folder):
        repo = ReadingRepository(recorded_folder)

        series = repo.get_series("CS-NEW", SimulationOptions(days=1, start_date=START))

        assert series.source == "mock"
        assert len(series) > 0

    def test_cache_works(self):
        repo = ReadingRepository()
        options = SimulationOptions(days=1, start_date=START)

        first = repo.get_series("CS-DEMO", options)
        second = repo.get_series("CS-DEMO", SimulationOptions(days=1, start_date=START))

        assert first is second
        assert repo.cache_size == 1

    def test_cache_keyed_by_options(self):
        repo = ReadingRepository()

        a = repo.get_series("CS-DEMO", SimulationOptions(days=1, start_date=START))
        b = repo.get_series("CS-DEMO", SimulationOptions(days=2, start_date=START))

        assert a is not b
        assert len(b) > len(a)

    def test_generated_cache_is_bounded(self):
        repo = ReadingRepository(max_generated=2)
        first = repo.get_series("CS-DEMO", SimulationOptions(days=1, start_date=START))

        for days in (2, 3, 4):
            repo.get_series("CS-DEMO", SimulationOptions(days=days, start_date=START))

        assert repo.cache_size == 2
        again = repo.get_series("CS-DEMO", SimulationOptions(days=1, start_date=START))
        assert again is not first
        assert np.array_equal(again.timestamps, first.timestamps)

    def test_generated_cache_evicts_least_recently_used(self):
        repo = ReadingRepository(max_generated=2)
        a = repo.get_series("CS-A", SimulationOptions(days=1, start_date=START))
        repo.get_series("CS-B", SimulationOptions(days=1, start_date=START))

        # Touching A makes B the oldest entry
        assert repo.get_series("CS-A", SimulationOptions(days=1, start_date=START)) is a
        repo.get_series("CS-C", SimulationOptions(days=1, start_date=START))

        assert repo.get_series("CS-A", SimulationOptions(days=1, start_date=START)) is a
        assert repo.cache_size == 2

    def test_recorded_series_not_evicted(self, recorded_folder):
        repo = ReadingRepository(recorded_folder, max_generated=1)
        recorded = repo.get_series("CS-REC-1")

        repo.get_series("CS-X", SimulationOptions(days=1, start_date=START))
        repo.get_series("CS-Y", SimulationOptions(days=1, start_date=START))

        assert repo.get_series("CS-REC-1") is recorded
        assert repo.cache_size == 2

    def test_cache_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ReadingRepository(max_generated=0)

    def test_invalid_options_raise(self):
        repo = ReadingRepository()
        with pytest.raises(SimulationConfigError):
            repo.get_series("CS-DEMO", SimulationOptions(sample_minutes=0))

    def test_set_data_folder_clears_cache(self, recorded_folder):
        repo = ReadingRepository()
        repo.get_series("CS-DEMO", SimulationOptions(days=1, start_date=START))

        count = repo.set_data_folder(recorded_folder)

        assert count == 2
        assert repo.cache_size == 0
        assert repo.data_folder == recorded_folder

    def test_list_recorded(self, recorded_folder):
        repo = ReadingRepository(recorded_folder)

        summaries = repo.list_recorded()

        assert [s.tracking_code for s in summaries] == ["CS-REC-1", "CS-REC-2"]
        assert all(s.source == "recorded" for s in summaries)
        assert summaries[0].first_ts.startswith("2026-01-01T06:0")

    def test_env_defaults(self, monkeypatch):
        monkeypatch.setenv("CARGOSYS_DAYS", "1")
        monkeypatch.setenv("CARGOSYS_SAMPLE_MINUTES", "60")

        series = ReadingRepository().get_series("CS-ENV")

        # 24 one-hour samples, give or take boundary drops
        assert 20 <= len(series) <= 26


class TestGlobalRepository:
    """Tests for the process-wide accessor."""

    def test_configured_data_folder(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CARGOSYS_DATA_FOLDER", str(tmp_path))
        assert configured_data_folder() == tmp_path

        monkeypatch.delenv("CARGOSYS_DATA_FOLDER")
        assert configured_data_folder() == Path("data/recorded")

    def test_init_replaces_instance(self, recorded_folder):
        repo = init_repository(recorded_folder)

        assert get_repository() is repo
        assert repo.recorded_codes == ["CS-REC-1", "CS-REC-2"]

        init_repository(None)
