"""
Reading Repository - resolves a tracking code to its full reading series.

Recorded CSV files in the data folder win; any other code is served from
the simulator. Generated series are cached per (code, options) since a
series is immutable once produced. Recorded series are bounded by the files
on disk; generated ones by an LRU of CARGOSYS_CACHE_SIZE entries.
"""

import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from cargosys.models.telemetry import ReadingSeries, SeriesSummary, SimulationOptions
from cargosys.services.csv_parser import parse_readings_csv
from cargosys.services.simulator import generate


logger = logging.getLogger(__name__)

MOCK_CACHE_SIZE = int(os.getenv("CARGOSYS_CACHE_SIZE", "32"))

DATA_FOLDER_ENV = "CARGOSYS_DATA_FOLDER"
DEFAULT_DATA_FOLDER = Path("./data/recorded")


class ReadingRepository:
    """
    Repository for reading series.

    Reads recorded series from `<data_folder>/<tracking_code>.csv` and falls
    back to synthetic data. Recorded series stay cached until the folder
    changes; generated series are evicted least-recently-used first.
    """

    def __init__(self, data_folder: Optional[Path] = None, max_generated: Optional[int] = None):
        """
        Initialize the repository.

        Args:
            data_folder: Folder containing recorded CSV files. Optional.
            max_generated: Generated series kept in memory (default MOCK_CACHE_SIZE)
        """
        if max_generated is None:
            max_generated = MOCK_CACHE_SIZE
        if max_generated < 1:
            raise ValueError(f"max_generated must be >= 1, got {max_generated}")

        self._data_folder: Optional[Path] = data_folder
        self._max_generated = max_generated
        self._recorded: dict[str, ReadingSeries] = {}
        self._generated: OrderedDict[tuple, ReadingSeries] = OrderedDict()
        self._index: dict[str, Path] = {}  # tracking code -> filepath

        if data_folder is not None:
            self.scan_folder(data_folder)

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    @property
    def recorded_codes(self) -> list[str]:
        return sorted(self._index)

    def set_data_folder(self, folder: Path) -> int:
        """
        Set the recorded-data folder and scan it.

        Returns:
            Number of CSV files found
        """
        self._data_folder = folder
        self._index.clear()
        self.clear_cache()
        return self.scan_folder(folder)

    def scan_folder(self, folder: Path) -> int:
        """
        Index `<tracking_code>.csv` files in a folder.

        Returns:
            Number of CSV files found
        """
        if not folder.exists():
            logger.warning(f"Data folder does not exist: {folder}")
            return 0

        count = 0
        for csv_file in folder.glob("*.csv"):
            if csv_file.is_file():
                self._index[csv_file.stem] = csv_file
                count += 1
                logger.debug(f"Indexed recorded series: {csv_file.stem}")

        logger.info(f"Scanned {count} CSV files in {folder}")
        return count

    def get_series(
        self,
        tracking_code: str,
        options: Optional[SimulationOptions] = None,
    ) -> ReadingSeries:
        """
        Full series for a tracking code.

        Raises:
            SimulationConfigError: for malformed options on a simulated code
        """
        if tracking_code in self._index:
            if tracking_code not in self._recorded:
                self._recorded[tracking_code] = parse_readings_csv(self._index[tracking_code], tracking_code)
                logger.info(f"Loaded recorded series: {tracking_code}")
            return self._recorded[tracking_code]

        if options is None:
            options = SimulationOptions.from_env()
        key = (tracking_code,) + options.cache_key()
        if key in self._generated:
            self._generated.move_to_end(key)
            return self._generated[key]

        series = generate(tracking_code, options)
        self._generated[key] = series
        while len(self._generated) > self._max_generated:
            evicted, _ = self._generated.popitem(last=False)
            logger.debug(f"Evicted generated series: {evicted[0]}")
        return series

    def list_recorded(self) -> list[SeriesSummary]:
        """Summaries of recorded series, skipping files that fail to parse."""
        summaries = []
        for code in self.recorded_codes:
            try:
                summaries.append(SeriesSummary.from_series(self.get_series(code)))
            except ValueError as e:
                logger.error(f"Failed to load recorded series {code}: {e}")
        return summaries

    def clear_cache(self) -> None:
        """Clear the in-memory cache."""
        self._recorded.clear()
        self._generated.clear()
        logger.info("Series cache cleared")

    @property
    def cache_size(self) -> int:
        return len(self._recorded) + len(self._generated)


# Global repository instance (set up by app initialization)
_repository: Optional[ReadingRepository] = None


def get_repository() -> ReadingRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = ReadingRepository()
    return _repository


def configured_data_folder() -> Path:
    """Recorded-data folder from CARGOSYS_DATA_FOLDER, or ./data/recorded."""
    return Path(os.getenv(DATA_FOLDER_ENV, str(DEFAULT_DATA_FOLDER)))


def init_repository(data_folder: Optional[Path]) -> ReadingRepository:
    """Initialize the global repository with a data folder."""
    global _repository
    _repository = ReadingRepository(data_folder)
    return _repository
