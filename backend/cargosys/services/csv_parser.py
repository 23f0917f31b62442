"""
Reading CSV adapter.

Parses recorded or previously exported CSV files into a ReadingSeries.
Column naming is resolved through cargosys.services.normalizer, so both the
export format (ts,lat,lon,tempC,...) and older dashboard exports
(ts,temp,rh,impactG,vibHz) load.
"""

import io
import logging
from pathlib import Path
from typing import Union

import pandas as pd

from cargosys.models.telemetry import ReadingSeries
from cargosys.services.normalizer import frame_to_series


logger = logging.getLogger(__name__)


class ReadingCsvParser:
    """Parser for reading CSV files."""

    def parse_file(self, filepath: Path, tracking_code: str = "") -> ReadingSeries:
        with open(filepath, "r", encoding="utf-8-sig") as f:
            text = f.read()
        return self.parse_text(text, tracking_code or filepath.stem)

    def parse_text(self, text: str, tracking_code: str) -> ReadingSeries:
        df = self._read_csv(text)
        if df.empty and len(df.columns) == 0:
            return ReadingSeries.empty(tracking_code, source="recorded")
        series = frame_to_series(df, tracking_code, source="recorded")
        logger.debug(f"Parsed {len(series)} readings for {tracking_code}")
        return series

    def _read_csv(self, text: str) -> pd.DataFrame:
        # Leading '#' lines are metadata comments
        lines = text.splitlines()
        skip_rows = 0
        for line in lines:
            if line.strip().startswith("#"):
                skip_rows += 1
            else:
                break

        if not any(line.strip() for line in lines[skip_rows:]):
            return pd.DataFrame()

        df = pd.read_csv(io.StringIO(text), skiprows=skip_rows, float_precision="round_trip")
        df.columns = df.columns.str.strip()
        return df


def parse_readings_csv(source: Union[Path, str], tracking_code: str = "") -> ReadingSeries:
    """
    Parse a CSV file path or CSV text into a sorted ReadingSeries.
    """
    parser = ReadingCsvParser()
    if isinstance(source, Path):
        return parser.parse_file(source, tracking_code)
    return parser.parse_text(source, tracking_code)
