"""
Normalizer for externally supplied readings.

Live devices and older exports use a handful of naming conventions
(`temp` vs `tempC`, `vibHz` vs `vibrationHz`, ...). Records are mapped onto
the canonical ReadingSeries channels, coerced to float (missing -> NaN)
and re-sorted by timestamp, since outside data carries no ordering
guarantee.
"""

import logging
import math
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from cargosys.models.telemetry import SENSOR_CHANNELS, ReadingSeries


logger = logging.getLogger(__name__)

EPOCH = pd.Timestamp("1970-01-01", tz="UTC")


# Canonical channel -> accepted field names, first match wins
FIELD_ALIASES = {
    "ts": ["ts", "timestamp", "time", "Timestamp", "Time"],
    "lat": ["lat", "latitude", "Latitude", "Lat"],
    "lon": ["lon", "lng", "longitude", "Longitude", "Lon", "long"],
    "temperature_c": ["tempC", "temp", "temperature_c", "temperature", "Temp"],
    "relative_humidity_pct": ["rhPct", "rh", "relative_humidity_pct", "humidity"],
    "impact_g": ["impactG", "impact", "impact_g"],
    "vibration_rms": ["vibrationRms", "vibRms", "vibration_rms"],
    "vibration_hz": ["vibrationHz", "vibHz", "vibration_hz"],
    "battery_pct": ["batteryPct", "battery", "battery_pct"],
    "battery_voltage": ["batteryV", "batteryVoltage", "battery_voltage"],
}


def map_columns(columns: Iterable[str]) -> dict[str, Optional[str]]:
    """Resolve each canonical channel to the first alias present in `columns`."""
    available = set(columns)
    col_map: dict[str, Optional[str]] = {}
    for std_name, variants in FIELD_ALIASES.items():
        col_map[std_name] = None
        for variant in variants:
            if variant in available:
                col_map[std_name] = variant
                break
    return col_map


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def frame_to_series(df: pd.DataFrame, tracking_code: str, source: str) -> ReadingSeries:
    """
    Build a sorted ReadingSeries from a DataFrame with aliased columns.

    Rows whose timestamp cannot be parsed are dropped.
    """
    col_map = map_columns(df.columns)
    ts_col = col_map["ts"]
    if ts_col is None:
        raise ValueError("No timestamp column found")

    stamps = pd.to_datetime(df[ts_col], utc=True, errors="coerce", format="ISO8601")
    valid = stamps.notna().to_numpy()
    if not valid.all():
        logger.warning(f"Dropping {int((~valid).sum())} readings without a valid timestamp")

    df = df.loc[valid]
    stamps = stamps[valid]
    # Epoch seconds, floored to whole seconds
    timestamps = ((stamps - EPOCH) // pd.Timedelta(seconds=1)).to_numpy(dtype=np.int64)

    def column(name: str) -> np.ndarray:
        col = col_map.get(name)
        if col is None:
            return np.full(len(df), np.nan, dtype=np.float64)
        return pd.to_numeric(df[col], errors="coerce").to_numpy(dtype=np.float64)

    series = ReadingSeries(
        tracking_code=tracking_code,
        timestamps=timestamps.astype(np.int64),
        lat=column("lat"),
        lon=column("lon"),
        source=source,
        **{name: column(name) for name in SENSOR_CHANNELS},
    )
    return series.sorted()


def normalize_records(
    records: Iterable[dict],
    tracking_code: str,
    source: str = "api",
) -> ReadingSeries:
    """
    Normalize dict records (e.g. a JSON `readings` array) into a series.
    """
    rows = []
    for record in records:
        col_map = map_columns(record.keys())
        row = {"ts": record.get(col_map["ts"]) if col_map["ts"] else None}
        for name in FIELD_ALIASES:
            if name == "ts":
                continue
            key = col_map[name]
            row[name] = _to_float(record.get(key)) if key else math.nan
        rows.append(row)

    if not rows:
        return ReadingSeries.empty(tracking_code, source=source)
    return frame_to_series(pd.DataFrame(rows), tracking_code, source)
