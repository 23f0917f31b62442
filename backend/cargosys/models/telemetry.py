"""
Canonical tracking data model.

Readings are stored column-wise (one numpy array per channel) so that
generation and reduction over months of samples stay vectorised:
- timestamps as Unix epoch seconds (UTC, second precision)
- positions in WGS84 decimal degrees
- sensor channels as float64, NaN where a value is missing
"""

import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional

import numpy as np
from numpy.typing import NDArray


class Phase(Enum):
    """Journey phase tag for a leg."""

    SHORT_HAUL_OUT = "short_haul_out"
    LOAD_STOP = "load_stop"
    LONG_HAUL_OUT = "long_haul_out"
    REST = "rest"
    LONG_HAUL_RETURN = "long_haul_return"
    SHORT_HAUL_IN = "short_haul_in"

    @property
    def is_travel(self) -> bool:
        return self not in (Phase.LOAD_STOP, Phase.REST)

    @property
    def is_long_haul(self) -> bool:
        return self in (Phase.LONG_HAUL_OUT, Phase.LONG_HAUL_RETURN)


@dataclass(frozen=True)
class Leg:
    """A scheduled segment of the journey (epoch seconds, end exclusive)."""

    phase: Phase
    start: int
    end: int
    route: str
    cycle: int = 0

    @property
    def duration_s(self) -> int:
        return self.end - self.start


@dataclass
class SimulationOptions:
    """Options for synthetic telemetry generation."""

    days: float = 60.0
    sample_minutes: float = 30.0
    sample_jitter_minutes: float = 3.0
    gps_jitter_km: float = 0.05
    impact_threshold_g: float = 2.0
    start_date: Optional[datetime] = None
    battery_drain_days: float = 90.0

    @classmethod
    def from_env(cls) -> "SimulationOptions":
        """Defaults with CARGOSYS_* environment overrides applied."""
        defaults = cls()
        return cls(
            days=float(os.getenv("CARGOSYS_DAYS", defaults.days)),
            sample_minutes=float(os.getenv("CARGOSYS_SAMPLE_MINUTES", defaults.sample_minutes)),
            sample_jitter_minutes=float(
                os.getenv("CARGOSYS_SAMPLE_JITTER_MINUTES", defaults.sample_jitter_minutes)
            ),
            gps_jitter_km=float(os.getenv("CARGOSYS_GPS_JITTER_KM", defaults.gps_jitter_km)),
            impact_threshold_g=float(
                os.getenv("CARGOSYS_IMPACT_THRESHOLD_G", defaults.impact_threshold_g)
            ),
            battery_drain_days=float(
                os.getenv("CARGOSYS_BATTERY_DRAIN_DAYS", defaults.battery_drain_days)
            ),
        )

    def cache_key(self) -> tuple:
        start = self.start_date.isoformat() if self.start_date else None
        return (
            self.days,
            self.sample_minutes,
            self.sample_jitter_minutes,
            self.gps_jitter_km,
            self.impact_threshold_g,
            start,
            self.battery_drain_days,
        )


# Channel name -> ReadingSeries attribute, in CSV column order
SENSOR_CHANNELS = (
    "temperature_c",
    "relative_humidity_pct",
    "impact_g",
    "vibration_rms",
    "vibration_hz",
    "battery_pct",
    "battery_voltage",
)


def _optional(value: float) -> Optional[float]:
    return None if math.isnan(value) else float(value)


@dataclass(frozen=True)
class Reading:
    """One telemetry sample."""

    timestamp: datetime
    tracking_code: str
    lat: Optional[float]
    lon: Optional[float]
    temperature_c: Optional[float] = None
    relative_humidity_pct: Optional[float] = None
    impact_g: Optional[float] = None
    vibration_rms: Optional[float] = None
    vibration_hz: Optional[float] = None
    battery_pct: Optional[float] = None
    battery_voltage: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "ts": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "tracking_code": self.tracking_code,
            "lat": self.lat,
            "lon": self.lon,
            "temperature_c": self.temperature_c,
            "relative_humidity_pct": self.relative_humidity_pct,
            "impact_g": self.impact_g,
            "vibration_rms": self.vibration_rms,
            "vibration_hz": self.vibration_hz,
            "battery_pct": self.battery_pct,
            "battery_voltage": self.battery_voltage,
        }


@dataclass(eq=False)
class ReadingSeries:
    """
    Ordered sequence of readings for one tracking code.

    All arrays have the same length. Treat instances as immutable; every
    reduction returns a new series built with take().
    """

    tracking_code: str
    timestamps: NDArray[np.int64]       # Unix epoch seconds (UTC)

    lat: NDArray[np.float64]            # degrees
    lon: NDArray[np.float64]            # degrees

    temperature_c: NDArray[np.float64]
    relative_humidity_pct: NDArray[np.float64]
    impact_g: NDArray[np.float64]       # peak shock, g
    vibration_rms: NDArray[np.float64]  # g RMS
    vibration_hz: NDArray[np.float64]   # dominant frequency
    battery_pct: NDArray[np.float64]
    battery_voltage: NDArray[np.float64]

    source: str = "mock"

    @classmethod
    def empty(cls, tracking_code: str, source: str = "mock") -> "ReadingSeries":
        nan = np.empty(0, dtype=np.float64)
        return cls(
            tracking_code=tracking_code,
            timestamps=np.empty(0, dtype=np.int64),
            lat=nan,
            lon=nan.copy(),
            temperature_c=nan.copy(),
            relative_humidity_pct=nan.copy(),
            impact_g=nan.copy(),
            vibration_rms=nan.copy(),
            vibration_hz=nan.copy(),
            battery_pct=nan.copy(),
            battery_voltage=nan.copy(),
            source=source,
        )

    def __len__(self) -> int:
        return len(self.timestamps)

    def __getitem__(self, idx: int) -> Reading:
        n = len(self)
        if idx < 0:
            idx += n
        if idx < 0 or idx >= n:
            raise IndexError("reading index out of range")
        return Reading(
            timestamp=datetime.fromtimestamp(int(self.timestamps[idx]), tz=timezone.utc),
            tracking_code=self.tracking_code,
            lat=_optional(self.lat[idx]),
            lon=_optional(self.lon[idx]),
            temperature_c=_optional(self.temperature_c[idx]),
            relative_humidity_pct=_optional(self.relative_humidity_pct[idx]),
            impact_g=_optional(self.impact_g[idx]),
            vibration_rms=_optional(self.vibration_rms[idx]),
            vibration_hz=_optional(self.vibration_hz[idx]),
            battery_pct=_optional(self.battery_pct[idx]),
            battery_voltage=_optional(self.battery_voltage[idx]),
        )

    def __iter__(self) -> Iterator[Reading]:
        for i in range(len(self)):
            yield self[i]

    def last(self) -> Optional[Reading]:
        if len(self) == 0:
            return None
        return self[-1]

    def take(self, indices: NDArray[np.int64]) -> "ReadingSeries":
        """New series holding the readings at the given indices, in that order."""
        indices = np.asarray(indices, dtype=np.int64)
        return ReadingSeries(
            tracking_code=self.tracking_code,
            timestamps=self.timestamps[indices],
            lat=self.lat[indices],
            lon=self.lon[indices],
            temperature_c=self.temperature_c[indices],
            relative_humidity_pct=self.relative_humidity_pct[indices],
            impact_g=self.impact_g[indices],
            vibration_rms=self.vibration_rms[indices],
            vibration_hz=self.vibration_hz[indices],
            battery_pct=self.battery_pct[indices],
            battery_voltage=self.battery_voltage[indices],
            source=self.source,
        )

    def is_sorted(self) -> bool:
        return bool(np.all(np.diff(self.timestamps) >= 0))

    def sorted(self) -> "ReadingSeries":
        """Series ordered by timestamp (stable); self if already ordered."""
        if self.is_sorted():
            return self
        return self.take(np.argsort(self.timestamps, kind="stable"))

    def get_time_range(self) -> tuple[int, int]:
        if len(self.timestamps) == 0:
            return (0, 0)
        return (int(np.min(self.timestamps)), int(np.max(self.timestamps)))

    def channel(self, name: str) -> NDArray[np.float64]:
        if name not in ("lat", "lon") + SENSOR_CHANNELS:
            raise KeyError(f"Unknown channel: {name}")
        return getattr(self, name)


@dataclass(frozen=True)
class RouteSegment:
    """Contiguous route polyline run, hot when it touches an incident."""

    is_hot: bool
    positions: list[tuple[float, float]]


@dataclass(eq=False)
class ReducedView:
    """
    Derived, transient view for one rendering pass.

    Rebuilt from the full series whenever the window, budget or threshold
    changes; never refined in place.
    """

    filtered: ReadingSeries
    chart: ReadingSeries
    impact_exceeded: NDArray[np.bool_]
    incidents: ReadingSeries
    route: ReadingSeries
    route_segments: list[RouteSegment]
    threshold_g: float
    latest: Optional[Reading] = None


@dataclass
class SeriesSummary:
    """Lightweight summary of a series for listing."""

    tracking_code: str
    source: str
    reading_count: int
    first_ts: Optional[str]
    last_ts: Optional[str]

    @classmethod
    def from_series(cls, series: ReadingSeries) -> "SeriesSummary":
        first = series[0].to_dict()["ts"] if len(series) else None
        last = series[-1].to_dict()["ts"] if len(series) else None
        return cls(
            tracking_code=series.tracking_code,
            source=series.source,
            reading_count=len(series),
            first_ts=first,
            last_ts=last,
        )
