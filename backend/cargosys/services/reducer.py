"""
Time-series reduction for rendering.

Every function is a pure function of its inputs and returns a fresh
ReadingSeries (or the input itself for identity results). Nothing here
mutates a series in place.

Consumer chain:
- charts: filter_by_range -> downsample
- map:    filter_by_range -> thin + incidents + segment_by_impact
"""

import logging
import math
from typing import Optional, Union

import numpy as np
from numpy.typing import NDArray

from cargosys.models.telemetry import ReadingSeries, ReducedView, RouteSegment
from cargosys.utils.time import Instant, to_epoch_seconds


logger = logging.getLogger(__name__)


DEFAULT_MAX_POINTS = 250
DEFAULT_THRESHOLD_G = 2.0

# (max population, stride) for thin(..., "auto"); larger populations thin harder
AUTO_DENSITY_BREAKPOINTS: tuple[tuple[int, int], ...] = (
    (500, 1),
    (2000, 2),
    (5000, 5),
    (20000, 10),
)
AUTO_DENSITY_MAX_STRIDE = 20

RANGE_PRESETS_S = {
    "24h": 24 * 3600,
    "7d": 7 * 24 * 3600,
    "30d": 30 * 24 * 3600,
    "all": None,
}


def filter_by_range(
    series: ReadingSeries,
    start: Optional[Instant] = None,
    end: Optional[Instant] = None,
) -> ReadingSeries:
    """
    Readings with start <= timestamp <= end (inclusive), order preserved.

    Unset bounds are open. start > end is valid and yields an empty series.
    """
    t = series.timestamps
    lo = to_epoch_seconds(start, round_up=True)
    hi = to_epoch_seconds(end)

    mask = np.ones(len(t), dtype=np.bool_)
    if lo is not None:
        mask &= t >= lo
    if hi is not None:
        mask &= t <= hi
    return series.take(np.flatnonzero(mask))


def _impact_or_zero(series: ReadingSeries) -> NDArray[np.float64]:
    return np.nan_to_num(series.impact_g, nan=0.0)


def downsample(series: ReadingSeries, max_points: int = DEFAULT_MAX_POINTS) -> ReadingSeries:
    """
    Bucketed, spike-preserving downsample for charting.

    The covered time span is cut into min(max_points, n) equal-width
    buckets. Each non-empty bucket keeps its first reading, its last
    reading, and its maximum-impact reading, de-duplicated. Output is
    sorted by timestamp and holds at most 3 * bucket_count readings.

    Raises:
        ValueError: if max_points <= 0
    """
    if max_points <= 0:
        raise ValueError(f"max_points must be positive, got {max_points}")

    n = len(series)
    if n <= max_points:
        return series

    ordered = series.sorted()
    t = ordered.timestamps
    t0 = int(t[0])
    span = max(1, int(t[-1]) - t0)

    bucket_count = min(max_points, n)
    bucket_s = -(-span // bucket_count)  # ceil
    # The final instant would open an extra bucket when span divides evenly
    keys = np.minimum((t - t0) // bucket_s, bucket_count - 1)

    # Sorted input -> buckets are contiguous runs of equal keys
    starts = np.concatenate(([0], np.flatnonzero(np.diff(keys)) + 1))
    ends = np.concatenate((starts[1:], [n]))

    impact = _impact_or_zero(ordered)
    picked = np.empty(3 * len(starts), dtype=np.int64)
    for b, (s, e) in enumerate(zip(starts, ends)):
        picked[3 * b] = s
        picked[3 * b + 1] = s + int(np.argmax(impact[s:e]))
        picked[3 * b + 2] = e - 1

    keep = np.unique(picked)
    logger.debug(f"Downsampled {n} readings into {len(starts)} buckets -> {len(keep)} points")
    return ordered.take(keep)


def incidents(series: ReadingSeries, threshold_g: float = DEFAULT_THRESHOLD_G) -> ReadingSeries:
    """Readings with impact_g >= threshold_g (inclusive), order preserved."""
    return series.take(np.flatnonzero(impact_flags(series, threshold_g)))


def impact_flags(series: ReadingSeries, threshold_g: float = DEFAULT_THRESHOLD_G) -> NDArray[np.bool_]:
    """Per-reading 'impact exceeded' flag; missing impact counts as 0."""
    return _impact_or_zero(series) >= threshold_g


def auto_every_nth(count: int) -> int:
    """Stride for automatic route thinning, from population breakpoints."""
    for limit, stride in AUTO_DENSITY_BREAKPOINTS:
        if count <= limit:
            return stride
    return AUTO_DENSITY_MAX_STRIDE


def thin(series: ReadingSeries, every_nth: Union[int, str] = 1) -> ReadingSeries:
    """
    Keep every Nth reading by index, always including the final reading.

    `every_nth="auto"` picks N from AUTO_DENSITY_BREAKPOINTS.

    Raises:
        ValueError: if every_nth is not "auto" or an integer >= 1
    """
    n = len(series)
    if every_nth == "auto":
        every_nth = auto_every_nth(n)
    elif isinstance(every_nth, str) or int(every_nth) != every_nth:
        raise ValueError(f"every_nth must be 'auto' or an integer, got {every_nth!r}")
    every_nth = int(every_nth)
    if every_nth < 1:
        raise ValueError(f"every_nth must be >= 1, got {every_nth}")

    if every_nth == 1 or n == 0:
        return series

    idx = np.arange(0, n, every_nth, dtype=np.int64)
    if idx[-1] != n - 1:
        idx = np.append(idx, n - 1)
    return series.take(idx)


def segment_by_impact(
    route: ReadingSeries,
    threshold_g: float = DEFAULT_THRESHOLD_G,
) -> list[RouteSegment]:
    """
    Split a (thinned) route into contiguous hot/cold polyline runs.

    An edge is hot if either endpoint meets the threshold. Where hotness
    flips, the shared vertex closes one segment and opens the next, so the
    rendered polyline has no gap. Runs with fewer than 2 vertices are dropped.
    """
    n = len(route)
    if n < 2:
        return []

    hot_point = impact_flags(route, threshold_g)
    hot_edge = hot_point[:-1] | hot_point[1:]
    positions = list(zip(route.lat.tolist(), route.lon.tolist()))

    segments: list[RouteSegment] = []
    current_hot = bool(hot_edge[0])
    current = [positions[0], positions[1]]
    for i in range(1, n - 1):
        edge_hot = bool(hot_edge[i])
        if edge_hot != current_hot:
            segments.append(RouteSegment(is_hot=current_hot, positions=current))
            current_hot = edge_hot
            current = [positions[i]]
        current.append(positions[i + 1])

    if len(current) >= 2:
        segments.append(RouteSegment(is_hot=current_hot, positions=current))
    return segments


def preset_range(series: ReadingSeries, preset: str) -> tuple[Optional[int], Optional[int]]:
    """
    Time window for a named preset, anchored at the latest reading.

    Returns (None, None) for an empty series; "all" covers everything.

    Raises:
        ValueError: for an unknown preset
    """
    if preset not in RANGE_PRESETS_S:
        raise ValueError(f"Unknown range preset: {preset!r}")
    if len(series) == 0:
        return (None, None)

    end = int(np.max(series.timestamps))
    width = RANGE_PRESETS_S[preset]
    if width is None:
        return (int(np.min(series.timestamps)), end)
    return (end - width, end)


def build_view(
    series: ReadingSeries,
    start: Optional[Instant] = None,
    end: Optional[Instant] = None,
    max_points: int = DEFAULT_MAX_POINTS,
    threshold_g: float = DEFAULT_THRESHOLD_G,
    route_every_nth: Union[int, str] = 1,
) -> ReducedView:
    """Run the chart and map chains over the full series for one render pass."""
    if not math.isfinite(threshold_g):
        raise ValueError(f"threshold_g must be finite, got {threshold_g}")

    # External data may be unordered
    filtered = filter_by_range(series.sorted(), start, end)
    chart = downsample(filtered, max_points)
    if route_every_nth == "auto":
        route_every_nth = auto_every_nth(len(filtered))
    # Readings without a position stay on the chart but not on the map
    located = np.isfinite(filtered.lat) & np.isfinite(filtered.lon)
    route = thin(filtered.take(np.flatnonzero(located)), route_every_nth)

    return ReducedView(
        filtered=filtered,
        chart=chart,
        impact_exceeded=impact_flags(chart, threshold_g),
        incidents=incidents(filtered, threshold_g),
        route=route,
        route_segments=segment_by_impact(route, threshold_g),
        threshold_g=threshold_g,
        latest=filtered.last(),
    )
