"""
Framework-neutral payload builders shared by the FastAPI and Flask apps.
"""

import os
from dataclasses import replace
from typing import Optional, Union

from cargosys.models.telemetry import ReadingSeries, ReducedView, SeriesSummary, SimulationOptions
from cargosys.services.reducer import DEFAULT_MAX_POINTS, auto_every_nth, preset_range
from cargosys.services.repository import ReadingRepository
from cargosys.utils.time import Instant, format_iso_z


SERVICE_NAME = "CargoSys Tracking"
SERVICE_VERSION = "0.1.0"

# Chart bucket budget when a request does not set max_points
VIEW_MAX_POINTS = int(os.getenv("CARGOSYS_MAX_POINTS", DEFAULT_MAX_POINTS))


def service_info() -> dict:
    return {"name": SERVICE_NAME, "version": SERVICE_VERSION, "status": "running"}


def health_payload(repo: ReadingRepository) -> dict:
    """Liveness plus what the repository currently holds."""
    return {
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "recorded_count": len(repo.recorded_codes),
        "cached_series": repo.cache_size,
    }


def reading_dicts(series: ReadingSeries) -> list[dict]:
    """Series as JSON-ready dicts (NaN -> None)."""
    records = []
    for reading in series:
        record = reading.to_dict()
        del record["tracking_code"]
        records.append(record)
    return records


def parse_every_nth(value: Union[str, int, None]) -> Union[str, int]:
    """Query value -> "auto" or int; raises ValueError for anything else."""
    if value is None or value == "":
        return 1
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text == "auto":
        return "auto"
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"route_every_nth must be 'auto' or an integer, got {value!r}")


def resolve_window(
    series: ReadingSeries,
    preset: Optional[str],
    start: Optional[Instant],
    end: Optional[Instant],
) -> tuple[Optional[Instant], Optional[Instant]]:
    """A preset (other than "custom") replaces explicit bounds."""
    if preset and preset != "custom":
        return preset_range(series, preset)
    return start, end


def simulation_options(
    days: Optional[float] = None,
    sample_minutes: Optional[float] = None,
    impact_threshold_g: Optional[float] = None,
) -> SimulationOptions:
    """Environment defaults with per-request overrides."""
    options = SimulationOptions.from_env()
    overrides = {
        "days": days,
        "sample_minutes": sample_minutes,
        "impact_threshold_g": impact_threshold_g,
    }
    return replace(options, **{k: v for k, v in overrides.items() if v is not None})


def track_payload(series: ReadingSeries) -> dict:
    summary = SeriesSummary.from_series(series)
    return {
        "tracking_code": summary.tracking_code,
        "source": summary.source,
        "reading_count": summary.reading_count,
        "first_ts": summary.first_ts,
        "last_ts": summary.last_ts,
        "readings": reading_dicts(series),
    }


def view_payload(
    series: ReadingSeries,
    view: ReducedView,
    max_points: int,
    every_nth: Union[str, int],
) -> dict:
    start, end = view.filtered.get_time_range()
    chart = reading_dicts(view.chart)
    for point, exceeded in zip(chart, view.impact_exceeded.tolist()):
        point["impact_exceeded"] = bool(exceeded)

    latest = None
    if view.latest is not None:
        latest = view.latest.to_dict()
        del latest["tracking_code"]

    return {
        "tracking_code": series.tracking_code,
        "source": series.source,
        "range_start": format_iso_z(start) if len(view.filtered) else None,
        "range_end": format_iso_z(end) if len(view.filtered) else None,
        "max_points": max_points,
        "threshold_g": view.threshold_g,
        "route_every_nth": auto_every_nth(len(view.filtered)) if every_nth == "auto" else int(every_nth),
        "filtered_count": len(view.filtered),
        "chart": chart,
        "incidents": reading_dicts(view.incidents),
        "route_segments": [
            {"is_hot": seg.is_hot, "positions": [list(p) for p in seg.positions]}
            for seg in view.route_segments
        ],
        "latest": latest,
    }
