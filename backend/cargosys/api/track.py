"""
API routes for tracking codes.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from cargosys.api.payloads import (
    VIEW_MAX_POINTS,
    parse_every_nth,
    resolve_window,
    simulation_options,
    track_payload,
    view_payload,
)
from cargosys.api.schemas import (
    ErrorResponse,
    FolderInfoResponse,
    SetFolderRequest,
    TrackResponse,
    ViewResponse,
)
from cargosys.models.telemetry import ReadingSeries
from cargosys.services.csv_export import CsvExportError, export_filename, to_csv
from cargosys.services.reducer import DEFAULT_THRESHOLD_G, build_view, filter_by_range
from cargosys.services.repository import get_repository
from cargosys.services.simulator import SimulationConfigError


router = APIRouter(
    prefix="/track",
    tags=["track"],
    responses={400: {"model": ErrorResponse}},
)


def _load_series(
    tracking_code: str,
    days: Optional[float],
    sample_minutes: Optional[float],
    impact_threshold_g: Optional[float],
) -> ReadingSeries:
    code = tracking_code.strip()
    if not code:
        raise HTTPException(status_code=400, detail="Tracking code is required")

    repo = get_repository()
    try:
        options = simulation_options(days, sample_minutes, impact_threshold_g)
        return repo.get_series(code, options)
    except SimulationConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{tracking_code}", response_model=TrackResponse)
async def get_track(
    tracking_code: str,
    days: Optional[float] = Query(None, description="Days of history to simulate"),
    sample_minutes: Optional[float] = Query(None, description="Nominal sampling interval"),
    impact_threshold_g: Optional[float] = Query(None, description="Alert threshold used for scripted events"),
):
    """
    Get the full reading series for a tracking code.

    Warning: months of history are several thousand readings.
    Consider using /view for rendering.
    """
    series = _load_series(tracking_code, days, sample_minutes, impact_threshold_g)
    return track_payload(series)


@router.get("/{tracking_code}/view", response_model=ViewResponse)
async def get_view(
    tracking_code: str,
    start: Optional[datetime] = Query(None, description="Window start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Window end (inclusive)"),
    preset: Optional[str] = Query(None, description="24h, 7d, 30d, all or custom"),
    max_points: int = Query(VIEW_MAX_POINTS, description="Chart bucket budget"),
    threshold_g: float = Query(DEFAULT_THRESHOLD_G, description="Incident threshold"),
    route_every_nth: str = Query("1", description="Route stride, or 'auto'"),
    days: Optional[float] = Query(None),
    sample_minutes: Optional[float] = Query(None),
    impact_threshold_g: Optional[float] = Query(None),
):
    """
    Get the reduced chart/map view for a time window.

    Recomputed from the full series on every call.
    """
    series = _load_series(tracking_code, days, sample_minutes, impact_threshold_g)

    try:
        every_nth = parse_every_nth(route_every_nth)
        window_start, window_end = resolve_window(series, preset, start, end)
        view = build_view(
            series,
            start=window_start,
            end=window_end,
            max_points=max_points,
            threshold_g=threshold_g,
            route_every_nth=every_nth,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return view_payload(series, view, max_points, every_nth)


@router.get("/{tracking_code}/csv")
async def get_csv(
    tracking_code: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    preset: Optional[str] = Query(None),
    days: Optional[float] = Query(None),
    sample_minutes: Optional[float] = Query(None),
    impact_threshold_g: Optional[float] = Query(None),
):
    """
    Download the readings of a time window as CSV.
    """
    series = _load_series(tracking_code, days, sample_minutes, impact_threshold_g)

    try:
        window_start, window_end = resolve_window(series, preset, start, end)
        text = to_csv(filter_by_range(series.sorted(), window_start, window_end))
    except CsvExportError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(series.tracking_code)}"'},
    )


# ============================================================================
# Folder Management Routes
# ============================================================================

folder_router = APIRouter(prefix="/folder", tags=["folder"])


@folder_router.get("", response_model=FolderInfoResponse)
async def get_folder_info():
    """Get information about the current recorded-data folder."""
    repo = get_repository()

    return FolderInfoResponse(
        path=str(repo.data_folder) if repo.data_folder else None,
        recorded_count=len(repo.recorded_codes),
        tracking_codes=repo.recorded_codes,
    )


@folder_router.post("", response_model=FolderInfoResponse)
async def set_folder(request: SetFolderRequest):
    """
    Set the folder holding recorded <tracking_code>.csv files.

    This will clear the current cache and re-scan.
    """
    repo = get_repository()

    path = Path(request.path)
    if not path.exists():
        raise HTTPException(status_code=400, detail=f"Folder does not exist: {request.path}")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Path is not a directory: {request.path}")

    count = repo.set_data_folder(path)

    return FolderInfoResponse(
        path=str(path),
        recorded_count=count,
        tracking_codes=repo.recorded_codes,
    )
