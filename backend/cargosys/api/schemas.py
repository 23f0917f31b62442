"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional
from pydantic import BaseModel


# ============================================================================
# Reading Schemas
# ============================================================================

class ReadingResponse(BaseModel):
    """Single telemetry reading."""
    ts: str  # ISO-8601, second precision, Z suffix
    lat: Optional[float] = None
    lon: Optional[float] = None
    temperature_c: Optional[float] = None
    relative_humidity_pct: Optional[float] = None
    impact_g: Optional[float] = None
    vibration_rms: Optional[float] = None
    vibration_hz: Optional[float] = None
    battery_pct: Optional[float] = None
    battery_voltage: Optional[float] = None


class ChartPointResponse(ReadingResponse):
    """Downsampled chart point with its threshold flag."""
    impact_exceeded: bool


class TrackResponse(BaseModel):
    """Full reading series for a tracking code."""
    tracking_code: str
    source: str  # "mock" or "recorded"
    reading_count: int
    first_ts: Optional[str] = None
    last_ts: Optional[str] = None
    readings: list[ReadingResponse]


# ============================================================================
# View Schemas
# ============================================================================

class RouteSegmentResponse(BaseModel):
    """Route polyline run, colored by incident status."""
    is_hot: bool
    positions: list[tuple[float, float]]  # (lat, lon)


class ViewResponse(BaseModel):
    """Reduced view for one rendering pass."""
    tracking_code: str
    source: str
    range_start: Optional[str] = None
    range_end: Optional[str] = None
    max_points: int
    threshold_g: float
    route_every_nth: int
    filtered_count: int

    chart: list[ChartPointResponse]
    incidents: list[ReadingResponse]
    route_segments: list[RouteSegmentResponse]
    latest: Optional[ReadingResponse] = None


# ============================================================================
# Folder Management Schemas
# ============================================================================

class SetFolderRequest(BaseModel):
    """Request to set the recorded-data folder."""
    path: str


class FolderInfoResponse(BaseModel):
    """Information about the current recorded-data folder."""
    path: Optional[str]
    recorded_count: int
    tracking_codes: list[str] = []


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
