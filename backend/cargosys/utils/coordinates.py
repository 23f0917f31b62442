"""
Coordinate utilities for route synthesis.

Works directly in WGS84 decimal degrees. Distances use the haversine
great-circle approximation; small displacements use a local flat-earth
conversion, which is accurate to well under a metre at jitter scale.
"""

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_M = 6371000.0        # Mean radius
KM_PER_DEG_LAT = 110.574          # Mean meridional degree length
KM_PER_DEG_LON_EQUATOR = 111.320  # Degree of longitude at the equator


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates in degrees (scalars or arrays)
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters (same shape as inputs)
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def segment_lengths(lat: NDArray[np.float64], lon: NDArray[np.float64]) -> NDArray[np.float64]:
    """Length in meters of each inter-waypoint segment of a polyline."""
    if len(lat) < 2:
        return np.zeros(0, dtype=np.float64)
    return haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:])


def apportion_samples(lengths: NDArray[np.float64], total: int, minimum: int = 2) -> NDArray[np.int64]:
    """
    Split a sample budget across segments proportionally to their length.

    Every segment receives at least `minimum` samples, so the result can
    exceed `total` for polylines with many short segments.
    """
    if len(lengths) == 0:
        return np.zeros(0, dtype=np.int64)

    length_sum = float(np.sum(lengths))
    if length_sum <= 0:
        share = np.full(len(lengths), total / len(lengths))
    else:
        share = total * lengths / length_sum

    counts = np.round(share).astype(np.int64)
    return np.maximum(counts, minimum)


def densify_polyline(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
    total: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Build a dense polyline across waypoints.

    Point counts per segment follow segment length (not waypoint count).
    Segment start points are included, segment end points belong to the
    next segment; the final waypoint is appended once at the end.
    """
    lat = np.asarray(lat, dtype=np.float64)
    lon = np.asarray(lon, dtype=np.float64)
    if len(lat) < 2:
        return lat.copy(), lon.copy()

    counts = apportion_samples(segment_lengths(lat, lon), total)

    out_lat = []
    out_lon = []
    for i, count in enumerate(counts):
        frac = np.arange(count, dtype=np.float64) / count
        out_lat.append(lat[i] + (lat[i + 1] - lat[i]) * frac)
        out_lon.append(lon[i] + (lon[i + 1] - lon[i]) * frac)

    out_lat.append(lat[-1:])
    out_lon.append(lon[-1:])
    return np.concatenate(out_lat), np.concatenate(out_lon)


def resample_polyline(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
    n: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Pick n evenly spread vertices (by index) from a dense polyline."""
    if n <= 0:
        return np.zeros(0), np.zeros(0)
    if n == 1 or len(lat) == 1:
        return np.full(n, lat[0]), np.full(n, lon[0])
    idx = np.round(np.linspace(0, len(lat) - 1, n)).astype(np.int64)
    return lat[idx], lon[idx]


def jitter_positions(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
    radius_km: float,
    rng: np.random.Generator,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Displace each point uniformly within a disk of `radius_km`.

    The radius is drawn as R * sqrt(u): drawing it uniformly would crowd
    points toward the centre (uniform radial density, not uniform area).
    """
    n = len(lat)
    u = rng.random(n)
    theta = rng.random(n) * 2 * np.pi
    if radius_km <= 0:
        return clamp_geodetic(lat.copy(), lon.copy())

    r = radius_km * np.sqrt(u)
    north_km = r * np.cos(theta)
    east_km = r * np.sin(theta)

    new_lat = lat + north_km / KM_PER_DEG_LAT
    cos_lat = np.maximum(np.cos(np.radians(lat)), 1e-6)
    new_lon = lon + east_km / (KM_PER_DEG_LON_EQUATOR * cos_lat)
    return clamp_geodetic(new_lat, new_lon)


def clamp_geodetic(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Clamp latitude to [-90, 90] and wrap longitude to [-180, 180)."""
    lat = np.clip(lat, -90.0, 90.0)
    lon = (lon + 180.0) % 360.0 - 180.0
    return lat, lon
