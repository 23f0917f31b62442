"""
Deterministic synthetic telemetry generator.

Produces a months-long, irregularly sampled GPS + sensor series for a
tracking code by driving a refrigerated trailer around a repeating
multi-leg journey (see cargosys.models.route).

The tracking code seeds a numpy Generator created fresh for every call and
passed explicitly to each synthesis step, so identical inputs give
identical output. Only a defaulted start instant depends on the clock.
"""

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from cargosys.models.route import LEG_PATTERN, ROUTES, LegTemplate
from cargosys.models.telemetry import Leg, Phase, ReadingSeries, SimulationOptions
from cargosys.utils.coordinates import densify_polyline, jitter_positions, resample_polyline
from cargosys.utils.time import to_epoch_seconds, utc_now


logger = logging.getLogger(__name__)


SECONDS_PER_DAY = 86400

# Temperature (C)
BASE_TEMP_C = 7.0
DAY_NIGHT_SWING_C = 3.2
COOLING_OFFSET_C = 5.0        # reefer unit active on long haul
STOP_DRIFT_C_PER_H = 0.25     # doors open / unit idle while stationary
STOP_DRIFT_MAX_C = 1.5
TEMP_RANGE_C = (-2.0, 15.0)

# Relative humidity (%)
BASE_RH_PCT = 50.0
RH_SWING_PCT = 10.0
RAIN_CYCLE_DAYS = 14
RAIN_START_DAY = 4            # day within the cycle the rain window opens
RAIN_LENGTH_DAYS = 5
RAIN_MAX_BOOST_PCT = 12.0
RH_RANGE_PCT = (35.0, 85.0)

# Vibration
TRAVEL_RMS_G = (0.35, 0.90)
STATIONARY_RMS_G = (0.02, 0.08)
TRAVEL_HZ = (18.0, 38.0)
STATIONARY_HZ = (5.0, 12.0)
WEEKEND_DAMPING = 0.6
HZ_PER_RMS_G = 8.0
RMS_RANGE_G = (0.0, 3.0)
HZ_RANGE = (0.0, 60.0)

# Impact (g)
IMPACT_BASE_G = 0.12
IMPACT_NOISE_G = 0.25
IMPACT_SPIKE_PROB = 0.02
IMPACT_SPIKE_G = 0.4

# Battery
BATTERY_NOISE_PCT = 0.3
CELL_EMPTY_V = 3.3
CELL_SPAN_V = 0.9
VOLTAGE_NOISE_V = 0.02
VOLTAGE_RANGE_V = (3.0, 4.2)


class SimulationConfigError(ValueError):
    """Raised for malformed generation options."""


@dataclass(frozen=True)
class ScriptedEvent:
    """
    Impact injected at a fixed minute offset within a leg.

    `levels` are multiples of the configured alert threshold, applied to
    consecutive samples starting at the offset (main hit, then aftershocks).
    """

    name: str
    phase: Phase
    cycle: int
    minute_in_leg: int
    levels: tuple[float, ...]


SCRIPTED_EVENTS: tuple[ScriptedEvent, ...] = (
    ScriptedEvent("loading_bump", Phase.LOAD_STOP, cycle=1, minute_in_leg=45, levels=(1.2,)),
    ScriptedEvent("pallet_drop", Phase.LONG_HAUL_OUT, cycle=14, minute_in_leg=180, levels=(4.9, 0.8, 0.55)),
)


def seed_from_code(tracking_code: str) -> int:
    """Hash a tracking code to a 32-bit seed."""
    digest = hashlib.sha256(tracking_code.encode("utf-8")).hexdigest()
    return int(digest[:8], 16)


def validate_options(options: SimulationOptions) -> None:
    """Fail fast on malformed options; never clamp silently."""
    checks = [
        ("days", options.days, lambda v: v >= 0),
        ("sample_minutes", options.sample_minutes, lambda v: v > 0),
        ("sample_jitter_minutes", options.sample_jitter_minutes, lambda v: v >= 0),
        ("gps_jitter_km", options.gps_jitter_km, lambda v: v >= 0),
        ("impact_threshold_g", options.impact_threshold_g, lambda v: v > 0),
        ("battery_drain_days", options.battery_drain_days, lambda v: v > 0),
    ]
    for name, value, ok in checks:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise SimulationConfigError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(number) or not ok(number):
            raise SimulationConfigError(f"Invalid {name}: {value!r}")


def build_timeline(
    start: int,
    total_s: int,
    pattern: tuple[LegTemplate, ...] = LEG_PATTERN,
) -> list[Leg]:
    """
    Lay the cyclic leg pattern end-to-end from `start` until `total_s` is covered.

    Each leg's end is the next leg's start; the final leg is truncated at
    the horizon.
    """
    legs: list[Leg] = []
    if total_s <= 0:
        return legs

    horizon = start + total_s
    cursor = start
    cycle = 0
    while cursor < horizon:
        for template in pattern:
            end = min(cursor + template.duration_min * 60, horizon)
            legs.append(Leg(template.phase, cursor, end, template.route, cycle))
            cursor = end
            if cursor >= horizon:
                break
        cycle += 1
    return legs


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _samples_per_leg(leg: Leg, interval_s: float) -> int:
    return max(2, _round_half_up(leg.duration_s / interval_s))


def _leg_positions(leg: Leg, n: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    waypoints = ROUTES[leg.route]
    lat = np.array([w.lat for w in waypoints], dtype=np.float64)
    lon = np.array([w.lon for w in waypoints], dtype=np.float64)
    if not leg.phase.is_travel or len(waypoints) == 1:
        return np.full(n, lat[0]), np.full(n, lon[0])
    dense_lat, dense_lon = densify_polyline(lat, lon, n)
    return resample_polyline(dense_lat, dense_lon, n)


def _event_targets(legs: list[Leg]) -> dict[int, list[ScriptedEvent]]:
    """Map leg index -> scripted events to inject into that leg."""
    targets: dict[int, list[ScriptedEvent]] = {}
    for event in SCRIPTED_EVENTS:
        candidates = [i for i, leg in enumerate(legs) if leg.phase is event.phase]
        if not candidates:
            continue
        last_cycle = legs[candidates[-1]].cycle
        cycle = min(event.cycle, last_cycle)
        for i in candidates:
            if legs[i].cycle == cycle:
                targets.setdefault(i, []).append(event)
                break
    return targets


def _temperature(
    t: NDArray[np.int64],
    leg_elapsed_s: NDArray[np.float64],
    is_travel: NDArray[np.bool_],
    is_long_haul: NDArray[np.bool_],
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    hour = (t % SECONDS_PER_DAY) / 3600.0
    # Peak around 16:00, low around 04:00
    day_night = np.sin((hour - 10.0) / 24.0 * 2 * np.pi)
    noise = (rng.random(len(t)) - 0.5) * 0.6

    temp = BASE_TEMP_C + day_night * DAY_NIGHT_SWING_C + noise
    temp = temp - np.where(is_long_haul, COOLING_OFFSET_C, 0.0)
    drift = np.minimum(leg_elapsed_s / 3600.0 * STOP_DRIFT_C_PER_H, STOP_DRIFT_MAX_C)
    temp = temp + np.where(is_travel, 0.0, drift)
    return np.clip(temp, *TEMP_RANGE_C)


def _humidity(
    t: NDArray[np.int64],
    start: int,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    hour = (t % SECONDS_PER_DAY) / 3600.0
    day_night = np.sin((hour - 10.0) / 24.0 * 2 * np.pi)
    noise = (rng.random(len(t)) - 0.5) * 3.0

    elapsed_days = (t - start) / SECONDS_PER_DAY
    day_in_cycle = np.floor(elapsed_days).astype(np.int64) % RAIN_CYCLE_DAYS
    in_rain = (day_in_cycle >= RAIN_START_DAY) & (day_in_cycle < RAIN_START_DAY + RAIN_LENGTH_DAYS)
    # 0 at the window edges, 1 in the middle
    window_pos = (elapsed_days % RAIN_CYCLE_DAYS - RAIN_START_DAY) / RAIN_LENGTH_DAYS
    rain = np.where(in_rain, RAIN_MAX_BOOST_PCT * np.sin(np.pi * np.clip(window_pos, 0.0, 1.0)), 0.0)

    rh = BASE_RH_PCT - day_night * RH_SWING_PCT + rain + noise
    return np.clip(rh, *RH_RANGE_PCT)


def _is_weekend(t: NDArray[np.int64]) -> NDArray[np.bool_]:
    # 1970-01-01 was a Thursday (weekday 3, Monday = 0)
    weekday = (t // SECONDS_PER_DAY + 3) % 7
    return weekday >= 5


def _vibration(
    t: NDArray[np.int64],
    is_travel: NDArray[np.bool_],
    rng: np.random.Generator,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    n = len(t)
    u_rms = rng.random(n)
    u_hz = rng.random(n)

    rms_lo = np.where(is_travel, TRAVEL_RMS_G[0], STATIONARY_RMS_G[0])
    rms_hi = np.where(is_travel, TRAVEL_RMS_G[1], STATIONARY_RMS_G[1])
    hz_lo = np.where(is_travel, TRAVEL_HZ[0], STATIONARY_HZ[0])
    hz_hi = np.where(is_travel, TRAVEL_HZ[1], STATIONARY_HZ[1])

    damping = np.where(_is_weekend(t), WEEKEND_DAMPING, 1.0)
    rms = (rms_lo + u_rms * (rms_hi - rms_lo)) * damping
    hz = (hz_lo + u_hz * (hz_hi - hz_lo)) * damping + HZ_PER_RMS_G * rms
    return np.clip(rms, *RMS_RANGE_G), np.clip(hz, *HZ_RANGE)


def _impact(n: int, rng: np.random.Generator) -> NDArray[np.float64]:
    base = IMPACT_BASE_G + rng.random(n) * IMPACT_NOISE_G
    spike = rng.random(n) < IMPACT_SPIKE_PROB
    spike_size = rng.random(n) * IMPACT_SPIKE_G
    return base + np.where(spike, spike_size, 0.0)


def _battery(
    t: NDArray[np.int64],
    start: int,
    drain_days: float,
    rng: np.random.Generator,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Linear drain with noise, floored against the previous sample."""
    n = len(t)
    elapsed_days = (t - start) / SECONDS_PER_DAY
    ideal = 100.0 * (1.0 - elapsed_days / drain_days)
    pct = np.clip(ideal + (rng.random(n) - 0.5) * BATTERY_NOISE_PCT, 0.0, 100.0)
    pct = np.minimum.accumulate(np.round(pct, 2)) if n else pct

    volts = CELL_EMPTY_V + CELL_SPAN_V * pct / 100.0 + (rng.random(n) - 0.5) * VOLTAGE_NOISE_V
    volts = np.clip(volts, *VOLTAGE_RANGE_V)
    return pct, np.round(volts, 3)


def _sample_leg(
    leg: Leg,
    window_start: int,
    interval_s: float,
    jitter_s: float,
    gps_jitter_km: float,
    threshold_g: float,
    events: list[ScriptedEvent],
    rng: np.random.Generator,
) -> dict[str, NDArray]:
    n = _samples_per_leg(leg, interval_s)
    step = leg.duration_s / n
    nominal = leg.start + np.arange(n, dtype=np.float64) * step
    jitter = (rng.random(n) * 2.0 - 1.0) * jitter_s
    t = np.round(nominal + jitter).astype(np.int64)
    leg_elapsed = np.clip(t - leg.start, 0, None).astype(np.float64)

    lat, lon = _leg_positions(leg, n)
    lat, lon = jitter_positions(lat, lon, gps_jitter_km, rng)

    is_travel = np.full(n, leg.phase.is_travel)
    is_long_haul = np.full(n, leg.phase.is_long_haul)

    temp = _temperature(t, leg_elapsed, is_travel, is_long_haul, rng)
    rh = _humidity(t, window_start, rng)
    rms, hz = _vibration(t, is_travel, rng)
    impact = _impact(n, rng)

    # Events are keyed to the nominal sample index, not the jittered instant
    for event in events:
        first = min(n - 1, math.ceil(event.minute_in_leg * 60 / step))
        for offset, level in enumerate(event.levels):
            idx = first + offset
            if idx < n:
                impact[idx] = level * threshold_g

    return {
        "timestamps": t,
        "lat": lat,
        "lon": lon,
        "temperature_c": temp,
        "relative_humidity_pct": rh,
        "impact_g": impact,
        "vibration_rms": rms,
        "vibration_hz": hz,
    }


def generate(
    tracking_code: str,
    options: Optional[SimulationOptions] = None,
) -> ReadingSeries:
    """
    Generate a synthetic reading series for a tracking code.

    Args:
        tracking_code: Device identifier, also the PRNG seed source
        options: Generation options (defaults: SimulationOptions())

    Returns:
        ReadingSeries sorted by strictly increasing timestamp

    Raises:
        SimulationConfigError: if an option is malformed
    """
    if options is None:
        options = SimulationOptions()
    validate_options(options)

    total_s = _round_half_up(float(options.days) * SECONDS_PER_DAY)
    if total_s == 0:
        logger.debug(f"Zero-length window for {tracking_code}, returning empty series")
        return ReadingSeries.empty(tracking_code)

    if options.start_date is not None:
        start = to_epoch_seconds(options.start_date)
    else:
        start = to_epoch_seconds(utc_now()) - total_s
    end = start + total_s

    rng = np.random.default_rng(seed_from_code(tracking_code))
    legs = build_timeline(start, total_s)
    targets = _event_targets(legs)

    interval_s = float(options.sample_minutes) * 60.0
    jitter_s = float(options.sample_jitter_minutes) * 60.0

    chunks = [
        _sample_leg(
            leg,
            start,
            interval_s,
            jitter_s,
            float(options.gps_jitter_km),
            float(options.impact_threshold_g),
            targets.get(i, []),
            rng,
        )
        for i, leg in enumerate(legs)
    ]
    columns = {key: np.concatenate([c[key] for c in chunks]) for key in chunks[0]}

    # Drop instants pushed outside the window, then order and de-duplicate
    t = columns["timestamps"]
    inside = (t >= start) & (t <= end)
    order = np.argsort(t[inside], kind="stable")
    columns = {key: values[inside][order] for key, values in columns.items()}
    t = columns["timestamps"]
    keep = np.ones(len(t), dtype=np.bool_)
    keep[1:] = t[1:] != t[:-1]
    columns = {key: values[keep] for key, values in columns.items()}

    battery_pct, battery_v = _battery(
        columns["timestamps"], start, float(options.battery_drain_days), rng
    )

    series = ReadingSeries(
        tracking_code=tracking_code,
        timestamps=columns["timestamps"],
        lat=np.round(columns["lat"], 6),
        lon=np.round(columns["lon"], 6),
        temperature_c=np.round(columns["temperature_c"], 1),
        relative_humidity_pct=np.round(columns["relative_humidity_pct"], 1),
        impact_g=np.round(columns["impact_g"], 2),
        vibration_rms=np.round(columns["vibration_rms"], 3),
        vibration_hz=np.round(columns["vibration_hz"], 1),
        battery_pct=battery_pct,
        battery_voltage=battery_v,
        source="mock",
    )

    logger.info(
        f"Generated {len(series)} readings for {tracking_code} "
        f"across {len(legs)} legs ({options.days} days)"
    )
    return series
