"""
Route geometry and leg pattern for the simulated journey.

Synthetic but plausible Rotterdam <-> Basel refrigerated shuttle:
- short haul between the port terminal and the Moerdijk distribution centre
- long haul Moerdijk -> Antwerp -> Brussels -> Luxembourg -> Strasbourg -> Basel

All tables are tuples of frozen dataclasses and are never mutated at runtime.
"""

from dataclasses import dataclass

from cargosys.models.telemetry import Phase


@dataclass(frozen=True)
class Waypoint:
    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class LegTemplate:
    """One entry of the cyclic leg pattern."""

    phase: Phase
    duration_min: int
    route: str  # key into ROUTES


PORT_TERMINAL = Waypoint("Rotterdam Maasvlakte terminal", 51.9514, 4.0290)
RING_WEST = Waypoint("Rotterdam A15 Botlek", 51.8722, 4.3010)
RING_SOUTH = Waypoint("Ridderkerk interchange", 51.8650, 4.5960)
MOERDIJK_DC = Waypoint("Moerdijk distribution centre", 51.6780, 4.6060)
ANTWERP = Waypoint("Antwerp ring", 51.2194, 4.4025)
BRUSSELS = Waypoint("Brussels ring", 50.8503, 4.3517)
NAMUR = Waypoint("Namur", 50.4674, 4.8720)
LUXEMBOURG = Waypoint("Luxembourg", 49.6116, 6.1319)
METZ = Waypoint("Metz", 49.1193, 6.1757)
STRASBOURG = Waypoint("Strasbourg", 48.5734, 7.7521)
MULHOUSE = Waypoint("Mulhouse", 47.7508, 7.3359)
BASEL_DEPOT = Waypoint("Basel Rheinhafen depot", 47.5870, 7.5950)


_SHORT_HAUL = (PORT_TERMINAL, RING_WEST, RING_SOUTH, MOERDIJK_DC)
_LONG_HAUL = (
    MOERDIJK_DC,
    ANTWERP,
    BRUSSELS,
    NAMUR,
    LUXEMBOURG,
    METZ,
    STRASBOURG,
    MULHOUSE,
    BASEL_DEPOT,
)

# Directional routes; stationary legs use a single waypoint
ROUTES: dict[str, tuple[Waypoint, ...]] = {
    "short_out": _SHORT_HAUL,
    "short_in": tuple(reversed(_SHORT_HAUL)),
    "long_out": _LONG_HAUL,
    "long_return": tuple(reversed(_LONG_HAUL)),
    "moerdijk": (MOERDIJK_DC,),
    "basel": (BASEL_DEPOT,),
    "port": (PORT_TERMINAL,),
}

# One full cycle is exactly two days (2880 min)
LEG_PATTERN: tuple[LegTemplate, ...] = (
    LegTemplate(Phase.SHORT_HAUL_OUT, 90, "short_out"),
    LegTemplate(Phase.LOAD_STOP, 120, "moerdijk"),
    LegTemplate(Phase.LONG_HAUL_OUT, 540, "long_out"),
    LegTemplate(Phase.REST, 660, "basel"),
    LegTemplate(Phase.LONG_HAUL_RETURN, 540, "long_return"),
    LegTemplate(Phase.LOAD_STOP, 120, "moerdijk"),
    LegTemplate(Phase.SHORT_HAUL_IN, 90, "short_in"),
    LegTemplate(Phase.REST, 720, "port"),
)

CYCLE_MINUTES = sum(t.duration_min for t in LEG_PATTERN)
