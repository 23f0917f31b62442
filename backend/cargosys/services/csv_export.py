"""
CSV export of reading series.

Fixed column order, one header line, one line per reading. Fields that
contain a comma, quote or newline are quoted with inner quotes doubled.
"""

import math

from cargosys.models.telemetry import ReadingSeries
from cargosys.utils.time import format_iso_z


CSV_HEADER = "ts,lat,lon,tempC,rhPct,impactG,vibrationRms,vibrationHz,batteryPct,batteryV"

# CSV column -> ReadingSeries attribute
CSV_COLUMNS = (
    ("lat", "lat"),
    ("lon", "lon"),
    ("tempC", "temperature_c"),
    ("rhPct", "relative_humidity_pct"),
    ("impactG", "impact_g"),
    ("vibrationRms", "vibration_rms"),
    ("vibrationHz", "vibration_hz"),
    ("batteryPct", "battery_pct"),
    ("batteryV", "battery_voltage"),
)


class CsvExportError(ValueError):
    """Raised when a reading cannot be serialized (non-finite field)."""


def escape_field(value: str) -> str:
    if any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_number(value: float) -> str:
    """Shortest round-tripping decimal form (repr of the float)."""
    return repr(float(value))


def to_csv(series: ReadingSeries) -> str:
    """
    Serialize a series to CSV text.

    Raises:
        CsvExportError: if any numeric field is NaN or infinite
    """
    columns = [series.channel(attr) for _, attr in CSV_COLUMNS]
    lines = [CSV_HEADER]

    for i in range(len(series)):
        fields = [format_iso_z(int(series.timestamps[i]))]
        for (name, _), values in zip(CSV_COLUMNS, columns):
            value = float(values[i])
            if not math.isfinite(value):
                raise CsvExportError(
                    f"Non-finite {name} at row {i} ({fields[0]}) for {series.tracking_code}"
                )
            fields.append(format_number(value))
        lines.append(",".join(escape_field(f) for f in fields))

    return "\n".join(lines)


def export_filename(tracking_code: str) -> str:
    safe_code = tracking_code.strip() or "demo"
    return f"cargosys-{safe_code}.csv"

