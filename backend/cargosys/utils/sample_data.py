"""
Sample data generator for testing.

Writes simulated series as CSV exports, in the same format the export
endpoint produces, so the folder can be served as recorded data.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cargosys.models.telemetry import SimulationOptions
from cargosys.services.csv_export import to_csv
from cargosys.services.simulator import generate


DEMO_CODES = ("CS-DEMO", "CS-REEFER-01", "CS-REEFER-02")
DEMO_START = datetime(2026, 1, 1, 6, 0, tzinfo=timezone.utc)


def generate_recorded_run(
    output_path: Path,
    tracking_code: str,
    days: float = 14.0,
    sample_minutes: float = 30.0,
    start_date: datetime = DEMO_START,
) -> Path:
    """Generate one recorded-series CSV file."""
    series = generate(
        tracking_code,
        SimulationOptions(days=days, sample_minutes=sample_minutes, start_date=start_date),
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(to_csv(series))
    return output_path


def generate_demo_data_set(
    output_folder: Path,
    codes: Optional[tuple[str, ...]] = None,
    days: float = 14.0,
) -> list[Path]:
    """Generate a set of recorded-series files, one per tracking code."""
    output_folder.mkdir(parents=True, exist_ok=True)
    return [
        generate_recorded_run(output_folder / f"{code}.csv", code, days=days)
        for code in (codes or DEMO_CODES)
    ]


if __name__ == "__main__":
    # Generate demo data when run directly
    output = Path("./data/recorded")
    files = generate_demo_data_set(output)
    print(f"Generated {len(files)} recorded series in {output}")
    for f in files:
        print(f"  - {f.name}")
