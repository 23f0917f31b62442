"""
Instant conversion helpers.

Internally every instant is an integer count of Unix epoch seconds (UTC).
Naive datetimes are taken to be UTC.
"""

from datetime import datetime, timezone
from typing import Optional, Union

import numpy as np

Instant = Union[datetime, str, int, float, np.integer, np.floating]

ISO_Z_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string, accepting a trailing 'Z'."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_seconds(value: Optional[Instant], round_up: bool = False) -> Optional[int]:
    """
    Convert an instant to whole epoch seconds; None passes through.

    Fractional seconds are floored, or ceiled with `round_up` (lower bounds).
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = parse_iso(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        seconds = value.timestamp()
    else:
        seconds = float(value)
    return int(np.ceil(seconds) if round_up else np.floor(seconds))


def format_iso_z(epoch_s: int) -> str:
    """ISO-8601 with second precision and a literal Z suffix."""
    return datetime.fromtimestamp(int(epoch_s), tz=timezone.utc).strftime(ISO_Z_FORMAT)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
