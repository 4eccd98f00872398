"""Free/busy timeline decoding and normalization."""

import re
from datetime import datetime, timedelta
from typing import Union

import pytz

from models.entities import FreeBusyInterval, FreeBusyStatus, ScheduleInfo

# Availability view cell codes as returned by calendar backends
VIEW_STATUS_MAP: dict[str, FreeBusyStatus] = {
    "0": "free",
    "1": "tentative",
    "2": "busy",
    "3": "oof",
    "4": "busy",  # working elsewhere
}

EXPLICIT_STATUS_MAP: dict[str, FreeBusyStatus] = {
    "free": "free",
    "tentative": "tentative",
    "busy": "busy",
    "oof": "oof",
    "outofoffice": "oof",
    "workingelsewhere": "working_elsewhere",
    "working_elsewhere": "working_elsewhere",
}

BUSY_STATUSES = frozenset({"busy", "working_elsewhere"})

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def is_busy_status(status: str) -> bool:
    return status in BUSY_STATUSES


def normalize_status(raw: str) -> FreeBusyStatus:
    """Map a backend status name onto the known statuses, defaulting to unknown."""
    if not raw:
        return "unknown"
    return EXPLICIT_STATUS_MAP.get(raw.strip().lower(), "unknown")


def to_utc(value: Union[str, datetime], default_tz: str = "UTC") -> datetime:
    """
    Coerce an ISO string or datetime into an aware UTC datetime.

    Naive values are interpreted in default_tz. Fractional seconds beyond
    microseconds (Graph sends seven digits) are truncated.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION_RE.sub(r"\1", text)
        value = datetime.fromisoformat(text)
    elif not isinstance(value, datetime):
        raise TypeError(f"Expected ISO string or datetime, got {type(value).__name__}")

    if value.tzinfo is None:
        value = pytz.timezone(default_tz).localize(value)
    return value.astimezone(pytz.UTC)


def parse_availability_view(
    view: str,
    start: datetime,
    interval_minutes: int = 30
) -> list[FreeBusyInterval]:
    """
    Decode a compact availability view string into timestamped intervals.

    Each character covers one interval of interval_minutes starting at start.
    Characters outside the status table decode to "unknown"; this never raises.

    Args:
        view: Availability view, e.g. "0022001"
        start: Start of the queried range
        interval_minutes: Granularity of one cell

    Returns:
        Contiguous intervals covering [start, start + len(view) * interval)
    """
    if not view or interval_minutes <= 0:
        return []

    start = to_utc(start)
    step = timedelta(minutes=interval_minutes)
    intervals = []
    for i, code in enumerate(view):
        cell_start = start + i * step
        intervals.append(FreeBusyInterval(
            start=cell_start,
            end=cell_start + step,
            status=VIEW_STATUS_MAP.get(code, "unknown")
        ))
    return intervals


def build_timeline(
    schedule: ScheduleInfo,
    range_start: datetime,
    interval_minutes: int = 30
) -> list[FreeBusyInterval]:
    """
    Build the effective timeline for one account.

    Explicit schedule items win wherever they are present; decoded view cells
    fill in the time no explicit item covers.
    """
    explicit = sorted(schedule.schedule_items, key=lambda item: item.start)
    decoded = parse_availability_view(schedule.availability_view, range_start, interval_minutes)

    if not explicit:
        return decoded

    fallback = [
        cell for cell in decoded
        if not any(item.overlaps(cell.start, cell.end) for item in explicit)
    ]
    return sorted(explicit + fallback, key=lambda item: (item.start, item.end))
