"""Working-hour preference evaluation."""

from datetime import date, datetime, time
from typing import Any, Iterable

import pytz

from models.entities import WEEKDAYS, Flexibility, Person, TimeStatus, WorkingWindow
from services.exceptions import ValidationError

CORE_START = time(10, 0)
CORE_END = time(16, 0)

STATUS_SCORES: dict[str, int] = {
    "core": 20,
    "edge": 10,
    "flexible": 5,
    "outside": -50,
}


def classify(
    moment: time,
    windows: Iterable[WorkingWindow],
    flexibility: Flexibility
) -> TimeStatus:
    """
    Classify a local time of day against a day's working windows.

    Inside a window and inside the 10:00-16:00 core band -> core; inside a
    window otherwise -> edge; outside every window -> flexible for highly
    flexible people, outside for everyone else.
    """
    for window in windows:
        if window.contains(moment):
            core_start = max(window.start, CORE_START)
            core_end = min(window.end, CORE_END)
            if core_start <= moment < core_end:
                return "core"
            return "edge"

    if flexibility == "high":
        return "flexible"
    return "outside"


def status_score(status: TimeStatus) -> int:
    return STATUS_SCORES[status]


def windows_for(person: Person, local_dt: datetime) -> list[WorkingWindow]:
    """Working windows for the local date of local_dt, honoring date overrides."""
    local_date = local_dt.date()
    if local_date in person.overrides:
        return person.overrides[local_date]
    return person.working_hours.get(WEEKDAYS[local_dt.weekday()], [])


def evaluate(person: Person, moment: datetime) -> tuple[datetime, TimeStatus]:
    """Localize a UTC moment for a person and classify it."""
    local_dt = moment.astimezone(pytz.timezone(person.timezone))
    windows = windows_for(person, local_dt)
    return local_dt, classify(local_dt.time().replace(second=0, microsecond=0), windows, person.flexibility)


def parse_time_of_day(value: Any) -> time:
    """Parse "HH:MM" (or a time) into a time of day; "24:00" is end of day."""
    if isinstance(value, time):
        return value
    try:
        hours, minutes = str(value).strip().split(":")[:2]
        hours, minutes = int(hours), int(minutes)
    except ValueError:
        raise ValidationError(f"Invalid time of day: {value!r}")
    if hours == 24 and minutes == 0:
        return time.max
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValidationError(f"Invalid time of day: {value!r}")
    return time(hours, minutes)


def parse_windows(raw: Iterable[Any]) -> list[WorkingWindow]:
    """
    Parse a day's windows from {"start": "HH:MM", "end": "HH:MM"} records.

    Windows are returned sorted; empty or overlapping windows are rejected.
    """
    windows = []
    for item in raw or []:
        if isinstance(item, WorkingWindow):
            window = item
        else:
            window = WorkingWindow(
                start=parse_time_of_day(item.get("start")),
                end=parse_time_of_day(item.get("end"))
            )
        if window.end <= window.start:
            raise ValidationError(
                f"Working window must end after it starts: {window.start:%H:%M}-{window.end:%H:%M}"
            )
        windows.append(window)

    windows.sort(key=lambda w: w.start)
    for previous, current in zip(windows, windows[1:]):
        if current.start < previous.end:
            raise ValidationError(
                f"Working windows overlap: {previous.start:%H:%M}-{previous.end:%H:%M} "
                f"and {current.start:%H:%M}-{current.end:%H:%M}"
            )
    return windows


def parse_working_hours(raw: dict) -> dict[str, list[WorkingWindow]]:
    """Parse a weekday-name -> windows mapping. Unknown day names are rejected."""
    result = {}
    for day, windows in (raw or {}).items():
        day_key = str(day).strip().lower()
        if day_key not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday in working hours: {day!r}")
        result[day_key] = parse_windows(windows)
    return result


def parse_overrides(raw: Any) -> dict[date, list[WorkingWindow]]:
    """
    Parse date overrides, either a mapping of ISO date -> windows or a list of
    {"date": ..., "available": [...]} records.
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        items = raw.items()
    else:
        items = [(entry.get("date"), entry.get("available", [])) for entry in raw]

    result = {}
    for day, windows in items:
        try:
            key = day if isinstance(day, date) else date.fromisoformat(str(day)[:10])
        except ValueError:
            raise ValidationError(f"Invalid override date: {day!r}")
        result[key] = parse_windows(windows)
    return result


def default_working_hours() -> dict[str, list[WorkingWindow]]:
    """Monday to Friday 09:00-17:00, weekends off."""
    hours = {day: [WorkingWindow(time(9, 0), time(17, 0))] for day in WEEKDAYS[:5]}
    hours["saturday"] = []
    hours["sunday"] = []
    return hours
