"""Merges free/busy timelines of every account a person holds."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from models.entities import FreeBusyInterval, Person, ScheduleInfo
from services.freebusy import build_timeline, is_busy_status

# Busy context switches from a countdown to a clock time past this
BUSY_COUNTDOWN_MINUTES = 60
# Next meeting closer than this gets a countdown
NEXT_MEETING_SOON_MINUTES = 30
# Next meeting further than this is not worth mentioning
NEXT_MEETING_HORIZON_MINUTES = 120


@dataclass
class AvailabilityResult:
    """Busy status of one person for one slot."""
    is_busy: bool
    busy_until: Optional[str] = None
    next_busy: Optional[str] = None
    schedule_context: Optional[str] = None


def format_clock(moment: datetime, timezone: str) -> str:
    """Format a moment as 24h HH:MM in the given IANA time zone."""
    return moment.astimezone(pytz.timezone(timezone)).strftime("%H:%M")


def merge_contiguous(intervals: list[FreeBusyInterval]) -> list[FreeBusyInterval]:
    """
    Collapse touching or overlapping intervals of a sorted list into blocks.

    A block keeps the status of its first interval, so back-to-back busy
    cells read as one meeting.
    """
    merged: list[FreeBusyInterval] = []
    for interval in intervals:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = FreeBusyInterval(last.start, interval.end, last.status)
        else:
            merged.append(interval)
    return merged


class AvailabilityAggregator:
    """
    Answers "is this person busy during this slot" across all their accounts.

    A person is busy if any of their accounts has a busy-class interval
    overlapping the slot. Accounts with no fetched timeline contribute nothing,
    so a person without data is always free.
    """

    def __init__(
        self,
        schedules: dict[str, ScheduleInfo],
        range_start: datetime,
        interval_minutes: int = 30
    ):
        """
        Args:
            schedules: email -> fetched schedule (entries with an error are ignored)
            range_start: Start of the queried range, used to decode views
            interval_minutes: Granularity of availability views
        """
        self._timelines: dict[str, list[FreeBusyInterval]] = {}
        for email, schedule in schedules.items():
            if schedule.error:
                continue
            self._timelines[email.lower()] = build_timeline(schedule, range_start, interval_minutes)
        self._person_cache: dict[str, tuple[list[FreeBusyInterval], list[FreeBusyInterval]]] = {}

    def timeline_for(self, email: str) -> list[FreeBusyInterval]:
        return self._timelines.get(email.lower(), [])

    def _intervals_for(self, person: Person) -> tuple[list[FreeBusyInterval], list[FreeBusyInterval]]:
        """Busy-class and unknown intervals of a person, sorted by start."""
        if person.id not in self._person_cache:
            busy = []
            unknown = []
            for email in person.emails:
                for interval in self.timeline_for(email):
                    if is_busy_status(interval.status):
                        busy.append(interval)
                    elif interval.status == "unknown":
                        unknown.append(interval)
            busy.sort(key=lambda item: (item.start, item.end))
            unknown.sort(key=lambda item: item.start)
            self._person_cache[person.id] = (merge_contiguous(busy), unknown)
        return self._person_cache[person.id]

    def check(self, person: Person, slot_start: datetime, slot_end: datetime) -> AvailabilityResult:
        """Evaluate one person against [slot_start, slot_end)."""
        busy, unknown = self._intervals_for(person)

        for interval in busy:
            if interval.overlaps(slot_start, slot_end):
                busy_until = format_clock(interval.end, person.timezone)
                minutes_until_free = round((interval.end - slot_start).total_seconds() / 60)
                if 0 < minutes_until_free <= BUSY_COUNTDOWN_MINUTES:
                    context = f"Meeting ends in {minutes_until_free} min"
                else:
                    context = f"Busy until {busy_until}"
                return AvailabilityResult(is_busy=True, busy_until=busy_until, schedule_context=context)

        result = AvailabilityResult(is_busy=False)
        for interval in busy:
            if interval.start >= slot_end:
                result.next_busy = format_clock(interval.start, person.timezone)
                minutes_until_busy = round((interval.start - slot_end).total_seconds() / 60)
                if minutes_until_busy <= NEXT_MEETING_SOON_MINUTES:
                    result.schedule_context = f"Next meeting in {minutes_until_busy} min"
                elif minutes_until_busy <= NEXT_MEETING_HORIZON_MINUTES:
                    result.schedule_context = f"Free until {result.next_busy}"
                break

        if result.schedule_context is None and any(
            interval.overlaps(slot_start, slot_end) for interval in unknown
        ):
            result.schedule_context = "Calendar status unknown"

        return result
