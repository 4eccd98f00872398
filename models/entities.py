"""Domain models for the meeting time recommender."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Literal, Optional

import pytz

Flexibility = Literal["low", "medium", "high"]
TimeStatus = Literal["core", "edge", "flexible", "outside"]
FreeBusyStatus = Literal["free", "tentative", "busy", "oof", "working_elsewhere", "unknown"]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def to_iso(value: datetime) -> str:
    """Render an aware datetime as an ISO-8601 UTC string with a Z suffix."""
    return value.astimezone(pytz.UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def _format_time_of_day(value: time) -> str:
    # time.max stands for end of day
    if value == time.max:
        return "24:00"
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class WorkingWindow:
    """A local start/end time-of-day pair, end exclusive."""
    start: time
    end: time

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> dict:
        return {"start": _format_time_of_day(self.start), "end": _format_time_of_day(self.end)}


@dataclass(frozen=True)
class Tenant:
    """An organization whose calendars sit behind their own credentials."""
    id: str
    name: str
    domain: str = ""
    azure_tenant_id: str = ""
    azure_app_id: str = ""
    azure_app_secret: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.azure_tenant_id and self.azure_app_id and self.azure_app_secret)


@dataclass(frozen=True)
class Account:
    """One email-addressable calendar identity of a person within a tenant."""
    email: str
    tenant_id: str
    person_id: str
    is_primary: bool = False


@dataclass(frozen=True)
class Person:
    """A meeting participant and their working-hour preferences."""
    id: str
    display_name: str
    timezone: str
    flexibility: Flexibility = "medium"
    working_hours: dict[str, list[WorkingWindow]] = field(default_factory=dict)
    overrides: dict[date, list[WorkingWindow]] = field(default_factory=dict)
    accounts: list[Account] = field(default_factory=list)

    @property
    def emails(self) -> list[str]:
        return [account.email for account in self.accounts]


@dataclass(frozen=True)
class FreeBusyInterval:
    """A half-open [start, end) interval with a free/busy status."""
    start: datetime
    end: datetime
    status: FreeBusyStatus

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    def to_dict(self) -> dict:
        return {"start": to_iso(self.start), "end": to_iso(self.end), "status": self.status}


@dataclass
class ScheduleInfo:
    """Free/busy data returned by a calendar backend for one email."""
    email: str
    availability_view: str = ""
    schedule_items: list[FreeBusyInterval] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SlotDetail:
    """How one participant sees a candidate slot."""
    person_id: str
    display_name: str
    local_time: str
    status: TimeStatus
    is_busy: bool
    busy_until: Optional[str] = None
    next_busy: Optional[str] = None
    schedule_context: Optional[str] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "personId": self.person_id,
            "displayName": self.display_name,
            "localTime": self.local_time,
            "status": self.status,
            "isBusy": self.is_busy,
        }
        if self.busy_until is not None:
            result["busyUntil"] = self.busy_until
        if self.next_busy is not None:
            result["nextBusy"] = self.next_busy
        if self.schedule_context is not None:
            result["scheduleContext"] = self.schedule_context
        return result


@dataclass
class TimeSlot:
    """A scored candidate meeting slot."""
    start: datetime
    end: datetime
    score: float
    all_available: bool
    details: list[SlotDetail] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "score": self.score,
            "allAvailable": self.all_available,
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass
class TenantFetchError:
    """A data source that could not be read for this request."""
    tenant_id: str
    error: str
    email: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"tenantId": self.tenant_id, "error": self.error}
        if self.email:
            result["email"] = self.email
        return result


@dataclass
class RecommendationResponse:
    """Final ranked result handed to the caller."""
    recommendations: list[TimeSlot]
    alternatives_with_conflicts: list[TimeSlot]
    errors: list[TenantFetchError]
    persons_count: int
    tenants_count: int
    range_start: datetime
    range_end: datetime
    duration_minutes: int

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "recommendations": [slot.to_dict() for slot in self.recommendations],
            "alternativesWithConflicts": [slot.to_dict() for slot in self.alternatives_with_conflicts],
            "meta": {
                "personsCount": self.persons_count,
                "tenantsCount": self.tenants_count,
                "timeRange": {"start": to_iso(self.range_start), "end": to_iso(self.range_end)},
                "durationMinutes": self.duration_minutes,
            },
        }
        if self.errors:
            result["errors"] = [err.to_dict() for err in self.errors]
        return result
