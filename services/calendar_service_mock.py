"""Mock calendar backend producing synthetic free/busy data."""

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from models.entities import ScheduleInfo
from services.exceptions import CalendarFetchError
from services.freebusy import parse_availability_view

logger = logging.getLogger(__name__)


def generate_availability_view(slots: int, seed: int, interval_minutes: int = 30) -> str:
    """
    Generate a plausible availability view.

    Outside 09:00-18:00 is free, lunch (12:00-13:00) is occasionally busy and
    the rest of the working day is busy roughly 40% of the time. The hour is
    taken from the cell index, so day boundaries follow the range start.
    """
    def random(i: int) -> float:
        return math.sin(seed * 1000 + i * 123.456) * 0.5 + 0.5

    view = []
    for i in range(slots):
        hour_of_day = (i * interval_minutes // 60) % 24
        if hour_of_day < 9 or hour_of_day >= 18:
            view.append("0")
        elif 12 <= hour_of_day < 13:
            view.append("2" if random(i) > 0.8 else "0")
        else:
            view.append("2" if random(i) > 0.6 else "0")
    return "".join(view)


class MockCalendarClient:
    """Calendar backend that fabricates deterministic schedules per email."""

    def __init__(
        self,
        tenant_id: str = "mock",
        interval_minutes: int = 30,
        failing_tenants: Optional[Iterable[str]] = None,
        failing_emails: Optional[Iterable[str]] = None
    ):
        """
        Args:
            tenant_id: Tenant this client stands in for
            interval_minutes: Granularity of generated views
            failing_tenants: Tenant ids whose whole fetch should fail
            failing_emails: Emails that come back with a per-email error
        """
        self.tenant_id = tenant_id
        self.interval_minutes = interval_minutes
        self.failing_tenants = set(failing_tenants or [])
        self.failing_emails = {email.lower() for email in failing_emails or []}

    def get_schedule(
        self,
        emails: list[str],
        start: datetime,
        end: datetime,
        timezone: str = "UTC"
    ) -> list[ScheduleInfo]:
        """Return synthetic schedules, or fail if this tenant is set up to fail."""
        if self.tenant_id in self.failing_tenants:
            raise CalendarFetchError(f"Simulated outage for tenant {self.tenant_id}")

        step = timedelta(minutes=self.interval_minutes)
        slots = math.ceil((end - start) / step)
        logger.info(f"[MOCK] Generating mock schedules for {len(emails)} users, {slots} slots")

        schedules = []
        for index, email in enumerate(emails):
            if email.lower() in self.failing_emails:
                schedules.append(ScheduleInfo(email=email, error="Mailbox not found"))
                continue
            seed = sum(ord(c) for c in email) + index
            view = generate_availability_view(slots, seed, self.interval_minutes)
            schedules.append(ScheduleInfo(
                email=email,
                availability_view=view,
                schedule_items=[
                    cell for cell in parse_availability_view(view, start, self.interval_minutes)
                    if cell.status != "free"
                ]
            ))
        return schedules
