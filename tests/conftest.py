"""Pytest fixtures for the meeting recommender tests."""

import logging
from datetime import datetime, time

import pytest
import pytz

from models.entities import Account, Person, ScheduleInfo, Tenant, WorkingWindow
from services.directory import Directory
from services.exceptions import CalendarFetchError

logging.basicConfig(level=logging.INFO)


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=pytz.UTC)


def make_person(
    person_id="p1",
    timezone="UTC",
    flexibility="low",
    working_hours=None,
    accounts=None,
    overrides=None,
) -> Person:
    if working_hours is None:
        working_hours = {"monday": [WorkingWindow(time(9, 0), time(17, 0))]}
    if accounts is None:
        accounts = [(f"{person_id}@a.example", "tenant_a")]
    return Person(
        id=person_id,
        display_name=person_id.upper(),
        timezone=timezone,
        flexibility=flexibility,
        working_hours=working_hours,
        overrides=overrides or {},
        accounts=[Account(email, tenant, person_id) for email, tenant in accounts],
    )


class FakeCalendarClient:
    """Returns canned schedules per email, or raises for the whole tenant."""

    def __init__(self, views=None, error=None, email_errors=None, block=None):
        self.views = views or {}
        self.error = error
        self.email_errors = email_errors or {}
        self.block = block
        self.calls = []

    def get_schedule(self, emails, start, end, timezone="UTC"):
        self.calls.append(list(emails))
        if self.block is not None:
            self.block.wait(5)
        if self.error:
            raise CalendarFetchError(self.error)
        result = []
        for email in emails:
            if email in self.email_errors:
                result.append(ScheduleInfo(email=email, error=self.email_errors[email]))
            else:
                result.append(ScheduleInfo(email=email, availability_view=self.views.get(email, "")))
        return result


class FakeCalendarService:
    def __init__(self, clients):
        self.clients = clients

    def client_for(self, tenant):
        return self.clients[tenant.id]


@pytest.fixture
def tenants():
    return [Tenant(id="tenant_a", name="A"), Tenant(id="tenant_b", name="B")]


@pytest.fixture
def make_directory(tenants):
    def _make(*persons):
        return Directory(tenants, list(persons))
    return _make
