"""Tests for backend selection and the mock calendar backend."""

import pytest

from conftest import utc
from models.entities import Tenant
from services.calendar_service import CalendarService
from services.calendar_service_mock import MockCalendarClient, generate_availability_view
from services.exceptions import CalendarFetchError
from services.graph_client import GraphCalendarClient
from settings import Settings

CREDENTIALED = Tenant(
    id="tenant_a", name="A", azure_tenant_id="t", azure_app_id="app", azure_app_secret="secret"
)
BARE = Tenant(id="tenant_b", name="B")


def test_credentialed_tenant_gets_graph_client():
    service = CalendarService(Settings())

    client = service.client_for(CREDENTIALED)

    assert isinstance(client, GraphCalendarClient)
    assert service.client_for(CREDENTIALED) is client


def test_mock_mode_uses_mock_for_everyone():
    service = CalendarService(Settings(mock_mode=True))

    assert isinstance(service.client_for(CREDENTIALED), MockCalendarClient)


def test_tenant_without_credentials_falls_back_to_mock():
    service = CalendarService(Settings())

    assert isinstance(service.client_for(BARE), MockCalendarClient)


def test_mock_backend_can_simulate_tenant_outage():
    service = CalendarService(Settings(mock_mode=True), failing_tenants=["tenant_b"])

    with pytest.raises(CalendarFetchError):
        service.client_for(BARE).get_schedule(["x@b.example"], utc(2024, 1, 1), utc(2024, 1, 2))


def test_mock_views_are_deterministic_and_sized():
    client = MockCalendarClient()
    start, end = utc(2024, 1, 1), utc(2024, 1, 2)

    first = client.get_schedule(["a@x.example", "b@x.example"], start, end)
    second = client.get_schedule(["a@x.example", "b@x.example"], start, end)

    assert [s.availability_view for s in first] == [s.availability_view for s in second]
    assert all(len(s.availability_view) == 48 for s in first)
    assert all(item.status == "busy" for s in first for item in s.schedule_items)


def test_mock_views_keep_nights_free():
    view = generate_availability_view(48, seed=1234)

    assert set(view) <= {"0", "2"}
    assert view[:18] == "0" * 18  # 00:00-09:00
    assert view[36:] == "0" * 12  # 18:00-24:00


def test_mock_emails_can_fail_individually():
    client = MockCalendarClient(failing_emails=["ghost@x.example"])

    schedules = client.get_schedule(["ghost@x.example", "a@x.example"], utc(2024, 1, 1), utc(2024, 1, 1, 2))

    assert schedules[0].error == "Mailbox not found"
    assert schedules[1].error is None


def test_mock_client_keeps_no_per_request_state():
    client = MockCalendarClient("tenant_b")
    before = dict(vars(client))

    for _ in range(50):
        client.get_schedule(["a@b.example"], utc(2024, 1, 1), utc(2024, 1, 2))

    assert vars(client) == before
