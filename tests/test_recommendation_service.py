"""Tests for recommendation assembly across tenants."""

import threading

import pytest

from conftest import FakeCalendarClient, FakeCalendarService, make_person, utc
from services.exceptions import PersonNotFoundError, ValidationError
from services.recommendation_service import RecommendationService
from settings import Settings

START = utc(2024, 1, 1, 9)
END = utc(2024, 1, 1, 12)


@pytest.fixture
def alice():
    return make_person("alice", accounts=[("alice@a.example", "tenant_a"), ("alice@b.example", "tenant_b")])


@pytest.fixture
def bob():
    return make_person("bob", accounts=[("bob@b.example", "tenant_b")])


def build_service(directory, clients, **settings):
    return RecommendationService(directory, FakeCalendarService(clients), Settings(**settings))


def test_fetches_each_tenant_once_with_all_its_emails(make_directory, alice, bob):
    client_a = FakeCalendarClient()
    client_b = FakeCalendarClient()
    service = build_service(make_directory(alice, bob), {"tenant_a": client_a, "tenant_b": client_b})

    response = service.recommend([alice, bob], START, END, 30)

    assert client_a.calls == [["alice@a.example"]]
    assert client_b.calls == [["alice@b.example", "bob@b.example"]]
    assert response.tenants_count == 2
    assert response.persons_count == 2


def test_failed_tenant_is_reported_and_others_still_scored(make_directory, alice, bob):
    client_a = FakeCalendarClient(error="Failed to fetch schedule: HTTP 503")
    client_b = FakeCalendarClient(views={"bob@b.example": "222222"})
    service = build_service(make_directory(alice, bob), {"tenant_a": client_a, "tenant_b": client_b})

    response = service.recommend([alice, bob], START, END, 30)

    assert len(response.errors) == 1
    assert response.errors[0].tenant_id == "tenant_a"
    assert "503" in response.errors[0].error
    # Bob is busy all morning according to the tenant that did answer
    assert response.recommendations == []
    assert len(response.alternatives_with_conflicts) == 5
    assert all(not slot.all_available for slot in response.alternatives_with_conflicts)


def test_person_covered_only_by_failed_tenant_is_treated_as_free(make_directory, bob):
    client_b = FakeCalendarClient(error="boom")
    service = build_service(make_directory(bob), {"tenant_b": client_b})

    response = service.recommend([bob], START, END, 30)

    assert len(response.recommendations) == 6
    assert response.alternatives_with_conflicts == []
    assert [e.tenant_id for e in response.errors] == ["tenant_b"]


def test_per_email_error_is_surfaced(make_directory, alice, bob):
    client_a = FakeCalendarClient()
    client_b = FakeCalendarClient(email_errors={"bob@b.example": "Mailbox not found"})
    service = build_service(make_directory(alice, bob), {"tenant_a": client_a, "tenant_b": client_b})

    response = service.recommend([alice, bob], START, END, 30)

    assert len(response.errors) == 1
    assert response.errors[0].email == "bob@b.example"
    assert response.errors[0].tenant_id == "tenant_b"


def test_recommendations_and_alternatives_partition_ranked_slots(make_directory, alice, bob):
    client_a = FakeCalendarClient(views={"alice@a.example": "020202"})
    client_b = FakeCalendarClient()
    service = build_service(make_directory(alice, bob), {"tenant_a": client_a, "tenant_b": client_b})

    response = service.recommend([alice, bob], START, END, 30)

    assert all(slot.all_available for slot in response.recommendations)
    assert all(not slot.all_available for slot in response.alternatives_with_conflicts)
    assert len(response.recommendations) == 3
    assert len(response.alternatives_with_conflicts) == 3
    scores = [slot.score for slot in response.recommendations]
    assert scores == sorted(scores, reverse=True)


def test_response_dict_shape(make_directory, bob):
    service = build_service(make_directory(bob), {"tenant_b": FakeCalendarClient()})

    result = service.recommend([bob], "2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z", 30).to_dict()

    assert set(result) == {"recommendations", "alternativesWithConflicts", "meta"}
    assert result["meta"] == {
        "personsCount": 1,
        "tenantsCount": 1,
        "timeRange": {"start": "2024-01-01T09:00:00.000Z", "end": "2024-01-01T10:00:00.000Z"},
        "durationMinutes": 30,
    }
    first = result["recommendations"][0]
    assert first["start"] == "2024-01-01T09:00:00.000Z"
    assert first["details"][0]["personId"] == "bob"


def test_errors_key_present_when_errors(make_directory, bob):
    service = build_service(make_directory(bob), {"tenant_b": FakeCalendarClient(error="down")})

    result = service.recommend([bob], START, END, 30).to_dict()

    assert result["errors"] == [{"tenantId": "tenant_b", "error": "down"}]


def test_identical_inputs_give_identical_output(make_directory, alice, bob):
    clients = {
        "tenant_a": FakeCalendarClient(views={"alice@a.example": "002200"}),
        "tenant_b": FakeCalendarClient(views={"bob@b.example": "200002"}),
    }
    service = build_service(make_directory(alice, bob), clients)

    first = service.recommend([alice, bob], START, END, 60).to_dict()
    second = service.recommend([alice, bob], START, END, 60).to_dict()

    assert first == second


@pytest.mark.parametrize("kwargs", [
    {"start": START, "end": START, "duration_minutes": 30},
    {"start": END, "end": START, "duration_minutes": 30},
    {"start": START, "end": END, "duration_minutes": 0},
    {"start": START, "end": END, "duration_minutes": -15},
    {"start": "not a date", "end": END, "duration_minutes": 30},
    {"start": START, "end": END, "duration_minutes": 30, "timezone": "Mars/Olympus"},
])
def test_invalid_requests_fail_before_fetching(make_directory, bob, kwargs):
    client = FakeCalendarClient()
    service = build_service(make_directory(bob), {"tenant_b": client})

    with pytest.raises(ValidationError):
        service.recommend([bob], **kwargs)
    assert client.calls == []


def test_empty_person_list_is_rejected(make_directory):
    service = build_service(make_directory(), {})

    with pytest.raises(ValidationError):
        service.recommend([], START, END, 30)
    with pytest.raises(ValidationError):
        service.recommend_for_ids([], START, END, 30)


def test_recommend_for_ids_resolves_persons(make_directory, alice, bob):
    clients = {"tenant_a": FakeCalendarClient(), "tenant_b": FakeCalendarClient()}
    service = build_service(make_directory(alice, bob), clients)

    response = service.recommend_for_ids(["bob", "alice"], START, END, 30)

    assert [d.person_id for d in response.recommendations[0].details] == ["bob", "alice"]


def test_recommend_for_ids_reports_missing_persons(make_directory, bob):
    service = build_service(make_directory(bob), {"tenant_b": FakeCalendarClient()})

    with pytest.raises(PersonNotFoundError) as excinfo:
        service.recommend_for_ids(["bob", "ghost"], START, END, 30)
    assert excinfo.value.missing_ids == ["ghost"]


def test_slow_tenant_times_out_without_blocking_others(make_directory, alice, bob):
    release = threading.Event()
    slow = FakeCalendarClient(block=release)
    fast = FakeCalendarClient(views={"bob@b.example": "000000"})
    service = build_service(
        make_directory(alice, bob), {"tenant_a": slow, "tenant_b": fast}, fetch_timeout_seconds=0.2
    )

    try:
        response = service.recommend([alice, bob], START, END, 30)
    finally:
        release.set()

    assert [e.tenant_id for e in response.errors] == ["tenant_a"]
    assert "Timed out" in response.errors[0].error
    assert len(response.recommendations) == 6


def test_fetch_availability_lists_accounts(make_directory, alice, bob):
    clients = {
        "tenant_a": FakeCalendarClient(error="down"),
        "tenant_b": FakeCalendarClient(views={"alice@b.example": "02", "bob@b.example": "00"}),
    }
    service = build_service(make_directory(alice, bob), clients)

    result = service.fetch_availability(["alice", "bob"], START, utc(2024, 1, 1, 10))

    assert result["errors"] == [{"tenantId": "tenant_a", "error": "down"}]
    by_email = {entry["email"]: entry for entry in result["schedules"]}
    assert by_email["alice@b.example"]["personId"] == "alice"
    assert by_email["alice@b.example"]["personName"] == "ALICE"
    assert [item["status"] for item in by_email["alice@b.example"]["scheduleItems"]] == ["free", "busy"]
    assert by_email["bob@b.example"]["availabilityView"] == "00"


def test_duplicate_persons_are_rejected_before_fetching(make_directory, alice, bob):
    client_a = FakeCalendarClient()
    client_b = FakeCalendarClient()
    service = build_service(make_directory(alice, bob), {"tenant_a": client_a, "tenant_b": client_b})

    with pytest.raises(ValidationError, match="Duplicate persons: bob"):
        service.recommend_for_ids(["bob", "alice", "bob"], START, END, 30)
    with pytest.raises(ValidationError):
        service.recommend([bob, bob], START, END, 30)
    with pytest.raises(ValidationError):
        service.fetch_availability(["alice", "alice"], START, END)
    assert client_a.calls == []
    assert client_b.calls == []
