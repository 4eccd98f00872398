"""Synthetic directory for the demo app and mock mode."""

from datetime import time

from models.entities import Account, Person, Tenant, WorkingWindow
from services.directory import Directory
from services.preferences import default_working_hours


def _generate_tenants() -> list[Tenant]:
    """Two organizations without credentials, so they are served by the mock backend."""
    return [
        Tenant(id="tenant_contoso", name="Contoso", domain="contoso.com"),
        Tenant(id="tenant_fabrikam", name="Fabrikam", domain="fabrikam.com"),
    ]


def _generate_persons() -> list[Person]:
    """Generate synthetic persons across time zones and tenants."""
    split_day = {
        day: [WorkingWindow(time(8, 0), time(12, 0)), WorkingWindow(time(13, 0), time(17, 0))]
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    }
    return [
        Person(
            id="person_001",
            display_name="Rajesh Kumar",
            timezone="Asia/Kolkata",
            flexibility="high",
            working_hours=default_working_hours(),
            accounts=[
                Account("rajesh.kumar@contoso.com", "tenant_contoso", "person_001", is_primary=True),
                Account("rajesh.kumar@fabrikam.com", "tenant_fabrikam", "person_001"),
            ]
        ),
        Person(
            id="person_002",
            display_name="Sarah Johnson",
            timezone="America/New_York",
            flexibility="medium",
            working_hours=default_working_hours(),
            accounts=[
                Account("sarah.johnson@contoso.com", "tenant_contoso", "person_002", is_primary=True),
            ]
        ),
        Person(
            id="person_003",
            display_name="Emma Wilson",
            timezone="Europe/London",
            flexibility="low",
            working_hours=split_day,
            accounts=[
                Account("emma.wilson@fabrikam.com", "tenant_fabrikam", "person_003", is_primary=True),
            ]
        ),
        Person(
            id="person_004",
            display_name="David Thompson",
            timezone="America/Los_Angeles",
            flexibility="medium",
            working_hours=default_working_hours(),
            accounts=[
                Account("david.thompson@fabrikam.com", "tenant_fabrikam", "person_004", is_primary=True),
                Account("david.thompson@contoso.com", "tenant_contoso", "person_004"),
            ]
        ),
    ]


def build_sample_directory() -> Directory:
    """Directory populated with synthetic tenants and persons."""
    return Directory(_generate_tenants(), _generate_persons())
