"""Calendar backend selection per tenant."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol

from models.entities import ScheduleInfo, Tenant
from services.calendar_service_mock import MockCalendarClient
from services.graph_client import GraphCalendarClient
from settings import Settings

logger = logging.getLogger(__name__)


class CalendarClient(Protocol):
    """Anything that can fetch free/busy schedules for a list of emails."""

    def get_schedule(
        self,
        emails: list[str],
        start: datetime,
        end: datetime,
        timezone: str = "UTC"
    ) -> list[ScheduleInfo]:
        ...


class CalendarService:
    """Hands out the calendar backend to use for each tenant."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        failing_tenants: Optional[Iterable[str]] = None
    ):
        """
        Args:
            settings: Runtime settings (defaults to Settings())
            failing_tenants: Tenants the mock backend should fail for
        """
        self.settings = settings or Settings()
        self.failing_tenants = set(failing_tenants or [])
        self._clients: dict[str, CalendarClient] = {}

    def client_for(self, tenant: Tenant) -> CalendarClient:
        """
        Get the backend for a tenant.

        Mock mode, or a tenant without Azure credentials, gets the synthetic
        backend; everything else talks to Microsoft Graph.
        """
        if tenant.id in self._clients:
            return self._clients[tenant.id]

        if self.settings.mock_mode or not tenant.has_credentials:
            if not self.settings.mock_mode:
                logger.info(f"Tenant {tenant.id} has no credentials, using mock calendar data")
            client: CalendarClient = MockCalendarClient(
                tenant_id=tenant.id,
                interval_minutes=self.settings.availability_interval_minutes,
                failing_tenants=self.failing_tenants
            )
        else:
            client = GraphCalendarClient(
                tenant,
                base_url=self.settings.graph_base_url,
                authority_url=self.settings.graph_authority_url,
                timeout=self.settings.fetch_timeout_seconds,
                interval_minutes=self.settings.availability_interval_minutes
            )

        self._clients[tenant.id] = client
        return client
