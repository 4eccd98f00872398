"""Microsoft Graph free/busy client for one tenant."""

import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pytz

from models.entities import FreeBusyInterval, ScheduleInfo, Tenant
from services.exceptions import CalendarAuthError, CalendarFetchError
from services.freebusy import normalize_status, to_utc

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
# Refresh tokens this many seconds before Graph says they expire
TOKEN_EXPIRY_MARGIN = 60


class GraphCalendarClient:
    """Client for the Graph getSchedule API using app-only credentials."""

    def __init__(
        self,
        tenant: Tenant,
        base_url: str = "https://graph.microsoft.com/v1.0",
        authority_url: str = "https://login.microsoftonline.com",
        timeout: float = 30.0,
        interval_minutes: int = 30,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize Graph client.

        Args:
            tenant: Tenant whose Azure app credentials are used
            base_url: Graph API base URL
            authority_url: Azure AD authority used for the token request
            timeout: HTTP timeout in seconds
            interval_minutes: availabilityViewInterval requested from Graph
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        if not tenant.has_credentials:
            raise CalendarAuthError(f"Tenant {tenant.id} has no Azure app credentials")

        self.tenant = tenant
        self.base_url = base_url.rstrip("/")
        self.authority_url = authority_url.rstrip("/")
        self.timeout = timeout
        self.interval_minutes = interval_minutes
        self._transport = transport

        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def _get_access_token(self, client: httpx.Client) -> str:
        """Fetch (or reuse) a client-credentials token for the tenant."""
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        token_url = f"{self.authority_url}/{self.tenant.azure_tenant_id}/oauth2/v2.0/token"
        try:
            response = client.post(
                token_url,
                data={
                    "client_id": self.tenant.azure_app_id,
                    "client_secret": self.tenant.azure_app_secret,
                    "scope": GRAPH_SCOPE,
                    "grant_type": "client_credentials",
                }
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Token request for tenant {self.tenant.id} rejected: {e.response.status_code}")
            raise CalendarAuthError(
                f"Authentication failed for tenant {self.tenant.id}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Token request for tenant {self.tenant.id} failed: {e}")
            raise CalendarFetchError(f"Token request failed for tenant {self.tenant.id}: {e}") from e
        except json.JSONDecodeError as e:
            raise CalendarAuthError(f"Malformed token response for tenant {self.tenant.id}") from e

        token = payload.get("access_token")
        if not token:
            raise CalendarAuthError(f"No access token returned for tenant {self.tenant.id}")

        self._access_token = token
        self._token_expires_at = time.time() + int(payload.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN
        return token

    def get_schedule(
        self,
        emails: List[str],
        start: datetime,
        end: datetime,
        timezone: str = "UTC"
    ) -> List[ScheduleInfo]:
        """
        Get free/busy schedules for a set of mailboxes in this tenant.

        Args:
            emails: Mailboxes to query
            start: Range start
            end: Range end
            timezone: Time zone the range is expressed in for Graph

        Returns:
            One ScheduleInfo per email Graph reported on

        Raises:
            CalendarFetchError: the whole call failed
        """
        if not emails:
            return []

        tz = pytz.timezone(timezone)
        payload = {
            "schedules": emails,
            "startTime": {"dateTime": start.astimezone(tz).strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": timezone},
            "endTime": {"dateTime": end.astimezone(tz).strftime("%Y-%m-%dT%H:%M:%S"), "timeZone": timezone},
            "availabilityViewInterval": self.interval_minutes,
        }
        # App-only tokens have no /me; any mailbox in the tenant can host the query
        url = f"{self.base_url}/users/{emails[0]}/calendar/getSchedule"

        try:
            with self._client() as client:
                token = self._get_access_token(client)
                response = client.post(
                    url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    }
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Graph getSchedule for tenant {self.tenant.id} returned {e.response.status_code}")
            raise CalendarFetchError(
                f"Failed to fetch schedule: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error fetching schedule for tenant {self.tenant.id}: {e}")
            raise CalendarFetchError(f"Failed to fetch schedule: {e}") from e
        except json.JSONDecodeError as e:
            raise CalendarFetchError("Failed to fetch schedule: malformed response") from e

        items = result.get("value")
        if not isinstance(items, list):
            raise CalendarFetchError("Failed to fetch schedule: response has no 'value' list")

        return [self._map_schedule(item, timezone) for item in items]

    def _map_schedule(self, item: Dict[str, Any], timezone: str) -> ScheduleInfo:
        """Map one Graph scheduleInformation record onto ScheduleInfo."""
        email = item.get("scheduleId", "")
        error = item.get("error")
        error_message = None
        if error:
            error_message = error.get("message") or error.get("responseCode") or "Unknown error"

        intervals = []
        for slot in item.get("scheduleItems") or []:
            try:
                intervals.append(FreeBusyInterval(
                    start=self._parse_graph_time(slot.get("start"), timezone),
                    end=self._parse_graph_time(slot.get("end"), timezone),
                    status=normalize_status(slot.get("status", ""))
                ))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed schedule item for {email}: {e}")

        return ScheduleInfo(
            email=email,
            availability_view=item.get("availabilityView") or "",
            schedule_items=intervals,
            error=error_message
        )

    @staticmethod
    def _parse_graph_time(value: Optional[Dict[str, Any]], timezone: str) -> datetime:
        if not value or not value.get("dateTime"):
            raise ValueError("missing dateTime")
        zone = value.get("timeZone") or timezone
        try:
            pytz.timezone(zone)
        except pytz.UnknownTimeZoneError:
            # Graph may echo Windows zone names; the request zone is the fallback
            zone = timezone
        return to_utc(value["dateTime"], default_tz=zone)
