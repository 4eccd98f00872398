"""Recommendation assembly: per-tenant fetch, scoring and response shaping."""

import logging
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

import pytz

from models.entities import (
    Person,
    RecommendationResponse,
    ScheduleInfo,
    TenantFetchError,
    TimeSlot,
)
from services.availability import AvailabilityAggregator
from services.calendar_service import CalendarService
from services.directory import Directory
from services.exceptions import CalendarFetchError, ValidationError
from services.freebusy import build_timeline, to_utc
from services.slot_scorer import SlotScorer
from settings import Settings

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 5


@dataclass
class TenantFetchResult:
    """Outcome of one tenant's fetch; each tenant gets its own instance."""
    tenant_id: str
    emails: list[str]
    schedules: list[ScheduleInfo] = field(default_factory=list)
    error: Optional[str] = None


class RecommendationService:
    """Recommends meeting slots for people whose calendars span several tenants."""

    def __init__(
        self,
        directory: Directory,
        calendar_service: Optional[CalendarService] = None,
        settings: Optional[Settings] = None,
        scorer: Optional[SlotScorer] = None
    ):
        self.directory = directory
        self.settings = settings or Settings()
        self.calendar_service = calendar_service or CalendarService(self.settings)
        self.scorer = scorer or SlotScorer()

    def recommend_for_ids(
        self,
        person_ids: list[str],
        start: Union[str, datetime],
        end: Union[str, datetime],
        duration_minutes: int = 30,
        timezone: str = "UTC"
    ) -> RecommendationResponse:
        """Resolve person ids through the directory, then recommend."""
        if not person_ids or not isinstance(person_ids, (list, tuple)):
            raise ValidationError("personIds array is required")
        persons = self.directory.get_persons(list(person_ids))
        return self.recommend(persons, start, end, duration_minutes, timezone)

    def recommend(
        self,
        persons: list[Person],
        start: Union[str, datetime],
        end: Union[str, datetime],
        duration_minutes: int = 30,
        timezone: str = "UTC"
    ) -> RecommendationResponse:
        """
        Recommend meeting times for a group.

        Args:
            persons: Participants with resolved accounts
            start: Range start (ISO string or datetime; naive means UTC)
            end: Range end
            duration_minutes: Meeting length
            timezone: Time zone passed to calendar backends

        Returns:
            Available slots, up to 5 conflicted alternatives, and any
            data-source errors

        Raises:
            ValidationError: the request is malformed; nothing is fetched
        """
        range_start, range_end = self._validate(persons, start, end, duration_minutes, timezone)

        tenant_emails = self._group_by_tenant(persons)
        results = self._fetch_all(tenant_emails, range_start, range_end, timezone)
        schedules, errors = self._merge_results(results)

        aggregator = AvailabilityAggregator(
            schedules, range_start, self.settings.availability_interval_minutes
        )
        ranked = self.scorer.score_slots(persons, aggregator, range_start, range_end, duration_minutes)
        available, alternatives = self._partition(ranked)

        logger.info(
            f"Recommended {len(available)} slots ({len(alternatives)} alternatives) for "
            f"{len(persons)} persons across {len(tenant_emails)} tenants, {len(errors)} errors"
        )

        return RecommendationResponse(
            recommendations=available,
            alternatives_with_conflicts=alternatives,
            errors=errors,
            persons_count=len(persons),
            tenants_count=len(tenant_emails),
            range_start=range_start,
            range_end=range_end,
            duration_minutes=duration_minutes
        )

    def fetch_availability(
        self,
        person_ids: list[str],
        start: Union[str, datetime],
        end: Union[str, datetime],
        timezone: str = "UTC"
    ) -> dict:
        """
        Raw free/busy view per account, without scoring.

        Returns:
            {"schedules": [...], "errors": [...]} where each schedule carries
            email, personId, personName, availabilityView, scheduleItems and
            an optional error
        """
        if not person_ids:
            raise ValidationError("personIds array is required")
        persons = self.directory.get_persons(list(person_ids))
        self._check_unique(persons)
        range_start, range_end = self._parse_range(start, end)
        self._check_timezone(timezone)

        owners = {account.email.lower(): person for person in persons for account in person.accounts}
        tenant_emails = self._group_by_tenant(persons)
        results = self._fetch_all(tenant_emails, range_start, range_end, timezone)

        schedules = []
        errors = []
        for result in results:
            if result.error:
                errors.append(TenantFetchError(result.tenant_id, result.error).to_dict())
                continue
            for schedule in result.schedules:
                owner = owners.get(schedule.email.lower())
                entry = {
                    "email": schedule.email,
                    "personId": owner.id if owner else "",
                    "personName": owner.display_name if owner else "",
                    "availabilityView": schedule.availability_view,
                    "scheduleItems": [
                        item.to_dict() for item in build_timeline(
                            schedule, range_start, self.settings.availability_interval_minutes
                        )
                    ] if not schedule.error else [],
                }
                if schedule.error:
                    entry["error"] = schedule.error
                schedules.append(entry)

        response = {"schedules": schedules}
        if errors:
            response["errors"] = errors
        return response

    def _validate(self, persons, start, end, duration_minutes, timezone) -> tuple[datetime, datetime]:
        if not persons:
            raise ValidationError("At least one person is required")
        self._check_unique(persons)
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ValidationError(f"durationMinutes must be a positive integer, got {duration_minutes!r}")
        self._check_timezone(timezone)
        return self._parse_range(start, end)

    @staticmethod
    def _check_unique(persons: list[Person]) -> None:
        seen = set()
        duplicates = []
        for person in persons:
            if person.id in seen and person.id not in duplicates:
                duplicates.append(person.id)
            seen.add(person.id)
        if duplicates:
            raise ValidationError(f"Duplicate persons: {', '.join(duplicates)}")

    @staticmethod
    def _check_timezone(timezone: str) -> None:
        try:
            pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            raise ValidationError(f"Unknown time zone: {timezone!r}")

    @staticmethod
    def _parse_range(start, end) -> tuple[datetime, datetime]:
        if not start or not end:
            raise ValidationError("startTime and endTime are required")
        try:
            range_start = to_utc(start)
            range_end = to_utc(end)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid time range: {e}") from e
        if range_end <= range_start:
            raise ValidationError("endTime must be after startTime")
        return range_start, range_end

    @staticmethod
    def _group_by_tenant(persons: list[Person]) -> dict[str, list[str]]:
        """tenant id -> emails, in first-seen order, each email once."""
        tenant_emails: dict[str, list[str]] = {}
        for person in persons:
            for account in person.accounts:
                emails = tenant_emails.setdefault(account.tenant_id, [])
                if account.email not in emails:
                    emails.append(account.email)
        return tenant_emails

    def _fetch_tenant(
        self,
        tenant_id: str,
        emails: list[str],
        start: datetime,
        end: datetime,
        timezone: str
    ) -> TenantFetchResult:
        """Fetch one tenant. Failures are captured in the result, never raised."""
        result = TenantFetchResult(tenant_id=tenant_id, emails=emails)
        tenant = self.directory.get_tenant(tenant_id)
        if tenant is None:
            result.error = f"Unknown tenant {tenant_id}"
            return result

        try:
            client = self.calendar_service.client_for(tenant)
            result.schedules = client.get_schedule(emails, start, end, timezone)
        except CalendarFetchError as e:
            result.error = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching schedules for tenant {tenant_id}")
            result.error = f"Failed to fetch schedule: {e}"
        return result

    def _fetch_all(
        self,
        tenant_emails: dict[str, list[str]],
        start: datetime,
        end: datetime,
        timezone: str
    ) -> list[TenantFetchResult]:
        """
        Fetch every tenant concurrently.

        Each task returns its own TenantFetchResult; results are collected
        after all tasks finish or the timeout passes. Tasks still running at
        the timeout are cancelled and reported as timed out.
        """
        if not tenant_emails:
            return []

        timeout = self.settings.fetch_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=len(tenant_emails), thread_name_prefix="freebusy")
        try:
            futures = {
                tenant_id: executor.submit(self._fetch_tenant, tenant_id, emails, start, end, timezone)
                for tenant_id, emails in tenant_emails.items()
            }
            wait(futures.values(), timeout=timeout, return_when=ALL_COMPLETED)

            results = []
            for tenant_id, future in futures.items():
                if future.done():
                    results.append(future.result())
                else:
                    future.cancel()
                    results.append(TenantFetchResult(
                        tenant_id=tenant_id,
                        emails=tenant_emails[tenant_id],
                        error=f"Timed out after {timeout:g}s fetching schedule"
                    ))
            return results
        finally:
            # Abandon stragglers; their late results are never read
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _merge_results(results: list[TenantFetchResult]) -> tuple[dict[str, ScheduleInfo], list[TenantFetchError]]:
        """Merge per-tenant results into one email lookup plus an error list."""
        schedules: dict[str, ScheduleInfo] = {}
        errors: list[TenantFetchError] = []

        for result in results:
            if result.error:
                logger.warning(f"Schedule fetch failed for tenant {result.tenant_id}: {result.error}")
                errors.append(TenantFetchError(tenant_id=result.tenant_id, error=result.error))
                continue
            for schedule in result.schedules:
                if schedule.error:
                    logger.warning(f"Schedule for {schedule.email} in tenant {result.tenant_id} unusable: {schedule.error}")
                    errors.append(TenantFetchError(
                        tenant_id=result.tenant_id,
                        error=schedule.error,
                        email=schedule.email
                    ))
                    continue
                schedules[schedule.email.lower()] = schedule

        return schedules, errors

    @staticmethod
    def _partition(ranked: list[TimeSlot]) -> tuple[list[TimeSlot], list[TimeSlot]]:
        available = [slot for slot in ranked if slot.all_available]
        conflicted = [slot for slot in ranked if not slot.all_available][:MAX_ALTERNATIVES]
        return available, conflicted
