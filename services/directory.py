"""Read-only person/tenant directory."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytz

from models.entities import Account, Person, Tenant
from services.exceptions import PersonNotFoundError, ValidationError
from services.preferences import default_working_hours, parse_overrides, parse_working_hours

logger = logging.getLogger(__name__)

FLEXIBILITY_LEVELS = ("low", "medium", "high")


def _get_field(data: Dict[str, Any], *keys: str, default: Any = "") -> Any:
    """Return the first non-empty value among several key spellings."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


class Directory:
    """
    Resolved persons and tenants for recommendation requests.

    Records are immutable snapshots; the directory never writes back to the
    store it was loaded from.
    """

    def __init__(self, tenants: List[Tenant], persons: List[Person]):
        self._tenants: Dict[str, Tenant] = {t.id: t for t in tenants}
        self._persons: Dict[str, Person] = {p.id: p for p in persons}

        for person in persons:
            for account in person.accounts:
                if account.tenant_id not in self._tenants:
                    raise ValidationError(
                        f"Account {account.email} references unknown tenant {account.tenant_id}"
                    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Directory":
        """
        Build a directory from raw records.

        Accepts camelCase (displayName, workingHours, tenantId, azureTenantId)
        or snake_case keys.
        """
        tenants = [cls._map_tenant(raw) for raw in data.get("tenants", [])]
        persons = [cls._map_person(raw) for raw in data.get("persons", [])]
        return cls(tenants, persons)

    @classmethod
    def from_json_file(cls, path: str) -> "Directory":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Directory file {path} is not valid JSON: {e}") from e
        directory = cls.from_dict(data)
        logger.info(f"Loaded directory from {path}: {len(directory._persons)} persons, {len(directory._tenants)} tenants")
        return directory

    @staticmethod
    def _map_tenant(raw: Dict[str, Any]) -> Tenant:
        tenant_id = str(_get_field(raw, "id", "tenant_id", "tenantId")).strip()
        if not tenant_id:
            raise ValidationError("Tenant record without id")
        return Tenant(
            id=tenant_id,
            name=str(_get_field(raw, "name", default=tenant_id)),
            domain=str(_get_field(raw, "domain")),
            azure_tenant_id=str(_get_field(raw, "azure_tenant_id", "azureTenantId")),
            azure_app_id=str(_get_field(raw, "azure_app_id", "azureAppId")),
            azure_app_secret=str(_get_field(raw, "azure_app_secret", "azureAppSecret")),
        )

    @staticmethod
    def _map_person(raw: Dict[str, Any]) -> Person:
        person_id = str(_get_field(raw, "id", "person_id", "personId")).strip()
        if not person_id:
            raise ValidationError("Person record without id")

        timezone = str(_get_field(raw, "timezone", "time_zone", default="UTC"))
        try:
            pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            raise ValidationError(f"Unknown time zone {timezone!r} for person {person_id}")

        flexibility = str(_get_field(raw, "flexibility", default="medium")).lower()
        if flexibility not in FLEXIBILITY_LEVELS:
            raise ValidationError(f"Invalid flexibility {flexibility!r} for person {person_id}")

        raw_hours = raw.get("working_hours", raw.get("workingHours"))
        working_hours = default_working_hours() if raw_hours is None else parse_working_hours(raw_hours)

        accounts = []
        for account in _get_field(raw, "accounts", default=[]):
            email = str(_get_field(account, "email")).strip()
            tenant_id = _get_field(account, "tenant_id", "tenantId")
            if not tenant_id and isinstance(account.get("tenant"), dict):
                tenant_id = account["tenant"].get("id", "")
            if not email or not tenant_id:
                raise ValidationError(f"Account of person {person_id} needs an email and a tenant")
            accounts.append(Account(
                email=email,
                tenant_id=str(tenant_id),
                person_id=person_id,
                is_primary=bool(_get_field(account, "is_primary", "isPrimary", default=False))
            ))

        return Person(
            id=person_id,
            display_name=str(_get_field(raw, "display_name", "displayName", "name", default=person_id)),
            timezone=timezone,
            flexibility=flexibility,
            working_hours=working_hours,
            overrides=parse_overrides(raw.get("overrides")),
            accounts=accounts
        )

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)

    def get_person(self, person_id: str) -> Optional[Person]:
        return self._persons.get(person_id)

    def list_persons(self) -> List[Person]:
        return list(self._persons.values())

    def list_tenants(self) -> List[Tenant]:
        return list(self._tenants.values())

    def get_persons(self, person_ids: List[str]) -> List[Person]:
        """
        Resolve persons in request order.

        Raises:
            PersonNotFoundError: some ids are unknown
        """
        missing = [pid for pid in person_ids if pid not in self._persons]
        if missing:
            raise PersonNotFoundError(missing)
        return [self._persons[pid] for pid in person_ids]
