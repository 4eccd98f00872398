"""Exceptions raised by the scheduling services."""


class SchedulingError(Exception):
    """Base class for recommender errors."""

    pass


class ValidationError(SchedulingError):
    """Raised when a request or directory record is malformed."""

    pass


class PersonNotFoundError(ValidationError):
    """Raised when the directory has no record for some requested persons."""

    def __init__(self, missing_ids: list[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(f"Persons not found: {', '.join(self.missing_ids)}")


class CalendarFetchError(SchedulingError):
    """Raised when one tenant's free/busy data cannot be fetched."""

    pass


class CalendarAuthError(CalendarFetchError):
    """Raised when a tenant's credentials are rejected."""

    pass
