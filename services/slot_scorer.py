"""Core slot scoring algorithm."""

from datetime import datetime, timedelta

from models.entities import Person, SlotDetail, TimeSlot
from services.availability import AvailabilityAggregator
from services.preferences import evaluate, status_score

BASE_SCORE = 100
CONFLICT_PENALTY = 500
SLOT_STEP_MINUTES = 30
MAX_SLOTS = 20


def format_full_local_time(local_dt: datetime) -> str:
    """Format like "Mon, Jan 6, 09:00" for an already-localized datetime."""
    return f"{local_dt.strftime('%a, %b')} {local_dt.day}, {local_dt.strftime('%H:%M')}"


class SlotScorer:
    """Enumerates fixed-size slots over a range and ranks them."""

    def __init__(
        self,
        step_minutes: int = SLOT_STEP_MINUTES,
        max_slots: int = MAX_SLOTS
    ):
        self.step_minutes = step_minutes
        self.max_slots = max_slots

    def score_slots(
        self,
        persons: list[Person],
        aggregator: AvailabilityAggregator,
        range_start: datetime,
        range_end: datetime,
        duration_minutes: int = 30
    ) -> list[TimeSlot]:
        """
        Score every candidate slot in [range_start, range_end).

        Slots start at range_start and advance by step_minutes regardless of
        duration; a slot is only generated if it ends within the range.

        Args:
            persons: Participants with preferences and accounts
            aggregator: Free/busy lookup built from fetched schedules
            range_start: Start of the search range (aware)
            range_end: End of the search range (aware)
            duration_minutes: Meeting length

        Returns:
            Up to max_slots slots sorted by score (best first), ties in
            chronological order
        """
        if duration_minutes <= 0 or range_end <= range_start:
            return []

        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=self.step_minutes)

        slots = []
        current = range_start
        while current + duration <= range_end:
            slots.append(self._score_slot(persons, aggregator, current, current + duration))
            current += step

        # sorted() is stable, so equal scores keep chronological order
        ranked = sorted(slots, key=lambda slot: -slot.score)
        return ranked[:self.max_slots]

    def _score_slot(
        self,
        persons: list[Person],
        aggregator: AvailabilityAggregator,
        slot_start: datetime,
        slot_end: datetime
    ) -> TimeSlot:
        """Evaluate every participant against one slot."""
        score = BASE_SCORE
        all_available = True
        details = []

        for person in persons:
            local_dt, status = evaluate(person, slot_start)
            availability = aggregator.check(person, slot_start, slot_end)

            if availability.is_busy:
                all_available = False
            score += status_score(status)

            details.append(SlotDetail(
                person_id=person.id,
                display_name=person.display_name,
                local_time=format_full_local_time(local_dt),
                status=status,
                is_busy=availability.is_busy,
                busy_until=availability.busy_until,
                next_busy=availability.next_busy,
                schedule_context=availability.schedule_context
            ))

        if not all_available:
            score -= CONFLICT_PENALTY

        return TimeSlot(
            start=slot_start,
            end=slot_end,
            score=score,
            all_available=all_available,
            details=details
        )
