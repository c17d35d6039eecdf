"""Free-slot search over an owner's calendar."""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from rhythm.config import Settings, get_settings
from rhythm.errors import ValidationError
from rhythm.logging_config import get_logger, owner_context
from rhythm.modules.calendar.models import AvailabilitySlot, BusySlot, WorkingHours, to_naive_utc
from rhythm.modules.calendar.store import EventStore, coerce_input

logger = get_logger(__name__)


def iter_free_slots(
    range_start: dt.datetime,
    range_end: dt.datetime,
    duration: dt.timedelta,
    busy: Iterable[BusySlot],
    working_hours: WorkingHours,
    grid: dt.timedelta,
) -> Iterator[AvailabilitySlot]:
    """Yield grid-aligned candidates of ``duration`` that overlap no busy slot.

    Each calendar day touching ``[range_start, range_end)`` is scanned from
    the later of ``range_start`` and the day's working start, in ``grid``
    steps, until a candidate would run past the working end (or the range
    end, whichever comes first).
    """
    busy = list(busy)
    minutes = int(duration.total_seconds() // 60)
    day = range_start.date()
    last_day = (range_end - dt.timedelta(microseconds=1)).date()

    while day <= last_day:
        window_start, window_end = working_hours.window(day)
        cursor = max(range_start, window_start)
        day_end = min(window_end, range_end)

        while cursor + duration <= day_end:
            candidate_end = cursor + duration
            if not any(slot.overlaps(cursor, candidate_end) for slot in busy):
                yield AvailabilitySlot(
                    start_time=cursor,
                    end_time=candidate_end,
                    duration_minutes=minutes,
                )
            cursor += grid

        day += dt.timedelta(days=1)


class AvailabilityEngine:
    """Computes free time windows from a single snapshot of busy intervals.

    The snapshot is not locked: an event committed after the fetch can make
    a reported slot stale.
    """

    def __init__(self, store: EventStore, settings: Optional[Settings] = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    def default_working_hours(self) -> WorkingHours:
        return WorkingHours(
            start_hour=self._settings.working_hours_start,
            end_hour=self._settings.working_hours_end,
        )

    async def find_availability(
        self,
        owner_id: str,
        range_start: dt.datetime,
        range_end: dt.datetime,
        duration_minutes: int,
        working_hours: Union[WorkingHours, Mapping[str, Any], None] = None,
    ) -> list[AvailabilitySlot]:
        """Find free slots of ``duration_minutes`` inside working hours.

        Raises ``ValidationError`` for a non-positive or oversized duration;
        an empty or inverted range simply yields no slots.
        """
        if duration_minutes <= 0:
            raise ValidationError("duration_minutes must be positive")
        max_minutes = self._settings.availability_max_duration_minutes
        if duration_minutes > max_minutes:
            raise ValidationError(f"duration_minutes cannot exceed {max_minutes}")

        hours = (
            coerce_input(WorkingHours, working_hours)
            if working_hours is not None
            else self.default_working_hours()
        )
        range_start = to_naive_utc(range_start)
        range_end = to_naive_utc(range_end)
        if range_start >= range_end:
            return []

        with owner_context(owner_id):
            events = await self._store.get_events_in_range(owner_id, range_start, range_end)
            slots = list(iter_free_slots(
                range_start,
                range_end,
                dt.timedelta(minutes=duration_minutes),
                (event.busy_slot for event in events),
                hours,
                dt.timedelta(minutes=self._settings.availability_grid_minutes),
            ))
            logger.info(
                "availability_computed",
                busy=len(events),
                slots=len(slots),
                duration_minutes=duration_minutes,
            )
        return slots
