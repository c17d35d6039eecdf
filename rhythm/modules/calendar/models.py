"""Data models for calendar events, availability and session preparation."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rhythm.modules.crm.models import ContactSnapshot, GoalSummary, NoteSummary, TaskSummary

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

TITLE_MAX = 500
DESCRIPTION_MAX = 5000
LOCATION_MAX = 500
EVENT_TYPE_MAX = 100


def to_naive_utc(value: dt.datetime) -> dt.datetime:
    """Normalize a datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(dt.UTC).replace(tzinfo=None)
    return value


def _check_attendees(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is None:
        return None
    for address in value:
        if not _EMAIL_RE.match(address):
            raise ValueError(f"invalid attendee address: {address!r}")
    return value


class CalendarEventMeta(BaseModel):
    """Typed projection of an interaction's ``source_meta`` for calendar events.

    Serialized with the camelCase keys the ledger has always stored.
    """

    model_config = ConfigDict(populate_by_name=True)

    start_time: dt.datetime = Field(alias="startTime")
    end_time: dt.datetime = Field(alias="endTime")
    location: Optional[str] = None
    event_type: Optional[str] = Field(default=None, alias="eventType")
    attendees: Optional[list[str]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: dt.datetime) -> dt.datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _check_shape(self) -> CalendarEventMeta:
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        # An empty attendee list is stored by omitting the key
        if self.attendees is not None and not self.attendees:
            self.attendees = None
        if self.location == "":
            self.location = None
        if self.event_type == "":
            self.event_type = None
        return self

    def to_json(self) -> dict[str, Any]:
        """Return the JSON-ready dict persisted in ``source_meta``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class BusySlot:
    """Half-open ``[start, end)`` interval occupied by an event."""

    start: dt.datetime
    end: dt.datetime

    def overlaps(self, start: dt.datetime, end: dt.datetime) -> bool:
        """Half-open overlap test; touching boundaries do not overlap."""
        return start < self.end and end > self.start


class CalendarEvent(BaseModel):
    """A calendar event as read from the interaction ledger."""

    id: str
    owner_id: str
    linked_contact_id: str
    title: str
    description: Optional[str] = None
    occurred_at: dt.datetime
    source_id: str
    metadata: CalendarEventMeta
    created_at: Optional[dt.datetime] = None

    @property
    def start_time(self) -> dt.datetime:
        return self.metadata.start_time

    @property
    def end_time(self) -> dt.datetime:
        return self.metadata.end_time

    @property
    def attendees(self) -> list[str]:
        return list(self.metadata.attendees or [])

    @property
    def duration_minutes(self) -> int:
        """Event duration in minutes."""
        return int((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def busy_slot(self) -> BusySlot:
        return BusySlot(start=self.start_time, end=self.end_time)

    def conflicts_with(self, other: CalendarEvent) -> bool:
        """Check whether two events overlap in time."""
        return self.busy_slot.overlaps(other.start_time, other.end_time)


class CreateCalendarEventData(BaseModel):
    """Input for creating a calendar event."""

    contact_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=TITLE_MAX)
    start_time: dt.datetime
    end_time: dt.datetime
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX)
    location: Optional[str] = Field(default=None, max_length=LOCATION_MAX)
    event_type: Optional[str] = Field(default=None, max_length=EVENT_TYPE_MAX)
    attendees: Optional[list[str]] = None
    source_id: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: dt.datetime) -> dt.datetime:
        return to_naive_utc(value)

    @field_validator("attendees")
    @classmethod
    def _validate_attendees(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _check_attendees(value)


class UpdateCalendarEventData(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX)
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    location: Optional[str] = Field(default=None, max_length=LOCATION_MAX)
    event_type: Optional[str] = Field(default=None, max_length=EVENT_TYPE_MAX)
    attendees: Optional[list[str]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(value) if value is not None else None

    @field_validator("attendees")
    @classmethod
    def _validate_attendees(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _check_attendees(value)

    @model_validator(mode="after")
    def _reject_null_required(self) -> UpdateCalendarEventData:
        for name in ("title", "start_time", "end_time"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


class EventSearchParams(BaseModel):
    """Filters for ``search_events``."""

    start_date: Optional[dt.datetime] = None
    end_date: Optional[dt.datetime] = None
    contact_id: Optional[str] = None
    event_type: Optional[str] = None
    query: Optional[str] = None
    limit: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(value) if value is not None else None


class WorkingHours(BaseModel):
    """Daily working window, in whole local hours."""

    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=17, ge=1, le=24)

    @model_validator(mode="after")
    def _check_order(self) -> WorkingHours:
        if self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be before end_hour")
        return self

    def window(self, day: dt.date) -> tuple[dt.datetime, dt.datetime]:
        """Return the ``[start, end)`` working window on ``day``."""
        midnight = dt.datetime.combine(day, dt.time.min)
        return (
            midnight + dt.timedelta(hours=self.start_hour),
            midnight + dt.timedelta(hours=self.end_hour),
        )


class AvailabilitySlot(BaseModel):
    """A free interval of exactly the requested duration."""

    start_time: dt.datetime
    end_time: dt.datetime
    duration_minutes: int


class SessionPrepBundle(BaseModel):
    """Read-only context assembled ahead of a session."""

    event: CalendarEvent
    contact: Optional[ContactSnapshot] = None
    recent_notes: list[NoteSummary] = Field(default_factory=list)
    pending_tasks: list[TaskSummary] = Field(default_factory=list)
    related_goals: list[GoalSummary] = Field(default_factory=list)
