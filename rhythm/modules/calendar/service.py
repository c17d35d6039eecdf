"""Calendar service: single entry point for transports over the scheduling engine.

Wires the event store, availability engine, attendee manager and session
prep aggregator around one contact directory. Every call is scoped to the
acting owner.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rhythm.config import Settings, get_settings
from rhythm.logging_config import get_logger
from rhythm.modules.calendar.attendees import AttendeeManager
from rhythm.modules.calendar.availability import AvailabilityEngine
from rhythm.modules.calendar.models import (
    AvailabilitySlot,
    CalendarEvent,
    CreateCalendarEventData,
    EventSearchParams,
    SessionPrepBundle,
    UpdateCalendarEventData,
    WorkingHours,
)
from rhythm.modules.calendar.session_prep import SessionPrepAggregator
from rhythm.modules.calendar.store import EventStore
from rhythm.modules.crm.service import CrmDirectory

logger = get_logger(__name__)


class CalendarService:
    """Unified calendar management for a practitioner's sessions."""

    def __init__(
        self,
        directory: Optional[Any] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._directory = directory or CrmDirectory(session_factory)
        self._store = EventStore(session_factory, self._settings)
        self._availability = AvailabilityEngine(self._store, self._settings)
        self._attendees = AttendeeManager(self._store, self._directory)
        self._prep = SessionPrepAggregator(self._store, self._directory, self._settings)

    @property
    def store(self) -> EventStore:
        return self._store

    # ── Events ───────────────────────────────────────────────────────

    async def create_event(
        self, owner_id: str, data: Union[CreateCalendarEventData, Mapping[str, Any]],
    ) -> CalendarEvent:
        return await self._store.create_event(owner_id, data)

    async def update_event(
        self,
        owner_id: str,
        event_id: str,
        updates: Union[UpdateCalendarEventData, Mapping[str, Any]],
    ) -> Optional[CalendarEvent]:
        return await self._store.update_event(owner_id, event_id, updates)

    async def delete_event(self, owner_id: str, event_id: str, reason: Optional[str] = None) -> bool:
        """Delete an event; ``reason`` is only recorded in the log."""
        removed = await self._store.delete_event(owner_id, event_id)
        if removed and reason:
            logger.info("event_cancelled", event_id=event_id, reason=reason)
        return removed

    async def get_event_by_id(self, owner_id: str, event_id: str) -> Optional[CalendarEvent]:
        return await self._store.get_event_by_id(owner_id, event_id)

    async def require_event(self, owner_id: str, event_id: str) -> CalendarEvent:
        return await self._store.require_event(owner_id, event_id)

    async def search_events(
        self,
        owner_id: str,
        params: Union[EventSearchParams, Mapping[str, Any], None] = None,
    ) -> list[CalendarEvent]:
        return await self._store.search_events(owner_id, params)

    async def get_events_in_range(
        self, owner_id: str, start: dt.datetime, end: dt.datetime,
    ) -> list[CalendarEvent]:
        return await self._store.get_events_in_range(owner_id, start, end)

    async def get_upcoming_sessions(
        self,
        owner_id: str,
        days_ahead: int = 7,
        contact_id: Optional[str] = None,
        event_type: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> list[CalendarEvent]:
        return await self._store.get_upcoming_sessions(owner_id, days_ahead, contact_id, event_type, now)

    # ── Scheduling ───────────────────────────────────────────────────

    async def find_availability(
        self,
        owner_id: str,
        range_start: dt.datetime,
        range_end: dt.datetime,
        duration_minutes: int,
        working_hours: Union[WorkingHours, Mapping[str, Any], None] = None,
    ) -> list[AvailabilitySlot]:
        return await self._availability.find_availability(
            owner_id, range_start, range_end, duration_minutes, working_hours,
        )

    async def add_event_attendee(self, owner_id: str, event_id: str, contact_id: str) -> Optional[CalendarEvent]:
        return await self._attendees.add_attendee(owner_id, event_id, contact_id)

    async def remove_event_attendee(
        self, owner_id: str, event_id: str, contact_id: str,
    ) -> Optional[CalendarEvent]:
        return await self._attendees.remove_attendee(owner_id, event_id, contact_id)

    async def get_session_prep(self, owner_id: str, event_id: str) -> Optional[SessionPrepBundle]:
        return await self._prep.get_session_prep(owner_id, event_id)
