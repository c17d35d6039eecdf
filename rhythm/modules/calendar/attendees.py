"""Attendee bookkeeping inside an event's metadata."""

from __future__ import annotations

from typing import Optional

from rhythm.logging_config import get_logger
from rhythm.modules.calendar.collaborators import ContactResolver
from rhythm.modules.calendar.models import CalendarEvent
from rhythm.modules.calendar.store import EventStore

logger = get_logger(__name__)


class AttendeeManager:
    """Adds and removes contact addresses on an event's attendee list."""

    def __init__(self, store: EventStore, contacts: ContactResolver) -> None:
        self._store = store
        self._contacts = contacts

    async def _resolve(
        self, owner_id: str, event_id: str, contact_id: str,
    ) -> tuple[Optional[CalendarEvent], Optional[str]]:
        event = await self._store.get_event_by_id(owner_id, event_id)
        if event is None:
            return None, None
        address = await self._contacts.resolve_contact_address(owner_id, contact_id)
        if address is None:
            logger.warning("attendee_contact_unresolved", event_id=event_id, contact_id=contact_id)
        return event, address

    async def add_attendee(self, owner_id: str, event_id: str, contact_id: str) -> Optional[CalendarEvent]:
        """Append the contact's address; adding an existing attendee is a no-op."""
        event, address = await self._resolve(owner_id, event_id, contact_id)
        if event is None or address is None:
            return None

        attendees = event.attendees
        if address in attendees:
            return event

        attendees.append(address)
        updated = await self._store.set_attendees(owner_id, event_id, attendees)
        logger.info("attendee_added", event_id=event_id, contact_id=contact_id)
        return updated

    async def remove_attendee(self, owner_id: str, event_id: str, contact_id: str) -> Optional[CalendarEvent]:
        """Drop the contact's address; an emptied list removes the key entirely."""
        event, address = await self._resolve(owner_id, event_id, contact_id)
        if event is None or address is None:
            return None

        remaining = [a for a in event.attendees if a != address]
        if len(remaining) == len(event.attendees):
            return event

        updated = await self._store.set_attendees(owner_id, event_id, remaining)
        logger.info("attendee_removed", event_id=event_id, contact_id=contact_id, remaining=len(remaining))
        return updated
