"""Calendar events, availability search, attendees and session preparation."""

from rhythm.modules.calendar.models import AvailabilitySlot, CalendarEvent, SessionPrepBundle, WorkingHours
from rhythm.modules.calendar.service import CalendarService

__all__ = ["AvailabilitySlot", "CalendarEvent", "CalendarService", "SessionPrepBundle", "WorkingHours"]
