"""Shared constants and payload builders for the test suite."""

from __future__ import annotations

import datetime as dt

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"
CONTACT_ID = "contact-1"
CONTACT_EMAIL = "jane@example.com"

# A Monday
DAY = dt.date(2025, 1, 6)


def at(hour: int, minute: int = 0, day: dt.date = DAY) -> dt.datetime:
    """Naive UTC datetime on the test day."""
    return dt.datetime.combine(day, dt.time(hour, minute))


def event_data(start: dt.datetime, end: dt.datetime, **extra) -> dict:
    """Minimal create payload for a session with the default contact."""
    data = {"contact_id": CONTACT_ID, "title": "Session", "start_time": start, "end_time": end}
    data.update(extra)
    return data
