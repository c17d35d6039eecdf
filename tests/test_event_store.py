"""Tests for calendar event persistence (CRUD, range queries, search)."""

from __future__ import annotations

import datetime as dt
import re

import pytest

from helpers import CONTACT_ID, OTHER_OWNER_ID, OWNER_ID, at, event_data
from rhythm.errors import CorruptRecordError, NotFoundError, ValidationError
from rhythm.modules.calendar.models import CreateCalendarEventData, UpdateCalendarEventData
from rhythm.modules.interactions.models import Interaction, InteractionType


class TestCreateEvent:
    """Tests for event creation."""

    @pytest.mark.asyncio
    async def test_create_stores_typed_metadata(self, store) -> None:
        """Created events round-trip start/end, location and type."""
        event = await store.create_event(OWNER_ID, event_data(
            at(10), at(11, 30), location="Studio A", event_type="massage", description="Deep tissue",
        ))
        assert event.owner_id == OWNER_ID
        assert event.linked_contact_id == CONTACT_ID
        assert event.occurred_at == event.metadata.start_time == at(10)
        assert event.metadata.end_time - event.metadata.start_time == dt.timedelta(minutes=90)
        assert event.metadata.location == "Studio A"
        assert event.metadata.event_type == "massage"
        assert event.description == "Deep tissue"

        fetched = await store.get_event_by_id(OWNER_ID, event.id)
        assert fetched == event

    @pytest.mark.asyncio
    async def test_generated_source_id(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        assert re.fullmatch(r"cal-\d+-[a-z0-9]{7}", event.source_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("end_hour", [10, 9])
    async def test_end_not_after_start_rejected(self, store, end_hour) -> None:
        """end <= start always raises ValidationError."""
        with pytest.raises(ValidationError, match="end time must be after start time"):
            await store.create_event(OWNER_ID, event_data(at(10), at(end_hour)))
        assert await store.search_events(OWNER_ID) == []

    @pytest.mark.asyncio
    async def test_aware_datetimes_normalized(self, store) -> None:
        plus_two = dt.timezone(dt.timedelta(hours=2))
        event = await store.create_event(OWNER_ID, CreateCalendarEventData(
            contact_id=CONTACT_ID,
            title="Consult",
            start_time=dt.datetime(2025, 1, 6, 12, 0, tzinfo=plus_two),
            end_time=dt.datetime(2025, 1, 6, 13, 0, tzinfo=plus_two),
        ))
        assert event.start_time == at(10)
        assert event.end_time == at(11)

    @pytest.mark.asyncio
    async def test_field_limits_raise_validation_error(self, store) -> None:
        """Bad payload fields surface as the engine's ValidationError."""
        with pytest.raises(ValidationError):
            await store.create_event(OWNER_ID, event_data(at(10), at(11), title="x" * 501))
        with pytest.raises(ValidationError):
            await store.create_event(OWNER_ID, event_data(at(10), at(11), attendees=["nope"]))

    @pytest.mark.asyncio
    async def test_empty_attendees_not_stored(self, store, session_factory) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11), attendees=[]))
        assert event.metadata.attendees is None

        async with session_factory() as session:
            row = await session.get(Interaction, event.id)
        assert "attendees" not in row.source_meta
        assert row.type == InteractionType.CALENDAR_EVENT
        assert row.source == "calendar"

    @pytest.mark.asyncio
    async def test_source_id_is_idempotent(self, store) -> None:
        """Creating twice with the same source_id returns the first event."""
        first = await store.create_event(OWNER_ID, event_data(at(10), at(11), source_id="gcal-42"))
        second = await store.create_event(OWNER_ID, event_data(at(14), at(15), source_id="gcal-42"))
        assert second.id == first.id
        assert second.start_time == at(10)
        assert len(await store.search_events(OWNER_ID)) == 1

    @pytest.mark.asyncio
    async def test_double_booking_allowed(self, store) -> None:
        await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        await store.create_event(OWNER_ID, event_data(at(10, 30), at(11, 30)))
        assert len(await store.search_events(OWNER_ID)) == 2


class TestUpdateEvent:
    """Tests for partial-merge updates."""

    @pytest.mark.asyncio
    async def test_unspecified_fields_preserved(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(
            at(10), at(11), location="Studio A", event_type="yoga", attendees=["a@test.com"],
        ))
        updated = await store.update_event(OWNER_ID, event.id, {"title": "Renamed"})
        assert updated.title == "Renamed"
        assert updated.metadata.location == "Studio A"
        assert updated.metadata.event_type == "yoga"
        assert updated.attendees == ["a@test.com"]
        assert updated.start_time == at(10)

    @pytest.mark.asyncio
    async def test_moving_start_moves_sort_key(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(12)))
        updated = await store.update_event(OWNER_ID, event.id, UpdateCalendarEventData(start_time=at(11)))
        assert updated.start_time == updated.occurred_at == at(11)
        assert updated.end_time == at(12)

    @pytest.mark.asyncio
    async def test_merged_range_revalidated(self, store) -> None:
        """A start moved past the stored end is rejected and nothing is written."""
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        with pytest.raises(ValidationError):
            await store.update_event(OWNER_ID, event.id, {"start_time": at(11)})
        unchanged = await store.get_event_by_id(OWNER_ID, event.id)
        assert unchanged.start_time == at(10)

    @pytest.mark.asyncio
    async def test_clearing_location_removes_key(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11), location="Studio A"))
        updated = await store.update_event(OWNER_ID, event.id, {"location": None})
        assert updated.metadata.location is None
        assert "location" not in updated.metadata.to_json()

    @pytest.mark.asyncio
    async def test_missing_or_foreign_event_returns_none(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        assert await store.update_event(OWNER_ID, "missing", {"title": "x"}) is None
        assert await store.update_event(OTHER_OWNER_ID, event.id, {"title": "x"}) is None
        assert (await store.get_event_by_id(OWNER_ID, event.id)).title == "Session"


class TestDeleteAndLookup:
    """Tests for deletion and owner-scoped lookups."""

    @pytest.mark.asyncio
    async def test_delete(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        assert await store.delete_event(OTHER_OWNER_ID, event.id) is False
        assert await store.delete_event(OWNER_ID, event.id) is True
        assert await store.delete_event(OWNER_ID, event.id) is False
        assert await store.get_event_by_id(OWNER_ID, event.id) is None

    @pytest.mark.asyncio
    async def test_foreign_owner_sees_nothing(self, store) -> None:
        event = await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        assert await store.get_event_by_id(OTHER_OWNER_ID, event.id) is None
        with pytest.raises(NotFoundError):
            await store.require_event(OTHER_OWNER_ID, event.id)
        assert (await store.require_event(OWNER_ID, event.id)).id == event.id

    @pytest.mark.asyncio
    async def test_non_calendar_rows_ignored(self, store, add_rows) -> None:
        note = Interaction(
            id="note-1", owner_id=OWNER_ID, contact_id=CONTACT_ID, type=InteractionType.NOTE.value,
            occurred_at=at(10), source_meta={},
        )
        await add_rows(note)
        assert await store.get_event_by_id(OWNER_ID, "note-1") is None
        assert await store.get_events_in_range(OWNER_ID, at(0), at(23)) == []

    @pytest.mark.asyncio
    async def test_corrupt_metadata_raises(self, store, add_rows) -> None:
        """Metadata that does not parse is rejected, not trusted."""
        await add_rows(Interaction(
            id="bad-1", owner_id=OWNER_ID, contact_id=CONTACT_ID,
            type=InteractionType.CALENDAR_EVENT.value, occurred_at=at(10),
            source_meta={"startTime": "2025-01-06T10:00:00"},
        ))
        with pytest.raises(CorruptRecordError):
            await store.get_event_by_id(OWNER_ID, "bad-1")


class TestRangeQueries:
    """Tests for range intersection and search."""

    @pytest.mark.asyncio
    async def test_events_in_range_intersect(self, store) -> None:
        """Events overlapping the window count even if they start before it."""
        spanning = await store.create_event(OWNER_ID, event_data(at(8), at(10)))
        inside = await store.create_event(OWNER_ID, event_data(at(11), at(12)))
        await store.create_event(OWNER_ID, event_data(at(7), at(9)))  # ends at window start
        await store.create_event(OWNER_ID, event_data(at(13), at(14)))  # starts at window end
        await store.create_event(OTHER_OWNER_ID, event_data(at(11), at(12)))

        events = await store.get_events_in_range(OWNER_ID, at(9), at(13))
        assert [e.id for e in events] == [spanning.id, inside.id]

    @pytest.mark.asyncio
    async def test_rows_ending_before_window_not_read(self, store, add_rows) -> None:
        """Old history is filtered in SQL, so its metadata is never parsed."""
        await add_rows(
            Interaction(
                id="old-1", owner_id=OWNER_ID, contact_id=CONTACT_ID,
                type=InteractionType.CALENDAR_EVENT.value, occurred_at=dt.datetime(2020, 1, 1, 9),
                source_meta={"startTime": "bad", "endTime": "2020-01-01T10:00:00"},
            ),
            Interaction(
                id="old-2", owner_id=OWNER_ID, contact_id=CONTACT_ID,
                type=InteractionType.CALENDAR_EVENT.value, occurred_at=dt.datetime(2020, 1, 1, 9),
                source_meta={"startTime": "bad"},
            ),
        )
        current = await store.create_event(OWNER_ID, event_data(at(10), at(11)))

        events = await store.get_events_in_range(OWNER_ID, at(9), at(17))
        assert [e.id for e in events] == [current.id]

    @pytest.mark.asyncio
    async def test_inverted_range_is_empty(self, store) -> None:
        await store.create_event(OWNER_ID, event_data(at(10), at(11)))
        assert await store.get_events_in_range(OWNER_ID, at(12), at(9)) == []

    @pytest.mark.asyncio
    async def test_search_filters(self, store) -> None:
        yoga = await store.create_event(OWNER_ID, event_data(at(15), at(16), event_type="yoga", title="Flow"))
        massage = await store.create_event(OWNER_ID, event_data(
            at(9), at(10), event_type="massage", title="Deep tissue", description="Lower back focus",
        ))
        other_contact = await store.create_event(OWNER_ID, event_data(at(12), at(13), contact_id="contact-2"))

        everything = await store.search_events(OWNER_ID)
        assert [e.id for e in everything] == [massage.id, other_contact.id, yoga.id]

        assert [e.id for e in await store.search_events(OWNER_ID, {"event_type": "yoga"})] == [yoga.id]
        assert [e.id for e in await store.search_events(OWNER_ID, {"contact_id": "contact-2"})] == [other_contact.id]
        assert [e.id for e in await store.search_events(OWNER_ID, {"query": "BACK"})] == [massage.id]
        assert [e.id for e in await store.search_events(
            OWNER_ID, {"start_date": at(12), "end_date": at(15)},
        )] == [other_contact.id, yoga.id]
        assert len(await store.search_events(OWNER_ID, {"limit": 1})) == 1

    @pytest.mark.asyncio
    async def test_search_limit_bounds(self, store) -> None:
        with pytest.raises(ValidationError):
            await store.search_events(OWNER_ID, {"limit": 0})
        with pytest.raises(ValidationError):
            await store.search_events(OWNER_ID, {"limit": 101})

    @pytest.mark.asyncio
    async def test_upcoming_sessions(self, store) -> None:
        now = at(8)
        soon = await store.create_event(OWNER_ID, event_data(at(9), at(10), event_type="yoga"))
        later = await store.create_event(OWNER_ID, event_data(
            at(9, day=dt.date(2025, 1, 10)), at(10, day=dt.date(2025, 1, 10)),
        ))
        await store.create_event(OWNER_ID, event_data(at(7), at(7, 30)))  # already started
        await store.create_event(OWNER_ID, event_data(
            at(9, day=dt.date(2025, 1, 20)), at(10, day=dt.date(2025, 1, 20)),
        ))

        upcoming = await store.get_upcoming_sessions(OWNER_ID, days_ahead=7, now=now)
        assert [e.id for e in upcoming] == [soon.id, later.id]

        yoga_only = await store.get_upcoming_sessions(OWNER_ID, event_type="yoga", now=now)
        assert [e.id for e in yoga_only] == [soon.id]

        with pytest.raises(ValidationError):
            await store.get_upcoming_sessions(OWNER_ID, days_ahead=0, now=now)
