"""Calendar event persistence on top of the interaction ledger.

Calendar events are ``interactions`` rows with ``type = calendar_event``.
Start/end, location, event type and attendees live in the row's JSON
metadata and are parsed into ``CalendarEventMeta`` on every read; the
``occurred_at`` column mirrors the start time so range queries stay indexed.
"""

from __future__ import annotations

import datetime as dt
import random
import string
import time
from typing import Any, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rhythm.config import Settings, get_settings
from rhythm.database import get_session
from rhythm.errors import CorruptRecordError, NotFoundError, ValidationError
from rhythm.logging_config import get_logger
from rhythm.modules.calendar.models import (
    CalendarEvent,
    CalendarEventMeta,
    CreateCalendarEventData,
    EventSearchParams,
    UpdateCalendarEventData,
    to_naive_utc,
)
from rhythm.modules.interactions.models import Interaction, InteractionType

logger = get_logger(__name__)

CALENDAR_SOURCE = "calendar"

_META_FIELDS = ("start_time", "end_time", "location", "event_type", "attendees")

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_input(model_cls: type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Accept a model instance or a plain mapping, raising ``ValidationError`` on bad input."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(str(exc)) from exc


def generate_source_id() -> str:
    """Build a ``cal-<epoch ms>-<7 base36 chars>`` idempotency key."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"cal-{int(time.time() * 1000)}-{suffix}"


def _check_time_range(start: dt.datetime, end: dt.datetime) -> None:
    if end <= start:
        raise ValidationError("Event end time must be after start time")


class EventStore:
    """Owner-scoped CRUD and range queries for calendar events."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    @staticmethod
    def _scope(owner_id: str) -> list:
        return [
            Interaction.owner_id == owner_id,
            Interaction.type == InteractionType.CALENDAR_EVENT.value,
        ]

    @staticmethod
    def _parse_meta(row: Interaction) -> CalendarEventMeta:
        if not isinstance(row.source_meta, dict):
            raise CorruptRecordError(row.id, "metadata is not an object")
        try:
            return CalendarEventMeta.model_validate(row.source_meta)
        except PydanticValidationError as exc:
            raise CorruptRecordError(row.id, str(exc)) from exc

    @classmethod
    def _from_db(cls, row: Interaction) -> CalendarEvent:
        """Convert a ledger row to a CalendarEvent."""
        return CalendarEvent(
            id=row.id,
            owner_id=row.owner_id,
            linked_contact_id=row.contact_id or "",
            title=row.subject or "",
            description=row.body_text,
            occurred_at=row.occurred_at,
            source_id=row.source_id or "",
            metadata=cls._parse_meta(row),
            created_at=row.created_at,
        )

    async def _load(self, session: AsyncSession, owner_id: str, event_id: str) -> Optional[Interaction]:
        result = await session.execute(
            select(Interaction).where(*self._scope(owner_id), Interaction.id == event_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def create_event(
        self,
        owner_id: str,
        data: Union[CreateCalendarEventData, Mapping[str, Any]],
    ) -> CalendarEvent:
        """Create an event; double-booking is allowed.

        When ``source_id`` names an existing event of this owner, that event
        is returned unchanged.
        """
        data = coerce_input(CreateCalendarEventData, data)
        _check_time_range(data.start_time, data.end_time)

        meta = CalendarEventMeta(
            start_time=data.start_time,
            end_time=data.end_time,
            location=data.location,
            event_type=data.event_type,
            attendees=data.attendees,
        )

        async with get_session(self._session_factory) as session:
            if data.source_id:
                existing = (await session.execute(
                    select(Interaction).where(
                        *self._scope(owner_id),
                        Interaction.source_id == data.source_id,
                    )
                )).scalar_one_or_none()
                if existing is not None:
                    logger.info("event_create_deduplicated", event_id=existing.id, source_id=data.source_id)
                    return self._from_db(existing)

            row = Interaction(
                owner_id=owner_id,
                contact_id=data.contact_id,
                type=InteractionType.CALENDAR_EVENT.value,
                subject=data.title,
                body_text=data.description,
                occurred_at=meta.start_time,
                source=CALENDAR_SOURCE,
                source_id=data.source_id or generate_source_id(),
                source_meta=meta.to_json(),
            )
            session.add(row)
            await session.flush()
            event = self._from_db(row)

        logger.info(
            "event_created",
            event_id=event.id,
            owner_id=owner_id,
            contact_id=data.contact_id,
            start=event.start_time.isoformat(),
        )
        return event

    async def update_event(
        self,
        owner_id: str,
        event_id: str,
        updates: Union[UpdateCalendarEventData, Mapping[str, Any]],
    ) -> Optional[CalendarEvent]:
        """Merge explicitly supplied fields over the stored event.

        Returns None when the event is missing or not owned. The time range
        is re-validated after the merge.
        """
        updates = coerce_input(UpdateCalendarEventData, updates)
        return await self._apply_changes(owner_id, event_id, updates.model_dump(exclude_unset=True))

    async def set_attendees(
        self, owner_id: str, event_id: str, attendees: Sequence[str],
    ) -> Optional[CalendarEvent]:
        """Replace the attendee list with addresses taken from the contact directory.

        Directory addresses are stored as recorded there, without the input
        address check ``update_event`` applies to caller-supplied lists.
        """
        return await self._apply_changes(owner_id, event_id, {"attendees": list(attendees)})

    async def _apply_changes(
        self, owner_id: str, event_id: str, changes: dict[str, Any],
    ) -> Optional[CalendarEvent]:
        async with get_session(self._session_factory) as session:
            row = await self._load(session, owner_id, event_id)
            if row is None:
                return None

            merged = self._parse_meta(row).model_dump()
            for key in _META_FIELDS:
                if key in changes:
                    merged[key] = changes[key]
            _check_time_range(merged["start_time"], merged["end_time"])
            meta = CalendarEventMeta.model_validate(merged)

            if "title" in changes:
                row.subject = changes["title"]
            if "description" in changes:
                row.body_text = changes["description"] or None
            row.occurred_at = meta.start_time
            row.source_meta = meta.to_json()
            await session.flush()
            event = self._from_db(row)

        logger.info("event_updated", event_id=event_id, fields=sorted(changes))
        return event

    async def delete_event(self, owner_id: str, event_id: str) -> bool:
        """Hard-delete an event. Returns True if a row was removed."""
        async with get_session(self._session_factory) as session:
            result = await session.execute(
                delete(Interaction).where(*self._scope(owner_id), Interaction.id == event_id)
            )
        removed = result.rowcount > 0
        if removed:
            logger.info("event_deleted", event_id=event_id, owner_id=owner_id)
        return removed

    async def get_event_by_id(self, owner_id: str, event_id: str) -> Optional[CalendarEvent]:
        async with get_session(self._session_factory) as session:
            row = await self._load(session, owner_id, event_id)
            return self._from_db(row) if row is not None else None

    async def require_event(self, owner_id: str, event_id: str) -> CalendarEvent:
        """Like ``get_event_by_id`` but raises ``NotFoundError`` on a miss."""
        event = await self.get_event_by_id(owner_id, event_id)
        if event is None:
            raise NotFoundError("calendar event", event_id)
        return event

    async def search_events(
        self,
        owner_id: str,
        params: Union[EventSearchParams, Mapping[str, Any], None] = None,
    ) -> list[CalendarEvent]:
        """Search by date bounds, contact, event type or free text, ascending by start."""
        params = coerce_input(EventSearchParams, params or {})
        limit = params.limit if params.limit is not None else self._settings.search_default_limit
        if not 1 <= limit <= self._settings.search_max_limit:
            raise ValidationError(f"limit must be between 1 and {self._settings.search_max_limit}")

        conditions = self._scope(owner_id)
        if params.start_date:
            conditions.append(Interaction.occurred_at >= params.start_date)
        if params.end_date:
            conditions.append(Interaction.occurred_at <= params.end_date)
        if params.contact_id:
            conditions.append(Interaction.contact_id == params.contact_id)
        if params.event_type:
            conditions.append(Interaction.source_meta["eventType"].as_string() == params.event_type)
        if params.query:
            conditions.append(or_(
                Interaction.subject.icontains(params.query, autoescape=True),
                Interaction.body_text.icontains(params.query, autoescape=True),
            ))

        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Interaction)
                .where(*conditions)
                .order_by(Interaction.occurred_at)
                .limit(limit)
            )).scalars().all()
            return [self._from_db(row) for row in rows]

    async def get_events_in_range(
        self,
        owner_id: str,
        start: dt.datetime,
        end: dt.datetime,
    ) -> list[CalendarEvent]:
        """Every event whose ``[start, end)`` interval intersects the given one."""
        start = to_naive_utc(start)
        end = to_naive_utc(end)
        if start >= end:
            return []

        # endTime is stored as a naive ISO string, which orders like the datetime
        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Interaction)
                .where(
                    *self._scope(owner_id),
                    Interaction.occurred_at < end,
                    Interaction.source_meta["endTime"].as_string() > start.isoformat(),
                )
                .order_by(Interaction.occurred_at)
            )).scalars().all()
            events = [self._from_db(row) for row in rows]

        return [e for e in events if e.busy_slot.overlaps(start, end)]

    async def get_upcoming_sessions(
        self,
        owner_id: str,
        days_ahead: int = 7,
        contact_id: Optional[str] = None,
        event_type: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> list[CalendarEvent]:
        """Events starting between now and ``days_ahead`` days from now."""
        if not 1 <= days_ahead <= self._settings.upcoming_max_days:
            raise ValidationError(f"days_ahead must be between 1 and {self._settings.upcoming_max_days}")
        now = to_naive_utc(now) if now else dt.datetime.now(dt.UTC).replace(tzinfo=None)

        conditions = self._scope(owner_id) + [
            Interaction.occurred_at >= now,
            Interaction.occurred_at <= now + dt.timedelta(days=days_ahead),
        ]
        if contact_id:
            conditions.append(Interaction.contact_id == contact_id)
        if event_type:
            conditions.append(Interaction.source_meta["eventType"].as_string() == event_type)

        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Interaction).where(*conditions).order_by(Interaction.occurred_at)
            )).scalars().all()
            return [self._from_db(row) for row in rows]
