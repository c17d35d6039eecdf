"""Read-only contact directory backing the scheduling engine's lookups."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rhythm.database import get_session
from rhythm.logging_config import get_logger
from rhythm.modules.crm.models import (
    PRIORITY_RANK,
    Contact,
    ContactSnapshot,
    Goal,
    GoalSummary,
    Note,
    NoteSummary,
    Task,
    TaskStatus,
    TaskSummary,
)

logger = get_logger(__name__)

_priority_rank = case(
    {priority.value: rank for priority, rank in PRIORITY_RANK.items()},
    value=Task.priority,
    else_=0,
)


class CrmDirectory:
    """SQL-backed implementation of the contact, notes, task and goal lookups.

    Every query is scoped to ``owner_id``; a contact belonging to another
    owner is reported exactly like a missing one.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_factory = session_factory

    async def resolve_contact_address(self, owner_id: str, contact_id: str) -> Optional[str]:
        """Return the contact's primary e-mail, or None if unknown or unset."""
        async with get_session(self._session_factory) as session:
            result = await session.execute(
                select(Contact.primary_email).where(
                    Contact.owner_id == owner_id,
                    Contact.id == contact_id,
                )
            )
            address = result.scalar_one_or_none()
        return address or None

    async def get_contact_snapshot(self, owner_id: str, contact_id: str) -> Optional[ContactSnapshot]:
        async with get_session(self._session_factory) as session:
            row = (await session.execute(
                select(Contact).where(Contact.owner_id == owner_id, Contact.id == contact_id)
            )).scalar_one_or_none()
        if row is None:
            return None
        return ContactSnapshot(
            id=row.id,
            display_name=row.display_name,
            primary_email=row.primary_email,
            primary_phone=row.primary_phone,
            photo_url=row.photo_url,
            health_context=row.health_context,
            preferences=row.preferences,
        )

    async def list_recent_notes(self, owner_id: str, contact_id: str, limit: int) -> list[NoteSummary]:
        """Most recent notes first."""
        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Note)
                .where(Note.owner_id == owner_id, Note.contact_id == contact_id)
                .order_by(Note.created_at.desc())
                .limit(limit)
            )).scalars().all()
        return [NoteSummary(id=r.id, content=r.content, created_at=r.created_at) for r in rows]

    async def list_pending_tasks_for_contact(
        self, owner_id: str, contact_id: str, limit: int,
    ) -> list[TaskSummary]:
        """Tasks still in ``todo`` linked via ``details.contactId``, highest priority first."""
        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Task)
                .where(
                    Task.owner_id == owner_id,
                    Task.status == TaskStatus.TODO.value,
                    Task.details["contactId"].as_string() == contact_id,
                )
                .order_by(_priority_rank.desc(), Task.created_at)
                .limit(limit)
            )).scalars().all()
        return [
            TaskSummary(id=r.id, name=r.name, priority=r.priority, due_date=r.due_date)
            for r in rows
        ]

    async def list_goals_for_contact(self, owner_id: str, contact_id: str, limit: int) -> list[GoalSummary]:
        """Most recently created goals first."""
        async with get_session(self._session_factory) as session:
            rows = (await session.execute(
                select(Goal)
                .where(Goal.owner_id == owner_id, Goal.contact_id == contact_id)
                .order_by(Goal.created_at.desc())
                .limit(limit)
            )).scalars().all()
        return [
            GoalSummary(id=r.id, name=r.name, status=r.status, target_date=r.target_date)
            for r in rows
        ]
