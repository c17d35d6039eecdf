"""Interfaces the calendar module consumes from the contact directory."""

from __future__ import annotations

from typing import Optional, Protocol

from rhythm.modules.crm.models import ContactSnapshot, GoalSummary, NoteSummary, TaskSummary


class ContactResolver(Protocol):
    async def resolve_contact_address(self, owner_id: str, contact_id: str) -> Optional[str]: ...


class ContactContextSource(Protocol):
    """Everything the session-prep aggregator reads about a contact."""

    async def get_contact_snapshot(self, owner_id: str, contact_id: str) -> Optional[ContactSnapshot]: ...

    async def list_recent_notes(self, owner_id: str, contact_id: str, limit: int) -> list[NoteSummary]: ...

    async def list_pending_tasks_for_contact(
        self, owner_id: str, contact_id: str, limit: int,
    ) -> list[TaskSummary]: ...

    async def list_goals_for_contact(self, owner_id: str, contact_id: str, limit: int) -> list[GoalSummary]: ...
