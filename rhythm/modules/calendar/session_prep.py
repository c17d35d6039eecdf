"""Session preparation: everything worth knowing about a contact before a meeting."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from rhythm.config import Settings, get_settings
from rhythm.logging_config import get_logger, owner_context
from rhythm.modules.calendar.collaborators import ContactContextSource
from rhythm.modules.calendar.models import SessionPrepBundle
from rhythm.modules.calendar.store import EventStore

logger = get_logger(__name__)


class SessionPrepAggregator:
    """Builds a bounded, read-only context bundle for an event.

    Only the event lookup is fatal. The contact, notes, tasks and goals are
    fetched concurrently and each degrades to ``None``/``[]`` on failure.
    """

    def __init__(
        self,
        store: EventStore,
        directory: ContactContextSource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._settings = settings or get_settings()

    async def get_session_prep(self, owner_id: str, event_id: str) -> Optional[SessionPrepBundle]:
        event = await self._store.get_event_by_id(owner_id, event_id)
        if event is None:
            return None

        contact_id = event.linked_contact_id
        with owner_context(owner_id, event_id=event_id):
            results = await asyncio.gather(
                self._directory.get_contact_snapshot(owner_id, contact_id),
                self._directory.list_recent_notes(owner_id, contact_id, self._settings.prep_notes_limit),
                self._directory.list_pending_tasks_for_contact(
                    owner_id, contact_id, self._settings.prep_tasks_limit,
                ),
                self._directory.list_goals_for_contact(owner_id, contact_id, self._settings.prep_goals_limit),
                return_exceptions=True,
            )
            names = ("contact", "notes", "tasks", "goals")
            contact, notes, tasks, goals = (
                self._settle(name, result) for name, result in zip(names, results)
            )

        if contact is None and not isinstance(results[0], Exception):
            # Unknown contact: nothing else can legitimately belong to it
            notes, tasks, goals = [], [], []

        bundle = SessionPrepBundle(
            event=event,
            contact=contact,
            recent_notes=(notes or [])[: self._settings.prep_notes_limit],
            pending_tasks=(tasks or [])[: self._settings.prep_tasks_limit],
            related_goals=(goals or [])[: self._settings.prep_goals_limit],
        )
        logger.info(
            "session_prep_built",
            event_id=event_id,
            has_contact=contact is not None,
            notes=len(bundle.recent_notes),
            tasks=len(bundle.pending_tasks),
            goals=len(bundle.related_goals),
        )
        return bundle

    @staticmethod
    def _settle(name: str, result: Any) -> Any:
        # Cancellation and other non-Exception signals are not a failed lookup
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result
        if isinstance(result, Exception):
            logger.warning(
                "session_prep_fetch_failed",
                part=name,
                error=f"{type(result).__name__}: {result}",
            )
            return None
        return result
