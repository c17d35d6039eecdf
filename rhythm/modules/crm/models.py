"""Database models and read snapshots for contacts, notes, tasks and goals.

Only the columns the scheduling engine reads are modelled; the CRUD for
these entities lives elsewhere.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from rhythm.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class TaskStatus(StrEnum):
    """Task workflow states."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELED = "canceled"


class TaskPriority(StrEnum):
    """Task priorities, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}


class GoalStatus(StrEnum):
    """Goal tracking states."""

    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    ACHIEVED = "achieved"
    ABANDONED = "abandoned"


class Contact(Base):
    """SQLAlchemy model for a practitioner's contact."""

    __tablename__ = "contacts"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    display_name = Column(String(256), nullable=False)
    primary_email = Column(String(320), nullable=True)
    primary_phone = Column(String(64), nullable=True)
    photo_url = Column(String(2048), nullable=True)
    health_context = Column(JSON, nullable=True)
    preferences = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Note(Base):
    """SQLAlchemy model for a free-text note about a contact."""

    __tablename__ = "notes"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(64), nullable=False)
    contact_id = Column(String(64), nullable=True)
    title = Column(String(512), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notes_owner_contact_created", "owner_id", "contact_id", "created_at"),
    )


class Task(Base):
    """SQLAlchemy model for a task; the linked contact lives in ``details``."""

    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(64), nullable=False)
    name = Column(String(512), nullable=False)
    status = Column(String(32), nullable=False, default=TaskStatus.TODO.value)
    priority = Column(String(32), nullable=False, default=TaskPriority.MEDIUM.value)
    due_date = Column(DateTime, nullable=True)
    details = Column(JSON, nullable=True, default=dict)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_tasks_owner_status", "owner_id", "status"),
    )


class Goal(Base):
    """SQLAlchemy model for a goal, optionally tied to a contact."""

    __tablename__ = "goals"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(64), nullable=False)
    contact_id = Column(String(64), nullable=True)
    goal_type = Column(String(64), nullable=False, default="client_wellness")
    name = Column(String(512), nullable=False)
    status = Column(String(32), nullable=True, default=GoalStatus.ON_TRACK.value)
    target_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_goals_owner_contact_created", "owner_id", "contact_id", "created_at"),
    )


class ContactSnapshot(BaseModel):
    """Subset of contact fields shown when preparing for a session."""

    id: str
    display_name: str
    primary_email: Optional[str] = None
    primary_phone: Optional[str] = None
    photo_url: Optional[str] = None
    health_context: Optional[Any] = None
    preferences: Optional[Any] = None


class NoteSummary(BaseModel):
    id: str
    content: str
    created_at: Optional[dt.datetime] = None


class TaskSummary(BaseModel):
    id: str
    name: str
    priority: Optional[str] = None
    due_date: Optional[dt.datetime] = None


class GoalSummary(BaseModel):
    id: str
    name: str
    status: Optional[str] = None
    target_date: Optional[dt.datetime] = None
