"""Database model for the interaction ledger.

Every timeline record (calendar events included) is a row here; the
type-specific payload lives in the opaque ``source_meta`` JSON blob and is
parsed into a typed projection by the owning module.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from rhythm.database import Base


class InteractionType(StrEnum):
    """Discriminator values for ``Interaction.type``."""

    CALENDAR_EVENT = "calendar_event"
    NOTE = "note"
    EMAIL = "email"
    CALL = "call"


class Interaction(Base):
    """SQLAlchemy model for a timestamped ledger entry."""

    __tablename__ = "interactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(64), nullable=False)
    contact_id = Column(String(64), nullable=True)
    type = Column(String(32), nullable=False)
    subject = Column(String(512), nullable=True)
    body_text = Column(Text, nullable=True)
    occurred_at = Column(DateTime, nullable=False)  # naive UTC
    source = Column(String(64), nullable=True)
    source_id = Column(String(128), nullable=True)
    source_meta = Column(JSON, nullable=True)
    created_at = Column(
        DateTime,
        default=lambda: dt.datetime.now(dt.UTC).replace(tzinfo=None),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_interactions_owner_type_occurred", "owner_id", "type", "occurred_at"),
        Index("ix_interactions_owner_contact", "owner_id", "contact_id"),
        Index("ix_interactions_owner_source_id", "owner_id", "type", "source_id", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"<Interaction(id={self.id}, type={self.type}, "
            f"owner={self.owner_id}, occurred_at={self.occurred_at})>"
        )
