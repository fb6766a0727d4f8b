"""Stored Resource ORM — one row per resource document written by TableDocumentEngine.

Invariants:
    - id is the store-assigned UUID and equals body["id"]
    - body holds the whole document as JSON; it is the source of truth
    - name_index / gender / birth_date are derived search columns, rewritten only on put

Design Decisions:
    - Denormalized search columns over JSON path queries: identical SQL on SQLite and
      PostgreSQL (ADR: tests run on in-memory SQLite)
    - created_at orders search results (insertion order), id breaks ties
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from fhir_lite.db.base import Base


class StoredResource(Base):
    """A resource document plus the columns the filter document searches on."""
    __tablename__ = "stored_resources"
    __table_args__ = (
        Index("ix_stored_resources_kind_created", "kind", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[dict] = mapped_column(JSON, nullable=False)
    name_index: Mapped[str | None] = mapped_column(Text, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(16), nullable=True)
    birth_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
