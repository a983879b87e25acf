"""SQLAlchemy ORM models for content history.

Models:
- AuditRecordRow     — IMMUTABLE captured mutation (append-only table)
- ScheduledTaskRow   — scheduled publish/unpublish batch

JSON columns use JSONB on PostgreSQL and plain JSON elsewhere.

IMPORTANT: AuditRecordRow is written ONLY via AuditRecordStore.append(). No
code path updates or deletes audit rows.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all content history tables."""


class AuditRecordRow(Base):
    """Persisted AuditRecord.

    Attributes mirror core.records.AuditRecord field for field.
    """

    __tablename__ = "content_history_audits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    schema_version: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Record layout/redaction version at capture time",
    )
    content_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Content type uid, e.g. api::article.article",
    )
    target_document_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="documentId of the mutated document, or 'unknown'",
    )
    locale: Mapped[str | None] = mapped_column(String(20), nullable=True)
    operation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="create | update | delete | publish | unpublish",
    )
    operation_status: Mapped[str] = mapped_column(String(20), nullable=False, default="success")
    operation_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    operation_user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    operation_user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    snapshot_before: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Redacted state before the mutation; NULL for create",
    )
    snapshot_after: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Redacted state after the mutation; NULL for delete",
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Capture timestamp (UTC), set once at insert",
    )


class ScheduledTaskRow(Base):
    """Persisted ScheduledTask."""

    __tablename__ = "content_history_tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    documents: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="[{content_type, document_id, operation, locale}]",
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="pending | completed | partial | failed",
    )
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
