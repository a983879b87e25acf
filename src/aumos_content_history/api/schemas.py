"""Pydantic request and response schemas for the content history API.

All API inputs and outputs use Pydantic models, never raw dicts.
Schemas are grouped by resource type.

Resources:
- AuditRecord — audit listing and snapshot restore
- ScheduledTask — scheduled publish/unpublish CRUD
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from aumos_content_history.core.records import TaskDocument, TaskResult

# ---------------------------------------------------------------------------
# AuditRecord schemas
# ---------------------------------------------------------------------------


class AuditRecordResponse(BaseModel):
    """Response schema for an immutable audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Audit record UUID")
    schema_version: str = Field(description="Record layout version at capture time")
    content_type: str = Field(description="Content type uid of the mutated document")
    target_document_id: str = Field(description="documentId of the mutated document")
    locale: str | None = Field(description="Locale of the mutated document")
    operation: str = Field(description="create | update | delete | publish | unpublish")
    operation_status: str = Field(description="Mutation outcome")
    operation_user_id: str | None = Field(description="Acting user id (absent for system operations)")
    operation_user_email: str | None = Field(description="Acting user email")
    operation_user_name: str | None = Field(description="Acting user display name")
    snapshot_before: dict[str, Any] | None = Field(description="Redacted state before the mutation")
    snapshot_after: dict[str, Any] | None = Field(description="Redacted state after the mutation")
    ip_address: str | None = Field(description="Client address")
    user_agent: str | None = Field(description="Client User-Agent")
    created_at: datetime = Field(description="Capture timestamp (UTC)")


class RestoreRequest(BaseModel):
    """Request body for restoring a document from an audit record."""

    content_type: str = Field(min_length=1, description="Content type uid of the document")
    document_id: str = Field(min_length=1, description="documentId of the document to restore")
    audit_id: uuid.UUID = Field(description="Audit record whose after-snapshot is restored")


class RestoreResponse(BaseModel):
    """Response for a successful restore."""

    content_type: str = Field(description="Content type uid of the document")
    document_id: str = Field(description="documentId of the restored document")
    audit_id: uuid.UUID = Field(description="Audit record the document was restored from")
    document: dict[str, Any] | None = Field(description="The document as returned by the update")


# ---------------------------------------------------------------------------
# ScheduledTask schemas
# ---------------------------------------------------------------------------


class TaskCreateRequest(BaseModel):
    """Request body for creating a scheduled task."""

    name: str = Field(min_length=1, max_length=255, description="Human-readable task name")
    documents: list[TaskDocument] = Field(
        default_factory=list,
        description="Documents to publish or unpublish when the task runs",
    )
    scheduled_at: datetime = Field(description="When the task becomes due (ISO 8601, timezone-aware)")


class TaskUpdateRequest(BaseModel):
    """Request body for a partial task update. Omitted fields are unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    documents: list[TaskDocument] | None = None
    scheduled_at: datetime | None = None
    status: str | None = Field(default=None, pattern="^(pending|completed|partial|failed)$")


class TaskResponse(BaseModel):
    """Response schema for a scheduled task."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Task UUID")
    name: str = Field(description="Task name")
    documents: list[TaskDocument] = Field(description="Documents the task processes")
    scheduled_at: datetime = Field(description="Due time (UTC)")
    status: str = Field(description="pending | completed | partial | failed")
    executed_at: datetime | None = Field(description="When execution finished")
    results: list[TaskResult] = Field(description="Per-document outcomes of the last execution")
    error_message: str | None = Field(description="Task-level failure message")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    updated_at: datetime = Field(description="Last update timestamp (UTC)")


class TaskDeleteResponse(BaseModel):
    """Response for a deleted task."""

    message: str = "Task deleted"
