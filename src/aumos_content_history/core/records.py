"""Domain records for content history.

AuditRecord is the immutable result of one captured mutation. It carries the
redacted before and after snapshots, so a document can be browsed and
restored without replaying anything.

ScheduledTask describes a batch of publish/unpublish operations to run at a
future time; its documents are processed through the same document pipeline
as interactive edits, so they are audited too.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

OperationKind = Literal["create", "update", "delete", "publish", "unpublish"]
TaskOperation = Literal["publish", "unpublish"]
TaskStatus = Literal["pending", "completed", "partial", "failed"]

AUDITED_OPERATIONS: frozenset[str] = frozenset({"create", "update", "delete", "publish", "unpublish"})
BEFORE_STATE_OPERATIONS: frozenset[str] = frozenset({"update", "delete", "publish", "unpublish"})
UNKNOWN_DOCUMENT_ID = "unknown"


class AuditRecord(BaseModel):
    """Immutable record of a captured document mutation.

    Attributes:
        id: Unique record identifier (UUID v4).
        schema_version: Redaction/record layout version in effect at capture time.
        content_type: Content type uid of the mutated document.
        target_document_id: documentId of the mutated document, or "unknown".
        locale: Locale of the mutated document variant, if any.
        operation: The mutation kind.
        operation_status: Outcome of the mutation. Only successful mutations are recorded.
        operation_user_id: Identifier of the acting user. None for system operations.
        operation_user_email: Email of the acting user.
        operation_user_name: Username or first name of the acting user.
        snapshot_before: Redacted state before the mutation. None for create
            or when the before fetch failed.
        snapshot_after: Redacted state after the mutation. None for delete.
        ip_address: Client address of the originating request.
        user_agent: User-Agent of the originating request.
        created_at: UTC time the record was built.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique record identifier")
    schema_version: str = Field(..., description="Record layout version at capture time")
    content_type: str = Field(..., description="Content type uid of the mutated document")
    target_document_id: str = Field(..., description="documentId of the mutated document")
    locale: str | None = Field(default=None, description="Locale of the mutated document")
    operation: OperationKind = Field(..., description="The mutation kind")
    operation_status: Literal["success"] = Field(default="success", description="Mutation outcome")
    operation_user_id: str | None = Field(default=None, description="Acting user id")
    operation_user_email: str | None = Field(default=None, description="Acting user email")
    operation_user_name: str | None = Field(default=None, description="Acting user display name")
    snapshot_before: dict[str, Any] | None = Field(default=None, description="Redacted prior state")
    snapshot_after: dict[str, Any] | None = Field(default=None, description="Redacted new state")
    ip_address: str | None = Field(default=None, description="Client address")
    user_agent: str | None = Field(default=None, description="Client User-Agent")
    created_at: datetime = Field(..., description="UTC capture time")


class TaskDocument(BaseModel):
    """One document a scheduled task will publish or unpublish."""

    model_config = ConfigDict(frozen=True)

    content_type: str
    document_id: str
    operation: TaskOperation
    locale: str | None = None


class TaskResult(BaseModel):
    """Outcome of one TaskDocument within an executed task."""

    model_config = ConfigDict(frozen=True)

    content_type: str
    document_id: str
    operation: str
    success: bool
    error: str | None = None


class ScheduledTask(BaseModel):
    """A batch of publish/unpublish operations due at scheduled_at.

    Attributes:
        id: Task identifier.
        name: Human-readable task name.
        documents: Documents to process, in order.
        scheduled_at: When the task becomes due (UTC).
        status: pending until executed, then completed, partial or failed.
        executed_at: When execution finished.
        results: Per-document outcomes of the last execution.
        error_message: Set when the whole task failed before or during execution.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    name: str
    documents: list[TaskDocument] = Field(default_factory=list)
    scheduled_at: datetime
    status: TaskStatus = "pending"
    executed_at: datetime | None = None
    results: list[TaskResult] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
