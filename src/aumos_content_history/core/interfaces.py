"""Abstract interfaces (Protocol classes) for content history.

Defines the contracts between the service layer and its collaborators using
typing.Protocol. Services depend on these protocols, never on concrete
adapters, so tests can substitute in-memory or mock implementations.

Protocols defined:
- ISchemaRegistry            — content type schemas (host platform, read-only)
- IDocumentEngine            — document reads and mutations (host platform)
- IAuditRecordStore          — append-only audit record persistence
- IScheduledTaskRepository   — scheduled task persistence
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from aumos_content_history.core.records import AuditRecord, ScheduledTask
from aumos_content_history.core.schema import EntityTypeSchema

if TYPE_CHECKING:
    from aumos_content_history.core.pipeline import OperationContext


class ISchemaRegistry(Protocol):
    """Read-only access to content type schemas."""

    def get_schema(self, uid: str) -> EntityTypeSchema | None:
        """Return the schema for a content type, or None if it is unknown."""
        ...


class IDocumentEngine(Protocol):
    """The host platform's document storage engine."""

    async def fetch_expanded(
        self,
        uid: str,
        document_id: str,
        populate: Any,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch one document expanded according to a populate plan.

        Must not pass through the document pipeline, so fetching never
        re-enters any middleware.

        Args:
            uid: Content type identifier.
            document_id: The document's documentId.
            populate: Populate plan (True or nested dict).
            locale: Optional locale variant.

        Returns:
            The expanded document, or None if it does not exist.
        """
        ...

    async def mutate(self, context: "OperationContext") -> dict[str, Any] | None:
        """Perform the operation described by context.

        Args:
            context: Action, content type and params (documentId, data,
                locale, populate).

        Returns:
            The resulting document expanded per params["populate"], or None
            when the operation returns nothing (e.g. delete).

        Raises:
            ValidationError: If data does not satisfy the content type schema.
            NotFoundError: If params["documentId"] does not exist.
        """
        ...


class IAuditRecordStore(Protocol):
    """Append-only persistence for AuditRecord.

    Implementations expose no update or delete operations.
    """

    async def append(self, record: AuditRecord) -> AuditRecord:
        """Persist a new audit record and return it."""
        ...

    async def list_for_target(
        self,
        content_type: str | None = None,
        document_id: str | None = None,
        limit: int = 50,
    ) -> list[AuditRecord]:
        """List records, most recent first.

        Args:
            content_type: Optional content type filter.
            document_id: Optional target_document_id filter.
            limit: Maximum number of records.

        Returns:
            Matching records ordered by created_at descending.
        """
        ...

    async def get_by_id(self, record_id: uuid.UUID) -> AuditRecord:
        """Return one record.

        Raises:
            NotFoundError: If no record has this id.
        """
        ...


class IScheduledTaskRepository(Protocol):
    """Persistence for ScheduledTask."""

    async def create(self, name: str, documents: list[dict[str, Any]], scheduled_at: datetime) -> ScheduledTask:
        """Persist a new pending task."""
        ...

    async def get_by_id(self, task_id: uuid.UUID) -> ScheduledTask:
        """Return one task.

        Raises:
            NotFoundError: If no task has this id.
        """
        ...

    async def list_all(self, status_filter: str | None = None) -> list[ScheduledTask]:
        """List tasks ordered by scheduled_at, optionally filtered by status."""
        ...

    async def list_due(self, now: datetime) -> list[ScheduledTask]:
        """List pending tasks with scheduled_at <= now, earliest first."""
        ...

    async def update(self, task_id: uuid.UUID, changes: dict[str, Any]) -> ScheduledTask:
        """Apply field changes to a task and return the updated task.

        Raises:
            NotFoundError: If no task has this id.
        """
        ...

    async def delete(self, task_id: uuid.UUID) -> None:
        """Delete a task.

        Raises:
            NotFoundError: If no task has this id.
        """
        ...
