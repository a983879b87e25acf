"""In-memory stores for audit records and scheduled tasks.

InMemoryAuditRecordStore keeps records sorted by created_at using bisect and
is append-only like its database counterpart. InMemoryScheduledTaskRepository
is a dict of tasks. Both make tests hermetic and suit single-process
deployments that do not need history to survive a restart.
"""

from __future__ import annotations

import bisect
import uuid
from datetime import UTC, datetime
from typing import Any

from aumos_content_history.core.errors import NotFoundError
from aumos_content_history.core.records import AuditRecord, ScheduledTask


class InMemoryAuditRecordStore:
    """Append-only in-memory audit record store.

    Records are kept in created_at order; records with equal timestamps keep
    insertion order.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._records: list[AuditRecord] = []
        # Parallel list of created_at values for bisect operations
        self._timestamps: list[datetime] = []

    async def append(self, record: AuditRecord) -> AuditRecord:
        """Append a record at its sorted position.

        Args:
            record: The immutable record to store.

        Returns:
            The same record.
        """
        index = bisect.bisect_right(self._timestamps, record.created_at)
        self._records.insert(index, record)
        self._timestamps.insert(index, record.created_at)
        return record

    async def list_for_target(
        self,
        content_type: str | None = None,
        document_id: str | None = None,
        limit: int = 50,
    ) -> list[AuditRecord]:
        """Return matching records, most recent first."""
        matches = [
            record
            for record in reversed(self._records)
            if (content_type is None or record.content_type == content_type)
            and (document_id is None or record.target_document_id == document_id)
        ]
        return matches[:limit]

    async def get_by_id(self, record_id: uuid.UUID) -> AuditRecord:
        """Return one record.

        Raises:
            NotFoundError: If no record has this id.
        """
        for record in self._records:
            if record.id == record_id:
                return record
        raise NotFoundError(resource="AuditRecord", resource_id=str(record_id))

    def count(self) -> int:
        """Return the total number of stored records."""
        return len(self._records)

    def all_records(self) -> list[AuditRecord]:
        """Return every record in created_at ascending order."""
        return list(self._records)


class InMemoryScheduledTaskRepository:
    """Dict-backed scheduled task repository."""

    def __init__(self) -> None:
        self._tasks: dict[uuid.UUID, ScheduledTask] = {}

    async def create(self, name: str, documents: list[dict[str, Any]], scheduled_at: datetime) -> ScheduledTask:
        now = datetime.now(UTC)
        task = ScheduledTask.model_validate(
            {
                "id": uuid.uuid4(),
                "name": name,
                "documents": documents,
                "scheduled_at": scheduled_at,
                "status": "pending",
                "created_at": now,
                "updated_at": now,
            }
        )
        self._tasks[task.id] = task
        return task

    async def get_by_id(self, task_id: uuid.UUID) -> ScheduledTask:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(resource="ScheduledTask", resource_id=str(task_id))
        return task

    async def list_all(self, status_filter: str | None = None) -> list[ScheduledTask]:
        tasks = [task for task in self._tasks.values() if status_filter is None or task.status == status_filter]
        return sorted(tasks, key=lambda task: task.scheduled_at)

    async def list_due(self, now: datetime) -> list[ScheduledTask]:
        due = [task for task in self._tasks.values() if task.status == "pending" and task.scheduled_at <= now]
        return sorted(due, key=lambda task: task.scheduled_at)

    async def update(self, task_id: uuid.UUID, changes: dict[str, Any]) -> ScheduledTask:
        current = await self.get_by_id(task_id)
        updated = ScheduledTask.model_validate(
            {**current.model_dump(), **changes, "updated_at": datetime.now(UTC)}
        )
        self._tasks[task_id] = updated
        return updated

    async def delete(self, task_id: uuid.UUID) -> None:
        await self.get_by_id(task_id)
        del self._tasks[task_id]
