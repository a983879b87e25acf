"""SQLAlchemy repository for scheduled tasks.

ScheduledTaskRepository implements IScheduledTaskRepository on the same
database as the audit records. Each call runs in its own session because the
task poller executes outside any request.

NOTE: AuditRecordStore lives in audit_store.py, not here. It is
append-only and must never grow update or delete methods.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aumos_content_history.adapters.audit_store import session_scope
from aumos_content_history.core.errors import NotFoundError
from aumos_content_history.core.models import ScheduledTaskRow
from aumos_content_history.core.records import ScheduledTask
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)


class ScheduledTaskRepository:
    """Repository for ScheduledTask persistence.

    Args:
        session_factory: Factory producing database sessions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize ScheduledTaskRepository with a session factory.

        Args:
            session_factory: Factory from init_audit_db().
        """
        self._session_factory = session_factory

    async def create(
        self,
        name: str,
        documents: list[dict[str, Any]],
        scheduled_at: datetime,
    ) -> ScheduledTask:
        """Create and persist a new pending task.

        Args:
            name: Task name.
            documents: Serialized TaskDocument dicts.
            scheduled_at: When the task becomes due.

        Returns:
            The persisted ScheduledTask.
        """
        now = datetime.now(UTC)
        row = ScheduledTaskRow(
            id=uuid.uuid4(),
            name=name,
            documents=documents,
            scheduled_at=scheduled_at,
            status="pending",
            executed_at=None,
            results=[],
            error_message=None,
            created_at=now,
            updated_at=now,
        )
        async with session_scope(self._session_factory) as session:
            session.add(row)
            await session.flush()
            task = ScheduledTask.model_validate(row)

        logger.info("Scheduled task created in DB", task_id=str(task.id))
        return task

    async def get_by_id(self, task_id: uuid.UUID) -> ScheduledTask:
        """Retrieve a task by ID.

        Raises:
            NotFoundError: If not found.
        """
        async with session_scope(self._session_factory) as session:
            row = await session.get(ScheduledTaskRow, task_id)
            if row is None:
                raise NotFoundError(resource="ScheduledTask", resource_id=str(task_id))
            return ScheduledTask.model_validate(row)

    async def list_all(self, status_filter: str | None = None) -> list[ScheduledTask]:
        """List tasks ordered by scheduled_at ascending.

        Args:
            status_filter: Optional status to filter by.

        Returns:
            List of ScheduledTask.
        """
        stmt = select(ScheduledTaskRow)
        if status_filter:
            stmt = stmt.where(ScheduledTaskRow.status == status_filter)
        stmt = stmt.order_by(ScheduledTaskRow.scheduled_at.asc())

        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [ScheduledTask.model_validate(row) for row in result.scalars().all()]

    async def list_due(self, now: datetime) -> list[ScheduledTask]:
        """List pending tasks due at or before now, earliest first."""
        stmt = (
            select(ScheduledTaskRow)
            .where(ScheduledTaskRow.status == "pending", ScheduledTaskRow.scheduled_at <= now)
            .order_by(ScheduledTaskRow.scheduled_at.asc())
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [ScheduledTask.model_validate(row) for row in result.scalars().all()]

    async def update(self, task_id: uuid.UUID, changes: dict[str, Any]) -> ScheduledTask:
        """Apply field changes to a task.

        Args:
            task_id: The task UUID.
            changes: {column name: new value}.

        Returns:
            The updated ScheduledTask.

        Raises:
            NotFoundError: If not found.
        """
        async with session_scope(self._session_factory) as session:
            row = await session.get(ScheduledTaskRow, task_id)
            if row is None:
                raise NotFoundError(resource="ScheduledTask", resource_id=str(task_id))
            for column, value in changes.items():
                setattr(row, column, value)
            row.updated_at = datetime.now(UTC)
            await session.flush()
            return ScheduledTask.model_validate(row)

    async def delete(self, task_id: uuid.UUID) -> None:
        """Delete a task.

        Raises:
            NotFoundError: If not found.
        """
        async with session_scope(self._session_factory) as session:
            row = await session.get(ScheduledTaskRow, task_id)
            if row is None:
                raise NotFoundError(resource="ScheduledTask", resource_id=str(task_id))
            await session.delete(row)
