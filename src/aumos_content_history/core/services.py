"""Core business logic services for content history.

Three service classes:
- AuditRecorder: Builds, redacts and persists audit records; lists them
- RestoreService: Re-applies a historical snapshot through the update path
- ScheduledTaskService: Scheduled publish/unpublish task lifecycle and execution

All services are async-first. They accept injected stores and the document
pipeline through their constructors and contain no framework code.
AuditRecorder is the single point of entry for audit writes; it is called
detached from ChangeInterceptor and never raises.
"""

import json
import uuid
from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any

from aumos_content_history.core.errors import NotFoundError, ValidationError
from aumos_content_history.core.interfaces import IAuditRecordStore, IScheduledTaskRepository
from aumos_content_history.core.pipeline import DocumentPipeline
from aumos_content_history.core.records import (
    UNKNOWN_DOCUMENT_ID,
    AuditRecord,
    ScheduledTask,
    TaskDocument,
    TaskResult,
)
from aumos_content_history.core.redaction import redact
from aumos_content_history.core.request_context import get_request_context
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)


def _to_json(value: Any) -> Any:
    """Round-trip a value through JSON so snapshots hold plain data only."""
    return json.loads(json.dumps(value, default=str))


def _document_id(state: Any) -> str | None:
    if isinstance(state, dict) and state.get("documentId") is not None:
        return str(state["documentId"])
    return None


class AuditRecorder:
    """Append-only audit record write orchestration.

    IMPORTANT: This service contains NO update or delete operations. Each
    capture() appends exactly one new record.

    Args:
        store: Append-only audit record store.
        omit_fields: Field names removed from snapshots at every depth.
        schema_version: Layout version stamped on each record.
        default_page_size: list_records() limit when none is given.
        max_page_size: Upper bound on list_records() limit.
    """

    def __init__(
        self,
        store: IAuditRecordStore,
        omit_fields: Collection[str],
        schema_version: str,
        default_page_size: int = 50,
        max_page_size: int = 200,
    ) -> None:
        """Initialize AuditRecorder with its store and redaction settings.

        Args:
            store: Store implementing IAuditRecordStore.
            omit_fields: Redaction omit-set.
            schema_version: Record layout version.
            default_page_size: Listed records when no limit is given.
            max_page_size: Upper bound on listed records.
        """
        self._store = store
        self._omit_fields = frozenset(omit_fields)
        self._schema_version = schema_version
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    @property
    def max_page_size(self) -> int:
        """Largest page list_records() will return."""
        return self._max_page_size

    def snapshot(self, state: Any) -> Any:
        """Return the redacted, JSON-normalised copy of a document state.

        Args:
            state: The document as returned by the engine, or None.

        Returns:
            None for None, otherwise plain JSON data with omitted fields removed.
        """
        if state is None:
            return None
        return redact(_to_json(state), self._omit_fields)

    async def capture(
        self,
        uid: str,
        action: str,
        before: Any,
        after: Any,
        params: dict[str, Any] | None = None,
    ) -> AuditRecord | None:
        """Build and persist the audit record for one mutation.

        Best-effort: any failure is logged and swallowed. Actor and network
        fields come from the ambient request context and are left empty for
        operations started outside a request.

        Args:
            uid: Content type of the mutated document.
            action: Operation kind.
            before: Document state before the mutation, or None.
            after: Document state after the mutation, or None.
            params: The operation params (locale is read from here first).

        Returns:
            The stored AuditRecord, or None if recording failed.
        """
        try:
            request_context = get_request_context()
            locale = (params or {}).get("locale")
            if locale is None and isinstance(after, dict):
                locale = after.get("locale")

            record = AuditRecord(
                schema_version=self._schema_version,
                content_type=uid,
                target_document_id=_document_id(after) or _document_id(before) or UNKNOWN_DOCUMENT_ID,
                locale=locale,
                operation=action,  # type: ignore[arg-type]
                operation_status="success",
                operation_user_id=request_context.user_id if request_context else None,
                operation_user_email=request_context.user_email if request_context else None,
                operation_user_name=request_context.user_name if request_context else None,
                snapshot_before=self.snapshot(before),
                snapshot_after=self.snapshot(after),
                ip_address=request_context.ip_address if request_context else None,
                user_agent=request_context.user_agent if request_context else None,
                created_at=datetime.now(UTC),
            )
            stored = await self._store.append(record)
        except Exception as exc:
            logger.error(
                "Failed to write audit record",
                content_type=uid,
                operation=action,
                error=str(exc),
                exc_info=exc,
            )
            return None

        logger.info(
            "Audit record written",
            audit_id=str(stored.id),
            content_type=uid,
            document_id=stored.target_document_id,
            operation=action,
        )
        return stored

    async def list_records(
        self,
        content_type: str | None = None,
        document_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        """List audit records, most recent first.

        Args:
            content_type: Optional content type filter.
            document_id: Optional target document filter.
            limit: Requested number of records, clamped to max_page_size.
                Defaults to default_page_size.

        Returns:
            Matching records ordered by created_at descending.
        """
        requested = self._default_page_size if limit is None else limit
        bounded = max(1, min(requested, self._max_page_size))
        return await self._store.list_for_target(
            content_type=content_type,
            document_id=document_id,
            limit=bounded,
        )


class RestoreService:
    """Restores documents from audit record snapshots.

    Restoring writes the record's after-snapshot through the pipeline's update
    path, so the restore is itself audited. Fields in the redaction omit-set
    are not in the snapshot and keep their current values.

    Args:
        pipeline: Document pipeline used for the update.
        store: Audit record store for restore_by_id().
    """

    def __init__(self, pipeline: DocumentPipeline, store: IAuditRecordStore) -> None:
        self._pipeline = pipeline
        self._store = store

    async def restore(self, uid: str, document_id: str, record: AuditRecord | None) -> Any:
        """Apply a record's after-snapshot to a document.

        Args:
            uid: Content type of the document to restore.
            document_id: documentId of the document to restore.
            record: The chosen audit record.

        Returns:
            The updated document as returned by the update path.

        Raises:
            NotFoundError: If no record was supplied or it has no after-snapshot.
            ValidationError: If the record belongs to another document.
            Exception: Whatever the update path raises, unchanged (for example
                ValidationError when the schema changed since the snapshot).
        """
        if record is None:
            raise NotFoundError(
                resource="AuditRecord",
                resource_id=document_id,
                message=f"No snapshot selected for {uid} {document_id}",
            )
        if record.content_type != uid or record.target_document_id != document_id:
            raise ValidationError(
                f"Audit record {record.id} belongs to {record.content_type} "
                f"{record.target_document_id}, not {uid} {document_id}"
            )
        if not record.snapshot_after:
            raise NotFoundError(
                resource="AuditRecord snapshot",
                resource_id=str(record.id),
                message=f"Audit record {record.id} has no snapshot to restore",
            )

        logger.info(
            "Restoring document from snapshot",
            content_type=uid,
            document_id=document_id,
            audit_id=str(record.id),
        )
        extra: dict[str, Any] = {"locale": record.locale} if record.locale else {}
        try:
            return await self._pipeline.update(uid, document_id, data=dict(record.snapshot_after), **extra)
        except Exception as exc:
            logger.error(
                "Restore rejected by update path",
                content_type=uid,
                document_id=document_id,
                audit_id=str(record.id),
                error=str(exc),
            )
            raise

    async def restore_by_id(self, uid: str, document_id: str, audit_id: uuid.UUID) -> Any:
        """Load an audit record by id and restore from it.

        Raises:
            NotFoundError: If the record does not exist or has no snapshot.
        """
        record = await self._store.get_by_id(audit_id)
        return await self.restore(uid, document_id, record)


class ScheduledTaskService:
    """Scheduled publish/unpublish tasks.

    A task is a named batch of documents with a due time. Executing a task runs
    each publish/unpublish through the document pipeline, so each one is
    audited like an interactive change (without actor fields).

    Args:
        task_repo: Repository implementing IScheduledTaskRepository.
        pipeline: Document pipeline used to publish and unpublish.
    """

    def __init__(self, task_repo: IScheduledTaskRepository, pipeline: DocumentPipeline) -> None:
        """Initialize ScheduledTaskService with injected dependencies.

        Args:
            task_repo: Task persistence.
            pipeline: Document pipeline.
        """
        self._task_repo = task_repo
        self._pipeline = pipeline

    async def create_task(
        self,
        name: str,
        documents: list[TaskDocument],
        scheduled_at: datetime,
    ) -> ScheduledTask:
        """Create a pending task.

        Args:
            name: Task name. Must not be blank.
            documents: Documents to publish or unpublish.
            scheduled_at: When the task becomes due.

        Returns:
            The created ScheduledTask.

        Raises:
            ValidationError: If name is blank.
        """
        if not name.strip():
            raise ValidationError("Task name must not be blank")

        task = await self._task_repo.create(
            name=name,
            documents=[document.model_dump() for document in documents],
            scheduled_at=scheduled_at,
        )
        logger.info(
            "Scheduled task created",
            task_id=str(task.id),
            document_count=len(documents),
            scheduled_at=scheduled_at.isoformat(),
        )
        return task

    async def get_task(self, task_id: uuid.UUID) -> ScheduledTask:
        """Retrieve a task by ID.

        Raises:
            NotFoundError: If not found.
        """
        return await self._task_repo.get_by_id(task_id)

    async def list_tasks(self, status_filter: str | None = None) -> list[ScheduledTask]:
        """List tasks, optionally only those in one status."""
        return await self._task_repo.list_all(status_filter=status_filter)

    async def update_task(
        self,
        task_id: uuid.UUID,
        name: str | None = None,
        documents: list[TaskDocument] | None = None,
        scheduled_at: datetime | None = None,
        status: str | None = None,
    ) -> ScheduledTask:
        """Apply a partial update. Fields left as None are unchanged.

        Raises:
            NotFoundError: If not found.
        """
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if documents is not None:
            changes["documents"] = [document.model_dump() for document in documents]
        if scheduled_at is not None:
            changes["scheduled_at"] = scheduled_at
        if status is not None:
            changes["status"] = status

        task = await self._task_repo.update(task_id, changes)
        logger.info("Scheduled task updated", task_id=str(task_id), fields=sorted(changes))
        return task

    async def delete_task(self, task_id: uuid.UUID) -> None:
        """Delete a task.

        Raises:
            NotFoundError: If not found.
        """
        await self._task_repo.delete(task_id)
        logger.info("Scheduled task deleted", task_id=str(task_id))

    async def execute(self, task_id: uuid.UUID) -> list[TaskResult] | None:
        """Execute a pending task.

        Each document is processed independently; a failing document is
        recorded in the results and does not stop the others. The task ends
        completed (no failures), failed (no successes) or partial.

        Args:
            task_id: The task to execute.

        Returns:
            Per-document results, or None if the task was not pending.

        Raises:
            NotFoundError: If the task does not exist.
            ValidationError: If the task has no documents (task is marked failed).
        """
        task = await self._task_repo.get_by_id(task_id)
        if task.status != "pending":
            logger.warning("Scheduled task is not pending, skipping", task_id=str(task_id), status=task.status)
            return None

        try:
            if not task.documents:
                raise ValidationError(f"Task {task_id} has no documents to process")

            logger.info("Executing scheduled task", task_id=str(task_id), document_count=len(task.documents))

            results: list[TaskResult] = []
            for document in task.documents:
                results.append(await self._run_document(document))

            success_count = sum(1 for result in results if result.success)
            failure_count = len(results) - success_count
            if failure_count == 0:
                status = "completed"
            elif success_count == 0:
                status = "failed"
            else:
                status = "partial"

            await self._task_repo.update(
                task_id,
                {
                    "status": status,
                    "executed_at": datetime.now(UTC),
                    "results": [result.model_dump() for result in results],
                },
            )
            logger.info(
                "Scheduled task finished",
                task_id=str(task_id),
                status=status,
                succeeded=success_count,
                failed=failure_count,
            )
            return results
        except Exception as exc:
            logger.error("Scheduled task failed", task_id=str(task_id), error=str(exc))
            await self._task_repo.update(
                task_id,
                {
                    "status": "failed",
                    "executed_at": datetime.now(UTC),
                    "error_message": str(exc),
                },
            )
            raise

    async def process_pending_tasks(self, now: datetime | None = None) -> int:
        """Execute every pending task that is due, earliest first.

        A failing task is logged and does not stop the others.

        Args:
            now: Reference time; defaults to the current UTC time.

        Returns:
            Number of due tasks found.
        """
        due_tasks = await self._task_repo.list_due(now or datetime.now(UTC))
        logger.info("Found pending scheduled tasks", count=len(due_tasks))

        for task in due_tasks:
            try:
                await self.execute(task.id)
            except Exception as exc:
                logger.error("Failed to execute scheduled task", task_id=str(task.id), error=str(exc))

        return len(due_tasks)

    async def _run_document(self, document: TaskDocument) -> TaskResult:
        extra: dict[str, Any] = {"locale": document.locale} if document.locale else {}
        try:
            if document.operation == "publish":
                await self._pipeline.publish(document.content_type, document.document_id, **extra)
            else:
                await self._pipeline.unpublish(document.content_type, document.document_id, **extra)
        except Exception as exc:
            logger.error(
                "Scheduled document operation failed",
                content_type=document.content_type,
                document_id=document.document_id,
                operation=document.operation,
                error=str(exc),
            )
            return TaskResult(
                content_type=document.content_type,
                document_id=document.document_id,
                operation=document.operation,
                success=False,
                error=str(exc),
            )

        return TaskResult(
            content_type=document.content_type,
            document_id=document.document_id,
            operation=document.operation,
            success=True,
        )
