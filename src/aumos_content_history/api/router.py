"""API router for aumos-content-history.

Endpoints are registered here and included by the application factory under
the /api/v1 prefix. Routes are thin; all business logic lives in the service
layer. Services are wired once by create_app() and read from app.state.

Endpoints:
- GET         /audits               — List audit records for a document, newest first
- POST        /audits/restore       — Restore a document from an audit record
- GET/POST    /tasks                — List / create scheduled tasks
- GET         /tasks/{id}           — Get a scheduled task
- PUT         /tasks/{id}           — Update a scheduled task
- DELETE      /tasks/{id}           — Delete a scheduled task
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from aumos_content_history.api.schemas import (
    AuditRecordResponse,
    RestoreRequest,
    RestoreResponse,
    TaskCreateRequest,
    TaskDeleteResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from aumos_content_history.core.errors import NotFoundError, ValidationError
from aumos_content_history.core.services import AuditRecorder, RestoreService, ScheduledTaskService
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["content-history"])


# ---------------------------------------------------------------------------
# Dependency providers (services are wired by create_app())
# ---------------------------------------------------------------------------


def get_audit_recorder(request: Request) -> AuditRecorder:
    """Return the application's AuditRecorder."""
    return request.app.state.audit_recorder


def get_restore_service(request: Request) -> RestoreService:
    """Return the application's RestoreService."""
    return request.app.state.restore_service


def get_task_service(request: Request) -> ScheduledTaskService:
    """Return the application's ScheduledTaskService."""
    return request.app.state.task_service


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ---------------------------------------------------------------------------
# Audit endpoints
# ---------------------------------------------------------------------------


@router.get("/audits", response_model=list[AuditRecordResponse])
async def list_audits(
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    content_type: str | None = Query(default=None, description="Filter by content type uid"),
    document_id: str | None = Query(default=None, description="Filter by target documentId"),
    limit: int | None = Query(default=None, ge=1, description="Maximum number of records"),
) -> list[AuditRecordResponse]:
    """List audit records, most recent first.

    Args:
        recorder: Injected AuditRecorder.
        content_type: Optional content type filter.
        document_id: Optional document filter.
        limit: Page size; the configured default when omitted.

    Returns:
        Audit records ordered by capture time descending.

    Raises:
        HTTPException: 422 if limit exceeds the configured maximum page size.
    """
    if limit is not None and limit > recorder.max_page_size:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must be at most {recorder.max_page_size}",
        )
    records = await recorder.list_records(content_type=content_type, document_id=document_id, limit=limit)
    return [AuditRecordResponse.model_validate(record) for record in records]


@router.post("/audits/restore", response_model=RestoreResponse)
async def restore_from_audit(
    body: RestoreRequest,
    service: Annotated[RestoreService, Depends(get_restore_service)],
) -> RestoreResponse:
    """Restore a document to the state captured in an audit record.

    Args:
        body: Target document and chosen audit record.
        service: Injected RestoreService.

    Returns:
        The restored document.

    Raises:
        HTTPException 404: If the audit record or its snapshot does not exist.
        HTTPException 422: If the update path rejected the snapshot data.
    """
    try:
        document = await service.restore_by_id(body.content_type, body.document_id, body.audit_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Snapshot could not be restored: {exc.message}",
        ) from exc

    return RestoreResponse(
        content_type=body.content_type,
        document_id=body.document_id,
        audit_id=body.audit_id,
        document=document if isinstance(document, dict) else None,
    )


# ---------------------------------------------------------------------------
# Scheduled task endpoints
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    service: Annotated[ScheduledTaskService, Depends(get_task_service)],
    task_status: str | None = Query(default=None, alias="status", description="Filter by task status"),
) -> list[TaskResponse]:
    """List scheduled tasks ordered by due time."""
    tasks = await service.list_tasks(status_filter=task_status)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: uuid.UUID,
    service: Annotated[ScheduledTaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Get a scheduled task by ID.

    Raises:
        HTTPException 404: If the task does not exist.
    """
    try:
        task = await service.get_task(task_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return TaskResponse.model_validate(task)


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreateRequest,
    service: Annotated[ScheduledTaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Create a pending scheduled task."""
    try:
        task = await service.create_task(name=body.name, documents=body.documents, scheduled_at=body.scheduled_at)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    return TaskResponse.model_validate(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdateRequest,
    service: Annotated[ScheduledTaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Partially update a scheduled task.

    Raises:
        HTTPException 404: If the task does not exist.
    """
    try:
        task = await service.update_task(
            task_id,
            name=body.name,
            documents=body.documents,
            scheduled_at=body.scheduled_at,
            status=body.status,
        )
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return TaskResponse.model_validate(task)


@router.delete("/tasks/{task_id}", response_model=TaskDeleteResponse)
async def delete_task(
    task_id: uuid.UUID,
    service: Annotated[ScheduledTaskService, Depends(get_task_service)],
) -> TaskDeleteResponse:
    """Delete a scheduled task.

    Raises:
        HTTPException 404: If the task does not exist.
    """
    try:
        await service.delete_task(task_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return TaskDeleteResponse()
