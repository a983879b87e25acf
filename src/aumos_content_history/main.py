"""AumOS Content History service entry point.

create_app() builds the FastAPI application around a host document engine and
schema registry:
- Document pipeline with the ChangeInterceptor installed
- Audit record store (PostgreSQL, or an injected store)
- Restore and scheduled-task services
- Request context middleware feeding actor/network metadata to audit records
- Scheduled task poller

The document engine and schema registry belong to the host platform and are
passed in; this service never owns document storage.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from aumos_content_history.adapters.audit_store import AuditRecordStore, close_audit_db, init_audit_db
from aumos_content_history.adapters.repositories import ScheduledTaskRepository
from aumos_content_history.api.router import router
from aumos_content_history.core.dispatch import BackgroundDispatcher
from aumos_content_history.core.interceptor import ChangeInterceptor
from aumos_content_history.core.interfaces import (
    IAuditRecordStore,
    IDocumentEngine,
    IScheduledTaskRepository,
    ISchemaRegistry,
)
from aumos_content_history.core.pipeline import DocumentPipeline
from aumos_content_history.core.populate import PopulateGraphPlanner
from aumos_content_history.core.request_context import RequestContext, request_context_scope
from aumos_content_history.core.services import AuditRecorder, RestoreService, ScheduledTaskService
from aumos_content_history.observability import configure_logging, get_logger
from aumos_content_history.settings import Settings

logger = get_logger(__name__)


class _LazyAuditStore:
    """Defers to the database-backed store once the lifespan has initialized it."""

    def __init__(self) -> None:
        self.target: IAuditRecordStore | None = None

    def __getattr__(self, name: str) -> Any:
        if self.target is None:
            raise RuntimeError("Audit database has not been initialized")
        return getattr(self.target, name)


class _LazyTaskRepository(_LazyAuditStore):
    """Same deferral for the scheduled task repository."""


async def run_task_poller(task_service: ScheduledTaskService, interval_seconds: float) -> None:
    """Process due scheduled tasks every interval_seconds until cancelled.

    Args:
        task_service: The scheduled task service.
        interval_seconds: Pause between runs.
    """
    while True:
        try:
            await task_service.process_pending_tasks()
        except Exception as exc:
            logger.error("Scheduled task poll failed", error=str(exc))
        await asyncio.sleep(interval_seconds)


def create_app(
    engine: IDocumentEngine,
    schema_registry: ISchemaRegistry,
    settings: Settings | None = None,
    audit_store: IAuditRecordStore | None = None,
    task_repository: IScheduledTaskRepository | None = None,
) -> FastAPI:
    """Build the content history application.

    When audit_store and task_repository are both given, no database is
    opened. Otherwise the lifespan initializes the audit database from
    settings and backs the missing ones with SQLAlchemy.

    Args:
        engine: The host document engine.
        schema_registry: The host schema registry.
        settings: Service settings; read from the environment when omitted.
        audit_store: Optional audit record store override.
        task_repository: Optional scheduled task repository override.

    Returns:
        The configured FastAPI application. The document pipeline is exposed
        as app.state.pipeline for the host to route its mutations through.
    """
    settings = settings or Settings()
    configure_logging(environment=settings.environment, log_level=settings.log_level)

    needs_database = audit_store is None or task_repository is None
    lazy_store = _LazyAuditStore() if audit_store is None else None
    lazy_tasks = _LazyTaskRepository() if task_repository is None else None
    store: Any = audit_store or lazy_store
    tasks: Any = task_repository or lazy_tasks

    dispatcher = BackgroundDispatcher()
    pipeline = DocumentPipeline(engine)
    planner = PopulateGraphPlanner(
        schema_registry,
        omit_fields=settings.audit_omit_fields,
        cache=settings.populate_cache_enabled,
    )
    recorder = AuditRecorder(
        store,
        omit_fields=settings.audit_omit_fields,
        schema_version=settings.audit_schema_version,
        default_page_size=settings.audit_page_size_default,
        max_page_size=settings.audit_page_size_max,
    )
    pipeline.use(
        ChangeInterceptor(
            engine=engine,
            planner=planner,
            recorder=recorder,
            dispatcher=dispatcher,
            excluded_types=(settings.audit_content_type, settings.task_content_type),
        )
    )
    restore_service = RestoreService(pipeline, store)
    task_service = ScheduledTaskService(tasks, pipeline)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown lifecycle.

        Initializes the audit database when needed and starts the task poller
        on startup. On shutdown stops the poller, drains pending audit writes
        and closes the database.

        Args:
            app: The FastAPI application instance.

        Yields:
            None
        """
        if needs_database:
            logger.info("Initializing audit database", service=settings.service_name)
            session_factory = await init_audit_db(
                audit_db_url=settings.audit_db_url,
                pool_size=settings.audit_db_pool_size,
                max_overflow=settings.audit_db_max_overflow,
                pool_timeout=settings.audit_db_pool_timeout,
                create_tables=settings.audit_db_create_tables,
            )
            if lazy_store is not None:
                lazy_store.target = AuditRecordStore(session_factory)
            if lazy_tasks is not None:
                lazy_tasks.target = ScheduledTaskRepository(session_factory)

        poller: asyncio.Task[None] | None = None
        if settings.task_poll_interval_seconds > 0:
            poller = asyncio.create_task(
                run_task_poller(task_service, settings.task_poll_interval_seconds),
                name="scheduled-task-poller",
            )

        logger.info("Content history startup complete", service=settings.service_name)

        yield

        logger.info("Shutting down content history")
        if poller is not None:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller
        await dispatcher.drain()
        if needs_database:
            await close_audit_db()
        logger.info("Content history shutdown complete")

    app = FastAPI(title="aumos-content-history", version="0.1.0", lifespan=lifespan)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next: Any) -> Any:
        """Make the caller's identity and address ambient for audit records."""
        context = RequestContext.from_user(
            getattr(request.state, "user", None),
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        with request_context_scope(context):
            return await call_next(request)

    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.dispatcher = dispatcher
    app.state.planner = planner
    app.state.audit_recorder = recorder
    app.state.restore_service = restore_service
    app.state.task_service = task_service

    app.include_router(router, prefix="/api/v1")
    return app
