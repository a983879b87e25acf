"""Audit database connection and the append-only AuditRecordStore.

This module owns the async engine for AUMOS_CONTENT_HISTORY_AUDIT_DB_URL.
Audit writes run detached from the request that caused them, so the store
opens its own short-lived session per call instead of borrowing a request
session.

Key exports:
- init_audit_db(...)       — Call at startup to initialize the engine
- close_audit_db()         — Call at shutdown to dispose the engine
- session_scope(factory)   — Commit-or-rollback session context manager
- AuditRecordStore         — Append-only write + read operations
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from aumos_content_history.core.errors import NotFoundError
from aumos_content_history.core.models import AuditRecordRow, Base
from aumos_content_history.core.records import AuditRecord
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)

# Module-level engine, set by init_audit_db()
_audit_engine: AsyncEngine | None = None


async def init_audit_db(
    audit_db_url: str,
    pool_size: int = 5,
    max_overflow: int = 2,
    pool_timeout: int = 30,
    create_tables: bool = False,
) -> async_sessionmaker[AsyncSession]:
    """Initialize the audit database engine and session factory.

    Must be called once at application startup before any audit record can
    be written through AuditRecordStore.

    Args:
        audit_db_url: Async SQLAlchemy URL of the audit database.
        pool_size: Connection pool size.
        max_overflow: Max overflow connections above pool_size.
        pool_timeout: Seconds to wait for a connection before raising.
        create_tables: Create missing tables (audits and tasks).

    Returns:
        The session factory bound to the new engine.
    """
    global _audit_engine  # noqa: PLW0603

    logger.info("Initializing audit database engine", pool_size=pool_size, max_overflow=max_overflow)

    _audit_engine = create_async_engine(
        audit_db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        # Snapshot values must not reach the logs
        echo=False,
        pool_pre_ping=True,
    )

    if create_tables:
        async with _audit_engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("Audit database tables ensured")

    session_factory = async_sessionmaker(
        bind=_audit_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("Audit database engine initialized")
    return session_factory


async def close_audit_db() -> None:
    """Dispose the audit database engine.

    Must be called at application shutdown, after pending audit writes drained.
    """
    global _audit_engine  # noqa: PLW0603

    if _audit_engine is not None:
        logger.info("Disposing audit database engine")
        await _audit_engine.dispose()
        _audit_engine = None


@asynccontextmanager
async def session_scope(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error.

    Args:
        session_factory: Factory producing AsyncSession instances.

    Yields:
        AsyncSession: An open session.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


class AuditRecordStore:
    """Append-only store for AuditRecord on the audit database.

    It has no update() or delete() methods because audit records are
    immutable. In production the database role should hold only INSERT and
    SELECT grants on content_history_audits.

    Args:
        session_factory: Factory from init_audit_db().
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize AuditRecordStore with a session factory.

        Args:
            session_factory: Factory producing audit DB sessions.
        """
        self._session_factory = session_factory

    async def append(self, record: AuditRecord) -> AuditRecord:
        """Insert an immutable audit record.

        This is the ONLY write operation on the audit table.

        Args:
            record: The record to persist.

        Returns:
            The persisted record.
        """
        row = AuditRecordRow(**record.model_dump())
        async with session_scope(self._session_factory) as session:
            session.add(row)
            await session.flush()

        logger.debug(
            "Audit record persisted",
            audit_id=str(record.id),
            content_type=record.content_type,
            document_id=record.target_document_id,
        )
        return record

    async def list_for_target(
        self,
        content_type: str | None = None,
        document_id: str | None = None,
        limit: int = 50,
    ) -> list[AuditRecord]:
        """List audit records, most recent first.

        Args:
            content_type: Optional exact content type filter.
            document_id: Optional exact target_document_id filter.
            limit: Maximum number of records.

        Returns:
            AuditRecord list ordered by created_at descending.
        """
        stmt = select(AuditRecordRow)
        if content_type:
            stmt = stmt.where(AuditRecordRow.content_type == content_type)
        if document_id:
            stmt = stmt.where(AuditRecordRow.target_document_id == document_id)
        stmt = stmt.order_by(AuditRecordRow.created_at.desc()).limit(limit)

        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())
        return [AuditRecord.model_validate(row) for row in rows]

    async def get_by_id(self, record_id: uuid.UUID) -> AuditRecord:
        """Retrieve a single audit record by ID.

        Raises:
            NotFoundError: If not found.
        """
        stmt = select(AuditRecordRow).where(AuditRecordRow.id == record_id)
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource="AuditRecord", resource_id=str(record_id))
        return AuditRecord.model_validate(row)
