"""Adapters — persistence for content history.

Contains:
- audit_store.py   — Audit DB engine/session and the append-only AuditRecordStore
- repositories.py  — SQLAlchemy ScheduledTaskRepository
- memory.py        — In-memory audit store and task repository
"""

__all__: list[str] = []
