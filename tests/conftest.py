"""Test fixtures for aumos-content-history.

Provides:
- schema_registry: article <-> author cyclic graph with a component, a dynamic
  zone and media fields
- engine: FakeDocumentEngine, an in-memory document engine that records the
  populate plans it receives and can be told to fail
- audit_store / task_repository: in-memory stores
- history: a fully wired HistoryHarness (pipeline + interceptor + services)
"""

import copy
import itertools
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest

from aumos_content_history.adapters.memory import InMemoryAuditRecordStore, InMemoryScheduledTaskRepository
from aumos_content_history.core.dispatch import BackgroundDispatcher
from aumos_content_history.core.errors import NotFoundError, ValidationError
from aumos_content_history.core.interceptor import ChangeInterceptor
from aumos_content_history.core.pipeline import DocumentPipeline, OperationContext
from aumos_content_history.core.populate import PopulateGraphPlanner
from aumos_content_history.core.records import AuditRecord
from aumos_content_history.core.schema import InMemorySchemaRegistry
from aumos_content_history.core.services import AuditRecorder, RestoreService, ScheduledTaskService
from aumos_content_history.settings import DEFAULT_OMIT_FIELDS

ARTICLE = "api::article.article"
AUTHOR = "api::author.author"
AUDIT_TYPE = "plugin::content-history.audit"
TASK_TYPE = "plugin::content-history.task"

CONTENT_TYPES: dict[str, dict[str, dict[str, Any]]] = {
    ARTICLE: {
        "title": {"type": "string"},
        "body": {"type": "richtext"},
        "author": {"type": "relation", "relation": "manyToOne", "target": AUTHOR},
        "seo": {"type": "component", "component": "shared.seo"},
        "blocks": {"type": "dynamiczone", "components": ["blocks.quote", "blocks.gallery"]},
        "cover": {"type": "media"},
        "updatedBy": {"type": "relation", "relation": "oneToOne", "target": "admin::user"},
    },
    AUTHOR: {
        "name": {"type": "string"},
        "articles": {"type": "relation", "relation": "oneToMany", "target": ARTICLE},
        "avatar": {"type": "media"},
    },
    "shared.seo": {
        "metaTitle": {"type": "string"},
    },
    "blocks.quote": {
        "text": {"type": "text"},
    },
    "blocks.gallery": {
        "images": {"type": "media", "multiple": True},
        "related": {"type": "relation", "relation": "oneToMany", "target": ARTICLE},
    },
    "admin::user": {
        "email": {"type": "email"},
    },
}


class FakeDocumentEngine:
    """In-memory document engine.

    Documents are stored already expanded; populate plans are recorded but
    not applied. Timestamps are a monotonically increasing counter so
    omitted fields change on every write.

    Attributes:
        documents: {uid: {documentId: document}}.
        fetch_calls: (uid, document_id, populate) for every fetch_expanded call.
        mutate_populates: params["populate"] as seen by every mutate call
            (the key is absent from the tuple when the params had none).
        fail_fetch: Make fetch_expanded raise.
        rejected_fields: Field names that make update raise ValidationError.
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.fetch_calls: list[tuple[str, str, Any]] = []
        self.mutate_populates: list[tuple[Any, ...]] = []
        self.fail_fetch = False
        self.rejected_fields: set[str] = set()
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def seed(self, uid: str, document: dict[str, Any]) -> dict[str, Any]:
        """Store a document directly, bypassing any pipeline."""
        stored = copy.deepcopy(document)
        stored.setdefault("documentId", f"doc-{next(self._ids)}")
        self.documents.setdefault(uid, {})[stored["documentId"]] = stored
        return copy.deepcopy(stored)

    def get(self, uid: str, document_id: str) -> dict[str, Any] | None:
        stored = self.documents.get(uid, {}).get(document_id)
        return copy.deepcopy(stored) if stored is not None else None

    async def fetch_expanded(
        self,
        uid: str,
        document_id: str,
        populate: Any,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        self.fetch_calls.append((uid, document_id, populate))
        if self.fail_fetch:
            raise ConnectionError("document engine unavailable")
        return self.get(uid, document_id)

    async def mutate(self, context: OperationContext) -> dict[str, Any] | None:
        self.mutate_populates.append(
            (context.action, copy.deepcopy(context.params["populate"]))
            if "populate" in context.params
            else (context.action,)
        )
        bucket = self.documents.setdefault(context.uid, {})
        stamp = f"t{next(self._clock)}"

        if context.action == "create":
            document = {
                "documentId": f"doc-{next(self._ids)}",
                **copy.deepcopy(context.params.get("data", {})),
                "createdAt": stamp,
                "updatedAt": stamp,
            }
            if context.params.get("locale"):
                document["locale"] = context.params["locale"]
            bucket[document["documentId"]] = document
            return copy.deepcopy(document)

        if context.action == "findOne":
            return self.get(context.uid, context.document_id)

        document_id = context.document_id
        if document_id not in bucket:
            raise NotFoundError(resource=context.uid, resource_id=str(document_id))

        if context.action == "update":
            data = context.params.get("data", {})
            rejected = self.rejected_fields.intersection(data)
            if rejected:
                raise ValidationError(f"Invalid key {sorted(rejected)[0]}")
            bucket[document_id].update(copy.deepcopy(data))
            bucket[document_id]["updatedAt"] = stamp
        elif context.action == "delete":
            return copy.deepcopy(bucket.pop(document_id))
        elif context.action == "publish":
            bucket[document_id]["publishedAt"] = stamp
        elif context.action == "unpublish":
            bucket[document_id]["publishedAt"] = None

        return copy.deepcopy(bucket[document_id])


@dataclass
class HistoryHarness:
    """Everything create_app() wires, without the HTTP layer."""

    engine: FakeDocumentEngine
    planner: PopulateGraphPlanner
    store: Any
    task_repository: InMemoryScheduledTaskRepository
    dispatcher: BackgroundDispatcher
    recorder: AuditRecorder
    pipeline: DocumentPipeline
    restore_service: RestoreService
    task_service: ScheduledTaskService

    async def records(self) -> list[AuditRecord]:
        """Wait for detached audit writes and return all records, oldest first."""
        await self.dispatcher.drain()
        return self.store.all_records()


def build_history(
    engine: FakeDocumentEngine,
    schema_registry: Any,
    store: Any = None,
    omit_fields: list[str] | None = None,
) -> HistoryHarness:
    """Wire a pipeline with the change interceptor over the given engine.

    Args:
        engine: Document engine.
        schema_registry: Schema registry for the planner.
        store: Audit store override (defaults to a fresh in-memory store).
        omit_fields: Redaction omit-set (defaults to the service default).

    Returns:
        The wired HistoryHarness.
    """
    omit = DEFAULT_OMIT_FIELDS if omit_fields is None else omit_fields
    store = store if store is not None else InMemoryAuditRecordStore()
    task_repository = InMemoryScheduledTaskRepository()
    dispatcher = BackgroundDispatcher()
    planner = PopulateGraphPlanner(schema_registry, omit_fields=omit)
    recorder = AuditRecorder(store, omit_fields=omit, schema_version="1.0.0")
    pipeline = DocumentPipeline(engine)
    pipeline.use(
        ChangeInterceptor(
            engine=engine,
            planner=planner,
            recorder=recorder,
            dispatcher=dispatcher,
            excluded_types=(AUDIT_TYPE, TASK_TYPE),
        )
    )
    return HistoryHarness(
        engine=engine,
        planner=planner,
        store=store,
        task_repository=task_repository,
        dispatcher=dispatcher,
        recorder=recorder,
        pipeline=pipeline,
        restore_service=RestoreService(pipeline, store),
        task_service=ScheduledTaskService(task_repository, pipeline),
    )


def make_record(
    content_type: str = ARTICLE,
    document_id: str = "doc-1",
    operation: str = "update",
    snapshot_after: dict[str, Any] | None = None,
    snapshot_before: dict[str, Any] | None = None,
    locale: str | None = None,
    created_at: datetime | None = None,
) -> AuditRecord:
    """Create an AuditRecord for store, restore and API tests."""
    return AuditRecord(
        schema_version="1.0.0",
        content_type=content_type,
        target_document_id=document_id,
        locale=locale,
        operation=operation,  # type: ignore[arg-type]
        snapshot_before=snapshot_before,
        snapshot_after=snapshot_after,
        created_at=created_at or datetime.now(UTC),
    )


@pytest.fixture()
def schema_registry() -> InMemorySchemaRegistry:
    """Return a registry with the cyclic article/author content types.

    Returns:
        InMemorySchemaRegistry built from CONTENT_TYPES.
    """
    return InMemorySchemaRegistry.from_definitions(CONTENT_TYPES)


@pytest.fixture()
def engine() -> FakeDocumentEngine:
    """Return an empty FakeDocumentEngine."""
    return FakeDocumentEngine()


@pytest.fixture()
def audit_store() -> InMemoryAuditRecordStore:
    """Return an empty in-memory audit store."""
    return InMemoryAuditRecordStore()


@pytest.fixture()
def task_repository() -> InMemoryScheduledTaskRepository:
    """Return an empty in-memory task repository."""
    return InMemoryScheduledTaskRepository()


@pytest.fixture()
def history(engine: FakeDocumentEngine, schema_registry: InMemorySchemaRegistry) -> HistoryHarness:
    """Return a fully wired HistoryHarness over the fake engine.

    Args:
        engine: Injected fake engine.
        schema_registry: Injected schema registry.

    Returns:
        HistoryHarness with in-memory stores.
    """
    return build_history(engine, schema_registry)


@pytest.fixture()
def task_id() -> uuid.UUID:
    """Return a random task UUID."""
    return uuid.uuid4()
