"""Document pipeline — the host's mutation path with middleware support.

Every document operation is described by an OperationContext and run through
the registered middlewares in registration order. Each middleware receives the
context and a proceed callable for the rest of the chain; the innermost step
is the engine's mutate().

    pipeline = DocumentPipeline(engine)
    pipeline.use(change_interceptor)
    await pipeline.update("api::article.article", "abc123", data={"title": "New"})

Reads used for snapshots go straight to the engine (fetch_expanded) and never
enter this pipeline.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from aumos_content_history.core.interfaces import IDocumentEngine

Proceed = Callable[["OperationContext"], Awaitable[Any]]
Middleware = Callable[["OperationContext", Proceed], Awaitable[Any]]


@dataclass
class OperationContext:
    """A document operation in flight.

    Attributes:
        action: Operation name (create, update, delete, publish, unpublish, findOne, ...).
        uid: Content type identifier.
        params: Operation parameters (documentId, data, locale, populate).
            Middlewares may modify params before proceeding.
    """

    action: str
    uid: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> str | None:
        """The target documentId, if the operation has one."""
        return self.params.get("documentId")


class DocumentPipeline:
    """Runs document operations through a middleware chain.

    Args:
        engine: The document engine performing the operations.
    """

    def __init__(self, engine: IDocumentEngine) -> None:
        self._engine = engine
        self._middlewares: list[Middleware] = []

    def use(self, middleware: Middleware) -> None:
        """Append a middleware. Earlier registrations run outermost."""
        self._middlewares.append(middleware)

    async def run(self, context: OperationContext) -> Any:
        """Run one operation through every middleware and the engine.

        Args:
            context: The operation to perform.

        Returns:
            Whatever the chain returns, normally the engine's result.
        """

        async def dispatch(index: int, ctx: OperationContext) -> Any:
            if index == len(self._middlewares):
                return await self._engine.mutate(ctx)
            return await self._middlewares[index](ctx, lambda next_ctx: dispatch(index + 1, next_ctx))

        return await dispatch(0, context)

    async def create(self, uid: str, data: dict[str, Any], **params: Any) -> Any:
        return await self.run(OperationContext("create", uid, {"data": data, **params}))

    async def update(self, uid: str, document_id: str, data: dict[str, Any], **params: Any) -> Any:
        return await self.run(OperationContext("update", uid, {"documentId": document_id, "data": data, **params}))

    async def delete(self, uid: str, document_id: str, **params: Any) -> Any:
        return await self.run(OperationContext("delete", uid, {"documentId": document_id, **params}))

    async def publish(self, uid: str, document_id: str, **params: Any) -> Any:
        return await self.run(OperationContext("publish", uid, {"documentId": document_id, **params}))

    async def unpublish(self, uid: str, document_id: str, **params: Any) -> Any:
        return await self.run(OperationContext("unpublish", uid, {"documentId": document_id, **params}))

    async def find_one(self, uid: str, document_id: str, **params: Any) -> Any:
        return await self.run(OperationContext("findOne", uid, {"documentId": document_id, **params}))
