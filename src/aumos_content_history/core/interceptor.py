"""Change interceptor — around-middleware that captures document history.

For every audited operation the interceptor:

1. passes audit records and scheduled tasks straight through (never audits itself);
2. passes non-mutating actions straight through;
3. fetches the fully expanded before state for update/delete/publish/unpublish;
4. injects the populate plan into the operation so its own result is already
   fully expanded, restoring the caller's populate request afterwards;
5. runs the operation;
6. hands before/after to the AuditRecorder as a detached unit and returns.

Nothing on the capture path can fail the operation: plan and fetch errors are
logged and the snapshot is left empty. The after state is copied before the
caller gets the result back, so later edits to it never reach the record.
Recording itself runs after the caller has its result. The before fetch
always completes before the operation starts. Concurrent mutations of the
same document are not serialised, so their records may interleave.
"""

import copy
from collections.abc import Collection
from typing import Any

from aumos_content_history.core.dispatch import BackgroundDispatcher
from aumos_content_history.core.interfaces import IDocumentEngine
from aumos_content_history.core.pipeline import OperationContext, Proceed
from aumos_content_history.core.populate import PopulateGraphPlanner, PopulatePlan, merge_populate
from aumos_content_history.core.records import AUDITED_OPERATIONS, BEFORE_STATE_OPERATIONS
from aumos_content_history.core.services import AuditRecorder
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)


class ChangeInterceptor:
    """Document pipeline middleware producing one audit record per mutation.

    Register with DocumentPipeline.use(interceptor); the instance is itself
    the middleware callable.

    Args:
        engine: Document engine used for the before fetch.
        planner: Populate planner for the before fetch and result expansion.
        recorder: Builds and persists the audit record.
        dispatcher: Runs recording detached from the caller.
        excluded_types: Content type uids passed through unaudited.
    """

    def __init__(
        self,
        engine: IDocumentEngine,
        planner: PopulateGraphPlanner,
        recorder: AuditRecorder,
        dispatcher: BackgroundDispatcher,
        excluded_types: Collection[str] = (),
    ) -> None:
        self._engine = engine
        self._planner = planner
        self._recorder = recorder
        self._dispatcher = dispatcher
        self._excluded_types = frozenset(excluded_types)

    async def __call__(self, context: OperationContext, proceed: Proceed) -> Any:
        return await self.intercept(context, proceed)

    async def intercept(self, context: OperationContext, proceed: Proceed) -> Any:
        """Run one operation with history capture around it.

        Args:
            context: The operation in flight.
            proceed: The rest of the pipeline.

        Returns:
            The operation's own result, unchanged.

        Raises:
            Exception: Whatever proceed raises. Nothing is recorded in that case.
        """
        if context.uid in self._excluded_types:
            return await proceed(context)

        if context.action not in AUDITED_OPERATIONS:
            return await proceed(context)

        plan = self._build_plan(context.uid)

        before: dict[str, Any] | None = None
        if context.action in BEFORE_STATE_OPERATIONS and context.document_id:
            before = await self._fetch_before(context, plan)

        had_populate = "populate" in context.params
        requested_populate = context.params.get("populate")
        context.params["populate"] = merge_populate(requested_populate, plan)
        try:
            result = await proceed(context)
        finally:
            if had_populate:
                context.params["populate"] = requested_populate
            else:
                context.params.pop("populate", None)

        after = None if context.action == "delete" else self._copy_after(context, result)
        uid = context.uid
        action = context.action
        params = dict(context.params)

        self._dispatcher.submit(
            lambda: self._recorder.capture(uid=uid, action=action, before=before, after=after, params=params),
            name=f"audit:{action}:{uid}",
        )
        return result

    def _copy_after(self, context: OperationContext, result: Any) -> Any:
        try:
            return copy.deepcopy(result)
        except Exception as exc:
            logger.warning(
                "After snapshot copy failed, recording without it",
                content_type=context.uid,
                document_id=context.document_id,
                error=str(exc),
            )
            return None

    def _build_plan(self, uid: str) -> PopulatePlan:
        try:
            return self._planner.plan(uid)
        except Exception as exc:
            logger.warning("Populate plan failed, falling back to full populate", content_type=uid, error=str(exc))
            return True

    async def _fetch_before(self, context: OperationContext, plan: PopulatePlan) -> dict[str, Any] | None:
        try:
            return await self._engine.fetch_expanded(
                context.uid,
                context.document_id,
                plan,
                locale=context.params.get("locale"),
            )
        except Exception as exc:
            logger.warning(
                "Before snapshot fetch failed, recording without it",
                content_type=context.uid,
                document_id=context.document_id,
                operation=context.action,
                error=str(exc),
            )
            return None
