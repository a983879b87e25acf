"""Detached unit-of-work runner.

Audit persistence must never add latency to the request that triggered it.
BackgroundDispatcher schedules each unit as an asyncio task and returns
immediately; the unit runs once the current coroutine yields to the loop.

Tasks are kept in a set until done so they are not garbage collected
mid-flight. Failures are logged from the done callback and never reach the
submitter. A unit still pending when the process dies is lost; drain() at
shutdown narrows that window but persistence is best-effort by contract.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from aumos_content_history.observability import get_logger

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Fire-and-forget scheduler for coroutine factories."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of submitted units that have not finished yet."""
        return len(self._tasks)

    def submit(self, factory: Callable[[], Awaitable[Any]], name: str) -> asyncio.Task[Any]:
        """Schedule factory() to run detached from the caller.

        Context variables of the caller are copied into the task.

        Args:
            factory: Zero-argument callable returning the awaitable to run.
            name: Task name used in logs.

        Returns:
            The scheduled task. Callers normally ignore it.
        """

        async def _run() -> Any:
            return await factory()

        task = asyncio.get_running_loop().create_task(_run(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self) -> None:
        """Wait until every submitted unit, including ones submitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background unit cancelled", task_name=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background unit failed",
                task_name=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )
