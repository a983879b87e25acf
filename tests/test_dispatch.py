"""Tests for BackgroundDispatcher and the ambient request context."""

import asyncio

import pytest

from aumos_content_history.core.dispatch import BackgroundDispatcher
from aumos_content_history.core.request_context import (
    RequestContext,
    get_request_context,
    request_context_scope,
)


class TestBackgroundDispatcher:
    """Tests for detached unit-of-work scheduling."""

    @pytest.mark.asyncio()
    async def test_submit_does_not_run_inline(self) -> None:
        """A submitted unit starts only after the submitter yields."""
        dispatcher = BackgroundDispatcher()
        ran: list[str] = []

        async def unit() -> None:
            ran.append("done")

        dispatcher.submit(unit, name="unit")

        assert ran == []
        assert dispatcher.pending == 1
        await dispatcher.drain()
        assert ran == ["done"]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio()
    async def test_failure_is_contained(self) -> None:
        """A failing unit is logged from the done callback and drain() still returns."""
        dispatcher = BackgroundDispatcher()

        async def failing() -> None:
            raise RuntimeError("boom")

        task = dispatcher.submit(failing, name="failing")
        await dispatcher.drain()

        assert task.done()
        assert isinstance(task.exception(), RuntimeError)
        assert dispatcher.pending == 0

    @pytest.mark.asyncio()
    async def test_drain_waits_for_units_submitted_meanwhile(self) -> None:
        """Units submitted by running units are drained too."""
        dispatcher = BackgroundDispatcher()
        ran: list[str] = []

        async def child() -> None:
            await asyncio.sleep(0)
            ran.append("child")

        async def parent() -> None:
            dispatcher.submit(child, name="child")
            ran.append("parent")

        dispatcher.submit(parent, name="parent")
        await dispatcher.drain()

        assert ran == ["parent", "child"]

    @pytest.mark.asyncio()
    async def test_context_copied_into_unit(self) -> None:
        """The submitter's request context is visible inside the unit after the scope ends."""
        dispatcher = BackgroundDispatcher()
        seen: list[RequestContext | None] = []

        async def unit() -> None:
            seen.append(get_request_context())

        context = RequestContext(user_id="1", ip_address="127.0.0.1")
        with request_context_scope(context):
            dispatcher.submit(unit, name="unit")
        await dispatcher.drain()

        assert seen == [context]
        assert get_request_context() is None


class TestRequestContext:
    """Tests for RequestContext.from_user()."""

    def test_from_user_object(self) -> None:
        """Attribute-style users are read the same as mappings."""

        class User:
            id = 3
            email = "a@example.com"
            username = "ada"
            firstname = "Ada"

        context = RequestContext.from_user(User(), ip_address="::1", user_agent="curl/8")

        assert context == RequestContext(
            user_id="3",
            user_email="a@example.com",
            user_name="ada",
            ip_address="::1",
            user_agent="curl/8",
        )

    def test_anonymous(self) -> None:
        """No user leaves actor fields empty but keeps network metadata."""
        context = RequestContext.from_user(None, ip_address="10.1.1.1")

        assert context.user_id is None
        assert context.user_name is None
        assert context.ip_address == "10.1.1.1"
