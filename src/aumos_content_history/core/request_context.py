"""Ambient request context for actor and network metadata.

The HTTP layer sets the context at the start of each request; AuditRecorder
reads it when building a record. Operations started outside a request (the
scheduled-task poller, scripts) have no context and their records omit actor
and network fields.

Context variables are copied into tasks created with asyncio.create_task, so
detached audit writes still see the context of the request that triggered
them.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RequestContext:
    """Who made the request and from where.

    Attributes:
        user_id: Identifier of the authenticated user, if any.
        user_email: Email of the authenticated user, if any.
        user_name: Username, falling back to first name, if any.
        ip_address: Client address as seen by the server.
        user_agent: Value of the User-Agent header.
    """

    user_id: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_user(
        cls,
        user: Any,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> "RequestContext":
        """Build a context from an authenticated user object or mapping.

        Accepts either attribute-style objects or dicts carrying id, email,
        username and firstname.

        Args:
            user: The authenticated user, or None for anonymous requests.
            ip_address: Client address.
            user_agent: User-Agent header value.

        Returns:
            A populated RequestContext.
        """
        if user is None:
            return cls(ip_address=ip_address, user_agent=user_agent)

        def _read(name: str) -> Any:
            if isinstance(user, dict):
                return user.get(name)
            return getattr(user, name, None)

        user_id = _read("id")
        return cls(
            user_id=str(user_id) if user_id is not None else None,
            user_email=_read("email"),
            user_name=_read("username") or _read("firstname"),
            ip_address=ip_address,
            user_agent=user_agent,
        )


_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_request_context() -> RequestContext | None:
    """Return the context of the current request, or None outside a request."""
    return _request_context.get()


@contextmanager
def request_context_scope(context: RequestContext) -> Iterator[RequestContext]:
    """Set the request context for the duration of a with-block.

    Args:
        context: The context to make ambient.

    Yields:
        The same context.
    """
    token = _request_context.set(context)
    try:
        yield context
    finally:
        _request_context.reset(token)
