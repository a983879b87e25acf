"""Exception types raised by the content history service layer.

NotFoundError and ValidationError are the two failures the API surfaces to
callers (404 and 422). Everything raised on the audit capture path is logged
and swallowed instead (see AuditRecorder and ChangeInterceptor).
"""


class ContentHistoryError(Exception):
    """Base class for all content history errors."""


class NotFoundError(ContentHistoryError):
    """A requested resource does not exist.

    Args:
        resource: Name of the resource kind (e.g. "AuditRecord").
        resource_id: Identifier that was looked up.
        message: Optional override of the default message.
    """

    def __init__(self, resource: str, resource_id: str, message: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message or f"{resource} {resource_id} not found")


class ValidationError(ContentHistoryError):
    """Input or snapshot data was rejected.

    Document engines raise this from their update path when snapshot content no
    longer matches the content type schema.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
