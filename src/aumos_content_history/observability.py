"""Structured logging for aumos-content-history.

All modules obtain their logger through get_logger(__name__) and log an event
message with keyword context:

    logger = get_logger(__name__)
    logger.info("Audit record written", content_type=uid, operation="update")

configure_logging() is called once by the application factory. Production
renders JSON lines; every other environment renders colored console output.
Context bound with structlog.contextvars (for example per request) is merged
into every entry.

Snapshot payloads are never passed to the logger, only identifiers.
"""

import logging

import structlog
from structlog.typing import FilteringBoundLogger, Processor


def configure_logging(environment: str = "production", log_level: str = "INFO") -> None:
    """Configure structlog for the service.

    Args:
        environment: 'production' for JSON output, anything else for console output.
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Return a logger bound to the calling module's name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        A structlog logger accepting keyword context on every call.
    """
    return structlog.get_logger(name)
