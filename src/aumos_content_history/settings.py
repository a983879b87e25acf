"""Service settings for aumos-content-history.

Settings use the AUMOS_CONTENT_HISTORY_ prefix and cover:
- Logging
- Audit store (PostgreSQL, append-only)
- Snapshot redaction and populate planning
- Audit listing bounds
- Scheduled publish/unpublish task polling
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OMIT_FIELDS: list[str] = [
    "createdAt",
    "createdBy",
    "updatedAt",
    "updatedBy",
    "publishedAt",
    "users",
    "roles",
    "permissions",
]


class Settings(BaseSettings):
    """Settings for aumos-content-history.

    Environment variable prefix: AUMOS_CONTENT_HISTORY_
    List values are read as JSON, e.g.
    AUMOS_CONTENT_HISTORY_AUDIT_OMIT_FIELDS='["updatedAt","updatedBy"]'.
    """

    service_name: str = "aumos-content-history"
    environment: str = Field(
        default="production",
        description="production renders JSON logs; anything else renders console logs.",
    )
    log_level: str = Field(default="INFO", description="Minimum log level name.")

    # -------------------------------------------------------------------------
    # Audit store: append-only table of captured mutations
    # -------------------------------------------------------------------------

    audit_db_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/content_history",
        description="Async SQLAlchemy URL of the audit database. "
        "The DB user only needs INSERT and SELECT on content_history_audits.",
    )
    audit_db_pool_size: int = Field(
        default=5,
        description="Connection pool size for the audit DB. Audit writes are small and append-only.",
    )
    audit_db_max_overflow: int = Field(
        default=2,
        description="Max overflow connections above audit_db_pool_size.",
    )
    audit_db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for an audit DB connection before raising an error.",
    )
    audit_db_create_tables: bool = Field(
        default=False,
        description="Create the audit and task tables at startup if they do not exist.",
    )

    # -------------------------------------------------------------------------
    # Snapshot capture
    # -------------------------------------------------------------------------

    audit_omit_fields: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OMIT_FIELDS),
        description="Field names removed from snapshots at every nesting depth "
        "and never expanded by the populate planner.",
    )
    audit_schema_version: str = Field(
        default="1.0.0",
        description="Layout/redaction version stamped on every audit record.",
    )
    audit_content_type: str = Field(
        default="plugin::content-history.audit",
        description="Content type uid of audit records. Never audited itself.",
    )
    task_content_type: str = Field(
        default="plugin::content-history.task",
        description="Content type uid of scheduled tasks. Never audited.",
    )
    populate_cache_enabled: bool = Field(
        default=True,
        description="Memoize populate plans per content type until the schema changes.",
    )

    # -------------------------------------------------------------------------
    # Audit listing
    # -------------------------------------------------------------------------

    audit_page_size_default: int = Field(default=50, description="Default number of audits listed.")
    audit_page_size_max: int = Field(default=200, description="Upper bound on audits listed per call.")

    # -------------------------------------------------------------------------
    # Scheduled tasks
    # -------------------------------------------------------------------------

    task_poll_interval_seconds: float = Field(
        default=60.0,
        description="Seconds between runs of the pending-task poller. 0 disables the poller.",
    )

    model_config = SettingsConfigDict(env_prefix="AUMOS_CONTENT_HISTORY_")
