"""Configuration models for Archives.

Loaded once at process start and passed explicitly into the app factories
and the query executor. Every field can be overridden from the environment:

    ARCHIVES_CLICKHOUSE__URL=http://clickhouse:8123
    ARCHIVES_CLICKHOUSE__POOL_SIZE=20
    ARCHIVES_LIMITS__MAX_LIMIT=500
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClickHouseConfig(BaseModel):
    """Connection settings for the telemetry store."""

    url: str = Field(default="http://localhost:8123", description="ClickHouse HTTP endpoint")
    database: str = Field(default="default", description="Database holding the otel_* tables")
    username: str | None = Field(default=None, description="ClickHouse user")
    password: str | None = Field(default=None, description="ClickHouse password")

    pool_size: int = Field(
        default=10,
        gt=0,
        description="Maximum concurrent connections to the store",
    )
    pool_wait_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long a request may queue for a pooled connection",
    )
    query_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-query deadline; exceeded queries fail with StoreTimeout",
    )
    retry_backoff_seconds: float = Field(
        default=0.2,
        ge=0,
        description="Delay before the single retry of a failed connection attempt",
    )


class ApiConfig(BaseModel):
    """HTTP surface bind address."""

    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8080, description="Port to listen on")


class McpConfig(BaseModel):
    """Tool-invocation surface bind address."""

    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8081, description="Port to listen on")
    enabled: bool = Field(default=True, description="Whether the MCP surface is served")


class QueryLimits(BaseModel):
    """Server-side bounds applied by the query builder."""

    max_limit: int = Field(
        default=1000,
        gt=0,
        description="Clamp for any requested page size",
    )
    default_limit: int = Field(default=100, gt=0, description="Page size when none is given")
    pattern_length: int = Field(
        default=100,
        gt=0,
        description="Characters of the message body used as the error-summary grouping key",
    )
    tail_window_minutes: int = Field(
        default=10,
        gt=0,
        description="How far back tail requests look",
    )


class RetentionConfig(BaseModel):
    """TTL policy owned by the store; reported by status, never enforced here."""

    log_retention_days: int = Field(default=30, description="Log retention in days")
    metrics_retention_days: int = Field(default=90, description="Metrics retention in days")


class ArchivesConfig(BaseSettings):
    """Main configuration for the Archives query layer."""

    clickhouse: ClickHouseConfig = Field(default_factory=ClickHouseConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
    limits: QueryLimits = Field(default_factory=QueryLimits)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVES_",
        env_nested_delimiter="__",
    )


def load_config() -> ArchivesConfig:
    """Read configuration from the environment."""
    return ArchivesConfig()
