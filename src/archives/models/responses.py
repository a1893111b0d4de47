"""Pydantic response models shared by the HTTP and tool surfaces.

Every model is frozen: a LogRecord is a snapshot of a stored event and is
never mutated after the mapper builds it. Timestamps are ISO 8601 strings.
"""

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# LOGS
# =============================================================================


class LogRecord(BaseModel):
    """A single row of ``otel_logs``."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    observed_timestamp: str
    trace_id: str | None = None
    span_id: str | None = None
    severity: str = Field(description="Normalized severity name, TRACE..FATAL")
    severity_number: int = Field(default=0, description="OTel severity number as stored")
    severity_text: str = Field(default="", description="Severity text as emitted by the source")
    body: str = ""
    resource_attributes: dict[str, str] = Field(default_factory=dict)
    log_attributes: dict[str, str] = Field(default_factory=dict)
    service_name: str | None = None


class LogSearchResponse(BaseModel):
    """POST /v1/logs/search and /v1/logs/tail; also the search_logs/tail_logs tool result."""

    model_config = ConfigDict(frozen=True)

    count: int
    logs: list[LogRecord] = Field(default_factory=list)


# =============================================================================
# ERROR SUMMARY
# =============================================================================


class ErrorPattern(BaseModel):
    """One grouped error pattern with its frequency."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    count: int
    example: str


class ErrorSummary(BaseModel):
    """Error patterns ordered by count descending, then pattern ascending."""

    model_config = ConfigDict(frozen=True)

    total_errors: int
    time_range_hours: float
    top_patterns: list[ErrorPattern] = Field(default_factory=list)


# =============================================================================
# METRICS
# =============================================================================


class MetricPoint(BaseModel):
    """One populated bucket. Empty buckets are omitted, never zero-filled."""

    model_config = ConfigDict(frozen=True)

    bucket_timestamp: str
    aggregated_value: float


class MetricQueryResponse(BaseModel):
    """POST /v1/metrics/query; also the query_metrics tool result."""

    model_config = ConfigDict(frozen=True)

    metric_name: str
    aggregation: str
    interval_seconds: int
    data_points: int
    data: list[MetricPoint] = Field(default_factory=list)


class MetricNamesResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    names: list[str] = Field(default_factory=list)


# =============================================================================
# HEALTH / STATUS
# =============================================================================


class StorageStats(BaseModel):
    """Row and byte counts of the telemetry tables."""

    model_config = ConfigDict(frozen=True)

    log_count: int = 0
    log_bytes: int = 0
    log_bytes_human: str = "0 bytes"
    metric_count: int = 0
    metric_bytes: int = 0
    metric_bytes_human: str = "0 bytes"


class LastHourStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_logs: int = 0
    error_count: int = 0


class SystemHealth(BaseModel):
    """Recomputed from the store on every request."""

    model_config = ConfigDict(frozen=True)

    status: str
    storage: StorageStats
    last_hour: LastHourStats


class HealthResponse(BaseModel):
    """GET /health"""

    model_config = ConfigDict(frozen=True)

    status: str
    store_connected: bool


class RetentionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_retention_days: int
    metrics_retention_days: int


class StatusResponse(BaseModel):
    """GET /v1/status"""

    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    storage: StorageStats
    retention: RetentionInfo


class ErrorResponse(BaseModel):
    """Body of every non-2xx HTTP response."""

    error: str
