"""Query builder: request models in, parameterized ClickHouse queries out.

Pure functions, no I/O. Every value that originates from a caller (search
text, service name, metric name, timestamps, pagination) travels as a
bound parameter using ClickHouse's server-side binding syntax
``{name:Type}``; the SQL text is assembled only from the fixed fragments
in this module. Timestamps are bound as nanosecond epoch integers and
converted in-query with ``fromUnixTimestamp64Nano``.

Target schema is the OpenTelemetry collector's ClickHouse exporter
(``otel_logs``, ``otel_metrics_gauge``).
"""

from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from whenever import Instant

from archives.errors import InvalidRequest
from archives.models.config import QueryLimits
from archives.models.requests import (
    Aggregation,
    ErrorSummaryRequest,
    LogSearchRequest,
    LogTailRequest,
    MetricQueryRequest,
    TimeRange,
)
from archives.models.severity import Severity

LOGS_TABLE = "otel_logs"
METRICS_TABLE = "otel_metrics_gauge"
METRICS_TABLE_PREFIX = "otel_metrics"

NANOS_PER_SECOND = 1_000_000_000


class BuiltQuery(BaseModel):
    """SQL text plus the values bound to its ``{name:Type}`` placeholders."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Stable identifier of the query shape")
    sql: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ErrorSummaryQueries(NamedTuple):
    patterns: BuiltQuery
    total: BuiltQuery


class SystemHealthQueries(NamedTuple):
    storage: BuiltQuery
    total_logs: BuiltQuery
    error_logs: BuiltQuery


# =============================================================================
# FRAGMENTS
# =============================================================================

# Percentiles use the store's approximate quantile family.
AGGREGATIONS: dict[Aggregation, str] = {
    Aggregation.AVG: "avg(Value)",
    Aggregation.MIN: "min(Value)",
    Aggregation.MAX: "max(Value)",
    Aggregation.SUM: "sum(Value)",
    Aggregation.COUNT: "toFloat64(count())",
    Aggregation.P50: "quantile(0.5)(Value)",
    Aggregation.P90: "quantile(0.9)(Value)",
    Aggregation.P95: "quantile(0.95)(Value)",
    Aggregation.P99: "quantile(0.99)(Value)",
}

_LOG_COLUMNS = """\
    lower(hex(cityHash64(Timestamp, ServiceName, TraceId, SpanId, Body))) AS id,
    toUnixTimestamp64Nano(Timestamp) AS timestamp_ns,
    toUnixTimestamp64Nano(ObservedTimestamp) AS observed_timestamp_ns,
    TraceId AS trace_id,
    SpanId AS span_id,
    SeverityNumber AS severity_number,
    SeverityText AS severity_text,
    Body AS body,
    ResourceAttributes AS resource_attributes,
    LogAttributes AS log_attributes,
    ServiceName AS service_name"""

_LOG_TIME_FILTER = (
    "Timestamp >= fromUnixTimestamp64Nano({start_ns:Int64})"
    " AND Timestamp < fromUnixTimestamp64Nano({end_ns:Int64})"
)
_SEVERITY_FILTER = "SeverityNumber >= {min_severity_number:UInt8}"
_TEXT_FILTER = "positionCaseInsensitiveUTF8(Body, {text:String}) > 0"
_SERVICE_FILTER = "ServiceName = {service:String}"


def _where(conditions: list[str]) -> str:
    return "WHERE " + "\n  AND ".join(conditions)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def check_time_range(time_range: TimeRange) -> TimeRange:
    """Reject inverted ranges. Ranges are never silently swapped."""
    if time_range.start > time_range.end:
        raise InvalidRequest(
            f"Time range is inverted: start {time_range.start.format_iso()}"
            f" is after end {time_range.end.format_iso()}"
        )
    return time_range


def clamp_limit(limit: int | None, limits: QueryLimits, field: str = "limit") -> int:
    """Apply the default page size and the server-side maximum."""
    if limit is None:
        return min(limits.default_limit, limits.max_limit)
    if limit < 0:
        raise InvalidRequest(f"{field} must not be negative, got {limit}")
    return min(limit, limits.max_limit)


def _time_parameters(time_range: TimeRange) -> dict[str, int]:
    check_time_range(time_range)
    return {
        "start_ns": time_range.start.timestamp(unit="nanosecond"),
        "end_ns": time_range.end.timestamp(unit="nanosecond"),
    }


def _log_filters(
    parameters: dict[str, Any],
    *,
    min_severity: Severity | None = None,
    text: str | None = None,
    service: str | None = None,
) -> list[str]:
    conditions = [_LOG_TIME_FILTER]
    if min_severity is not None:
        conditions.append(_SEVERITY_FILTER)
        parameters["min_severity_number"] = min_severity.lower_bound
    if text:
        conditions.append(_TEXT_FILTER)
        parameters["text"] = text
    if service:
        conditions.append(_SERVICE_FILTER)
        parameters["service"] = service
    return conditions


# =============================================================================
# LOGS
# =============================================================================


def build_log_search(request: LogSearchRequest, limits: QueryLimits) -> BuiltQuery:
    """Logs inside the request's range, oldest first, windowed by offset/limit."""
    if request.offset < 0:
        raise InvalidRequest(f"offset must not be negative, got {request.offset}")
    limit = clamp_limit(request.limit, limits)

    parameters: dict[str, Any] = _time_parameters(request.time_range())
    conditions = _log_filters(
        parameters,
        min_severity=request.min_severity,
        text=request.query,
        service=request.service,
    )
    parameters["limit"] = limit
    parameters["offset"] = request.offset

    sql = (
        f"SELECT\n{_LOG_COLUMNS}\nFROM {LOGS_TABLE}\n{_where(conditions)}\n"
        "ORDER BY Timestamp ASC\n"
        "LIMIT {limit:UInt32} OFFSET {offset:UInt64}"
    )
    return BuiltQuery(name="log_search", sql=sql, parameters=parameters)


def build_log_tail(
    request: LogTailRequest,
    limits: QueryLimits,
    *,
    now: Instant | None = None,
) -> BuiltQuery:
    """Most recent logs in the tail window, newest first. No text filter."""
    count = clamp_limit(request.count, limits, field="count")
    time_range = TimeRange.last(minutes=limits.tail_window_minutes, now=now)

    parameters: dict[str, Any] = _time_parameters(time_range)
    conditions = _log_filters(
        parameters,
        min_severity=request.min_severity,
        service=request.service,
    )
    parameters["limit"] = count

    sql = (
        f"SELECT\n{_LOG_COLUMNS}\nFROM {LOGS_TABLE}\n{_where(conditions)}\n"
        "ORDER BY Timestamp DESC\n"
        "LIMIT {limit:UInt32}"
    )
    return BuiltQuery(name="log_tail", sql=sql, parameters=parameters)


def build_log_count(time_range: TimeRange, min_severity: Severity | None = None) -> BuiltQuery:
    """Number of logs in a range, optionally at or above a severity."""
    parameters: dict[str, Any] = _time_parameters(time_range)
    conditions = _log_filters(parameters, min_severity=min_severity)
    sql = f"SELECT count() AS count\nFROM {LOGS_TABLE}\n{_where(conditions)}"
    return BuiltQuery(name="log_count", sql=sql, parameters=parameters)


def build_error_summary(request: ErrorSummaryRequest, limits: QueryLimits) -> ErrorSummaryQueries:
    """Group ERROR-and-above bodies by their leading ``pattern_length`` characters.

    Ordered by count descending, then pattern ascending, so equal counts
    come back in a stable order.
    """
    limit = clamp_limit(request.limit, limits)
    time_range = request.time_range()

    parameters: dict[str, Any] = _time_parameters(time_range)
    conditions = _log_filters(parameters, min_severity=Severity.ERROR)
    parameters["pattern_length"] = limits.pattern_length
    parameters["limit"] = limit

    sql = (
        "SELECT\n"
        "    leftUTF8(Body, {pattern_length:UInt32}) AS pattern,\n"
        "    count() AS count,\n"
        "    any(Body) AS example,\n"
        "    max(lengthUTF8(Body)) > {pattern_length:UInt32} AS truncated\n"
        f"FROM {LOGS_TABLE}\n{_where(conditions)}\n"
        "GROUP BY pattern\n"
        "ORDER BY count DESC, pattern ASC\n"
        "LIMIT {limit:UInt32}"
    )
    return ErrorSummaryQueries(
        patterns=BuiltQuery(name="error_patterns", sql=sql, parameters=parameters),
        total=build_log_count(time_range, Severity.ERROR),
    )


# =============================================================================
# METRICS
# =============================================================================


def bucket_start(timestamp_ns: int, start_ns: int, interval_seconds: int) -> int:
    """Start of the half-open bucket ``[b, b + interval)`` holding a timestamp.

    Mirrors the ``bucket_ns`` expression of the metric query. Buckets are
    aligned to the range start.
    """
    interval_ns = interval_seconds * NANOS_PER_SECOND
    return (timestamp_ns - start_ns) // interval_ns * interval_ns + start_ns


def build_metric_query(request: MetricQueryRequest) -> BuiltQuery:
    """Aggregate one metric into fixed-width buckets, ascending by bucket."""
    if not request.metric_name.strip():
        raise InvalidRequest("metric_name must not be empty")
    if request.interval_seconds <= 0:
        raise InvalidRequest(
            f"interval_seconds must be greater than 0, got {request.interval_seconds}"
        )

    parameters: dict[str, Any] = _time_parameters(request.time_range())
    parameters["interval_ns"] = request.interval_seconds * NANOS_PER_SECOND
    parameters["metric_name"] = request.metric_name

    sql = (
        "SELECT\n"
        "    intDiv(toUnixTimestamp64Nano(TimeUnix) - {start_ns:Int64}, {interval_ns:Int64})"
        " * {interval_ns:Int64} + {start_ns:Int64} AS bucket_ns,\n"
        f"    {AGGREGATIONS[request.aggregation]} AS value\n"
        f"FROM {METRICS_TABLE}\n"
        "WHERE MetricName = {metric_name:String}\n"
        "  AND TimeUnix >= fromUnixTimestamp64Nano({start_ns:Int64})\n"
        "  AND TimeUnix < fromUnixTimestamp64Nano({end_ns:Int64})\n"
        "GROUP BY bucket_ns\n"
        "ORDER BY bucket_ns ASC"
    )
    return BuiltQuery(name="metric_query", sql=sql, parameters=parameters)


def build_metric_names() -> BuiltQuery:
    return BuiltQuery(
        name="metric_names",
        sql=f"SELECT DISTINCT MetricName AS name\nFROM {METRICS_TABLE}\nORDER BY name",
    )


# =============================================================================
# HEALTH / STATUS
# =============================================================================


def build_storage_stats(database: str) -> BuiltQuery:
    """Active-part rows and bytes per telemetry table."""
    sql = (
        "SELECT table, sum(rows) AS rows, sum(bytes_on_disk) AS bytes\n"
        "FROM system.parts\n"
        "WHERE database = {database:String}\n"
        "  AND active = 1\n"
        f"  AND (table = '{LOGS_TABLE}' OR startsWith(table, '{METRICS_TABLE_PREFIX}'))\n"
        "GROUP BY table\n"
        "ORDER BY table"
    )
    return BuiltQuery(name="storage_stats", sql=sql, parameters={"database": database})


def build_system_health(database: str, *, now: Instant | None = None) -> SystemHealthQueries:
    last_hour = TimeRange.last(hours=1, now=now)
    return SystemHealthQueries(
        storage=build_storage_stats(database),
        total_logs=build_log_count(last_hour),
        error_logs=build_log_count(last_hour, Severity.ERROR),
    )


def build_ping() -> BuiltQuery:
    return BuiltQuery(name="ping", sql="SELECT 1 AS ok")
