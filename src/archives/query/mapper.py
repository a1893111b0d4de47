"""Result mapper: raw JSONEachRow rows into typed response models.

Optional columns that are missing or null map to the field's empty value.
A missing required column raises MalformedRow, and the caller discards the
whole response; partial results are never returned.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any

from whenever import Instant

from archives.errors import MalformedRow
from archives.models.requests import TimeRange
from archives.models.responses import (
    ErrorPattern,
    ErrorSummary,
    LastHourStats,
    LogRecord,
    MetricPoint,
    StorageStats,
)
from archives.models.severity import Severity

from .builder import LOGS_TABLE, METRICS_TABLE_PREFIX

Row = Mapping[str, Any]

TRUNCATION_MARKER = "..."

_BYTE_UNITS = ("KB", "MB", "GB", "TB", "PB")


# =============================================================================
# FIELD HELPERS
# =============================================================================


def _required(row: Row, field: str) -> Any:
    value = row.get(field)
    if value is None:
        raise MalformedRow(field)
    return value


def _int(row: Row, field: str, *, required: bool = False) -> int:
    value = _required(row, field) if required else row.get(field)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedRow(field, f"non-integer value {value!r} in") from None


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def ns_to_iso(timestamp_ns: int) -> str:
    return Instant.from_timestamp(timestamp_ns, unit="nanosecond").format_iso()


def to_attributes(value: Any) -> dict[str, str]:
    """Rebuild a string map from a ClickHouse Map column.

    Accepts the JSON object JSONEachRow produces, a list of key/value
    pairs, or the same encoded as a JSON string.
    """
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return {}
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}
    pairs: dict[str, str] = {}
    for item in value:
        if isinstance(item, Mapping):
            pairs[str(item.get("key", ""))] = str(item.get("value", ""))
        else:
            key, val = item
            pairs[str(key)] = str(val)
    return pairs


def format_bytes(size: int) -> str:
    """Binary units, two decimals: 123456789 -> '117.74 MB'."""
    if size < 1024:
        return f"{size} bytes"
    value = float(size)
    for unit in _BYTE_UNITS:
        value /= 1024
        if value < 1024 or unit == _BYTE_UNITS[-1]:
            return f"{value:.2f} {unit}"
    raise AssertionError("unreachable")


# =============================================================================
# LOGS
# =============================================================================


def map_log_record(row: Row) -> LogRecord:
    timestamp_ns = _int(row, "timestamp_ns", required=True)
    # ObservedTimestamp of 0 means the source never set it.
    observed_ns = _int(row, "observed_timestamp_ns") or timestamp_ns
    severity_number = _int(row, "severity_number")

    return LogRecord(
        id=str(row.get("id") or ""),
        timestamp=ns_to_iso(timestamp_ns),
        observed_timestamp=ns_to_iso(observed_ns),
        trace_id=_optional_str(row.get("trace_id")),
        span_id=_optional_str(row.get("span_id")),
        severity=Severity.from_number(severity_number).name,
        severity_number=severity_number,
        severity_text=str(row.get("severity_text") or ""),
        body=str(row.get("body") or ""),
        resource_attributes=to_attributes(row.get("resource_attributes")),
        log_attributes=to_attributes(row.get("log_attributes")),
        service_name=_optional_str(row.get("service_name")),
    )


def map_log_records(rows: Iterable[Row]) -> list[LogRecord]:
    """Rows in store order. Any malformed row fails the whole batch."""
    return [map_log_record(row) for row in rows]


def map_count(rows: list[Row]) -> int:
    """Single-row ``count()`` result; no rows counts as zero."""
    if not rows:
        return 0
    return _int(rows[0], "count", required=True)


# =============================================================================
# ERROR SUMMARY
# =============================================================================


def map_error_pattern(row: Row) -> ErrorPattern:
    pattern = str(_required(row, "pattern"))
    example = str(row.get("example") or pattern)
    if row.get("truncated") and not pattern.endswith(TRUNCATION_MARKER):
        pattern += TRUNCATION_MARKER
    return ErrorPattern(pattern=pattern, count=_int(row, "count", required=True), example=example)


def map_error_summary(
    pattern_rows: list[Row],
    total_rows: list[Row],
    time_range: TimeRange,
) -> ErrorSummary:
    """Count descending, ties by pattern ascending."""
    patterns = sorted(
        (map_error_pattern(row) for row in pattern_rows),
        key=lambda p: (-p.count, p.pattern),
    )
    return ErrorSummary(
        total_errors=map_count(total_rows),
        time_range_hours=round(time_range.hours, 2),
        top_patterns=patterns,
    )


# =============================================================================
# METRICS
# =============================================================================


def map_metric_points(rows: Iterable[Row]) -> list[MetricPoint]:
    points = []
    for row in rows:
        value = row.get("value")
        points.append(
            MetricPoint(
                bucket_timestamp=ns_to_iso(_int(row, "bucket_ns", required=True)),
                aggregated_value=float(value) if value is not None else 0.0,
            )
        )
    return points


def map_metric_names(rows: Iterable[Row]) -> list[str]:
    return [str(_required(row, "name")) for row in rows]


# =============================================================================
# HEALTH / STATUS
# =============================================================================


def map_storage_stats(rows: Iterable[Row]) -> StorageStats:
    """Logs from ``otel_logs``; metrics summed over every ``otel_metrics*`` table."""
    log_count = log_bytes = metric_count = metric_bytes = 0
    for row in rows:
        table = str(_required(row, "table"))
        if table == LOGS_TABLE:
            log_count += _int(row, "rows")
            log_bytes += _int(row, "bytes")
        elif table.startswith(METRICS_TABLE_PREFIX):
            metric_count += _int(row, "rows")
            metric_bytes += _int(row, "bytes")

    return StorageStats(
        log_count=log_count,
        log_bytes=log_bytes,
        log_bytes_human=format_bytes(log_bytes),
        metric_count=metric_count,
        metric_bytes=metric_bytes,
        metric_bytes_human=format_bytes(metric_bytes),
    )


def map_last_hour(total_rows: list[Row], error_rows: list[Row]) -> LastHourStats:
    return LastHourStats(total_logs=map_count(total_rows), error_count=map_count(error_rows))
