"""Unit tests for the result mapper."""

import pytest
from pydantic import ValidationError
from whenever import Instant

from archives.errors import MalformedRow
from archives.models import LogRecord, TimeRange
from archives.query.mapper import (
    format_bytes,
    map_count,
    map_error_summary,
    map_log_record,
    map_log_records,
    map_metric_points,
    map_storage_stats,
    to_attributes,
)

from .conftest import NOW, log_row


def _nanos(iso: str) -> int:
    return Instant.parse_iso(iso).timestamp(unit="nanosecond")


def record_to_row(record: LogRecord) -> dict:
    """Test-only inverse of map_log_record."""
    return {
        "id": record.id,
        "timestamp_ns": _nanos(record.timestamp),
        "observed_timestamp_ns": _nanos(record.observed_timestamp),
        "trace_id": record.trace_id or "",
        "span_id": record.span_id or "",
        "severity_number": record.severity_number,
        "severity_text": record.severity_text,
        "body": record.body,
        "resource_attributes": dict(record.resource_attributes),
        "log_attributes": dict(record.log_attributes),
        "service_name": record.service_name or "",
    }


class TestLogRecord:
    def test_round_trip(self):
        row = log_row(
            "payment declined",
            trace_id="4bf92f3577b34da6a3ce929d0e0e4736",
            span_id="00f067aa0ba902b7",
            resource_attributes={"service.name": "checkout", "host.name": "web-1"},
            log_attributes={"user.id": "42"},
        )
        assert record_to_row(map_log_record(row)) == row

    def test_severity_from_number_keeps_original_text(self):
        row = log_row("boom") | {"severity_number": 18, "severity_text": "err"}
        record = map_log_record(row)
        assert record.severity == "ERROR"
        assert record.severity_number == 18
        assert record.severity_text == "err"

    @pytest.mark.parametrize("number", [0, 25, None])
    def test_out_of_range_severity_falls_back_to_info(self, number):
        record = map_log_record(log_row("x") | {"severity_number": number})
        assert record.severity == "INFO"

    def test_missing_optional_fields_use_defaults(self):
        record = map_log_record({"timestamp_ns": NOW.timestamp(unit="nanosecond")})
        assert record.timestamp == NOW.format_iso()
        assert record.observed_timestamp == record.timestamp
        assert record.trace_id is None
        assert record.span_id is None
        assert record.service_name is None
        assert record.body == ""
        assert record.resource_attributes == {}
        assert record.log_attributes == {}
        assert record.severity == "INFO"

    def test_empty_identifiers_become_none(self):
        record = map_log_record(log_row("x", trace_id="", span_id="") | {"service_name": ""})
        assert (record.trace_id, record.span_id, record.service_name) == (None, None, None)

    def test_missing_timestamp_is_malformed(self):
        with pytest.raises(MalformedRow) as exc_info:
            map_log_record({"body": "no timestamp"})
        assert exc_info.value.field == "timestamp_ns"

    def test_one_bad_row_fails_the_batch(self):
        rows = [log_row("ok"), {"body": "bad"}, log_row("ok too")]
        with pytest.raises(MalformedRow):
            map_log_records(rows)

    def test_records_are_frozen(self):
        record = map_log_record(log_row("immutable"))
        with pytest.raises(ValidationError):
            record.body = "changed"  # type: ignore[misc]

    def test_nanosecond_timestamps_survive(self):
        ts = NOW.timestamp(unit="nanosecond") + 123_456_789
        record = map_log_record({"timestamp_ns": ts})
        assert Instant.parse_iso(record.timestamp).timestamp(unit="nanosecond") == ts


class TestAttributes:
    def test_mapping(self):
        assert to_attributes({"a": "1", "b": 2}) == {"a": "1", "b": "2"}

    def test_pairs(self):
        assert to_attributes([["a", "1"], ("b", "2")]) == {"a": "1", "b": "2"}

    def test_key_value_objects(self):
        assert to_attributes([{"key": "a", "value": "1"}]) == {"a": "1"}

    def test_json_string(self):
        assert to_attributes('{"k": "v"}') == {"k": "v"}

    @pytest.mark.parametrize("value", [None, "", "not json"])
    def test_empty_or_unreadable(self, value):
        assert to_attributes(value) == {}


class TestFormatBytes:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 bytes"),
            (1023, "1023 bytes"),
            (1024, "1.00 KB"),
            (1536, "1.50 KB"),
            (123456789, "117.74 MB"),
            (5 * 1024**3, "5.00 GB"),
            (3 * 1024**4, "3.00 TB"),
        ],
    )
    def test_binary_units_two_decimals(self, size, expected):
        assert format_bytes(size) == expected


class TestErrorSummary:
    RANGE = TimeRange.last(hours=12, now=NOW)

    def test_sorted_by_count_then_pattern(self):
        rows = [
            {"pattern": "b timeout", "count": 10, "example": "b timeout", "truncated": 0},
            {"pattern": "z refused", "count": 45, "example": "z refused", "truncated": 0},
            {"pattern": "a timeout", "count": 10, "example": "a timeout", "truncated": 0},
            {"pattern": "disk full", "count": 30, "example": "disk full", "truncated": 0},
        ]
        summary = map_error_summary(rows, [{"count": 95}], self.RANGE)
        assert [p.count for p in summary.top_patterns] == [45, 30, 10, 10]
        assert [p.pattern for p in summary.top_patterns][2:] == ["a timeout", "b timeout"]
        assert summary.total_errors == 95
        assert summary.time_range_hours == 12.0

    def test_truncated_pattern_gets_marker(self):
        body = "x" * 150
        rows = [{"pattern": "x" * 100, "count": 1, "example": body, "truncated": 1}]
        pattern = map_error_summary(rows, [], self.RANGE).top_patterns[0]
        assert pattern.pattern == "x" * 100 + "..."
        assert pattern.example == body

    def test_no_errors(self):
        summary = map_error_summary([], [], self.RANGE)
        assert summary.total_errors == 0
        assert summary.top_patterns == []

    def test_missing_count_is_malformed(self):
        with pytest.raises(MalformedRow):
            map_error_summary([{"pattern": "p"}], [], self.RANGE)


class TestMetricsAndStorage:
    def test_metric_points_keep_store_order(self):
        start = NOW.timestamp(unit="nanosecond")
        rows = [
            {"bucket_ns": start, "value": 1.5},
            {"bucket_ns": start + 60 * 10**9, "value": None},
        ]
        points = map_metric_points(rows)
        assert [p.aggregated_value for p in points] == [1.5, 0.0]
        assert points[0].bucket_timestamp == NOW.format_iso()

    def test_metric_point_without_bucket_is_malformed(self):
        with pytest.raises(MalformedRow):
            map_metric_points([{"value": 1.0}])

    def test_storage_stats_sum_metric_tables(self, storage_parts):
        stats = map_storage_stats(storage_parts)
        assert stats.log_count == 1500
        assert stats.log_bytes_human == "117.74 MB"
        assert stats.metric_count == 1000
        assert stats.metric_bytes == 3072
        assert stats.metric_bytes_human == "3.00 KB"

    def test_storage_stats_empty(self):
        stats = map_storage_stats([])
        assert stats.log_count == 0
        assert stats.log_bytes_human == "0 bytes"

    def test_count_of_no_rows_is_zero(self):
        assert map_count([]) == 0
        assert map_count([{"count": "12"}]) == 12
