"""Property tests for the query builder.

User-supplied values travel only as bound parameters, pagination is
clamped, and metric buckets are half-open and aligned to the range start.
"""

from hypothesis import given
from hypothesis import strategies as st
from whenever import Instant

from archives.models import LogSearchRequest, MetricQueryRequest, QueryLimits
from archives.query.builder import (
    NANOS_PER_SECOND,
    bucket_start,
    build_log_search,
    build_metric_query,
)

from .strategies import (
    aggregations,
    metric_names,
    offsets,
    page_limits,
    service_names,
    severities,
    time_ranges,
    user_text,
)

LIMITS = QueryLimits(max_limit=1000, default_limit=100)


@given(
    window=time_ranges(),
    text=user_text,
    service=service_names,
    min_severity=st.one_of(st.none(), severities),
)
def test_log_search_never_interpolates_user_input(window, text, service, min_severity):
    start, end = window
    request = LogSearchRequest(
        start=start, end=end, query=text, service=service, min_severity=min_severity
    )
    built = build_log_search(request, LIMITS)

    assert text not in built.sql
    assert service not in built.sql
    assert start not in built.sql
    assert built.parameters["text"] == text
    assert built.parameters["service"] == service
    assert built.parameters["start_ns"] == Instant.parse_iso(start).timestamp(unit="nanosecond")
    assert built.parameters["end_ns"] == Instant.parse_iso(end).timestamp(unit="nanosecond")
    if min_severity is None:
        assert "min_severity_number" not in built.parameters
    else:
        assert built.parameters["min_severity_number"] == min_severity.lower_bound


@given(window=time_ranges(), name=metric_names, aggregation=aggregations)
def test_metric_query_never_interpolates_metric_name(window, name, aggregation):
    start, end = window
    built = build_metric_query(
        MetricQueryRequest(metric_name=name, start=start, end=end, aggregation=aggregation)
    )
    assert name not in built.sql
    assert built.parameters["metric_name"] == name


@given(window=time_ranges(), limit=page_limits, offset=offsets)
def test_limit_is_clamped_to_maximum(window, limit, offset):
    start, end = window
    built = build_log_search(
        LogSearchRequest(start=start, end=end, limit=limit, offset=offset), LIMITS
    )
    assert 0 <= built.parameters["limit"] <= LIMITS.max_limit
    if limit is None:
        assert built.parameters["limit"] == LIMITS.default_limit
    else:
        assert built.parameters["limit"] == min(limit, LIMITS.max_limit)
    assert built.parameters["offset"] == offset


@given(
    start_ns=st.integers(min_value=0, max_value=2**62),
    offset_ns=st.integers(min_value=0, max_value=10**15),
    interval=st.integers(min_value=1, max_value=86_400),
)
def test_bucket_is_half_open_and_start_aligned(start_ns, offset_ns, interval):
    timestamp_ns = start_ns + offset_ns
    bucket = bucket_start(timestamp_ns, start_ns, interval)
    interval_ns = interval * NANOS_PER_SECOND
    assert bucket <= timestamp_ns < bucket + interval_ns
    assert (bucket - start_ns) % interval_ns == 0


def test_three_minutes_at_sixty_seconds_is_three_buckets():
    start_ns = Instant.from_utc(2026, 3, 1, 12).timestamp(unit="nanosecond")
    # One sample per second across exactly three minutes.
    stamps = [start_ns + s * NANOS_PER_SECOND for s in range(180)]
    buckets = sorted({bucket_start(ts, start_ns, 60) for ts in stamps})
    minute = 60 * NANOS_PER_SECOND
    assert buckets == [start_ns, start_ns + minute, start_ns + 2 * minute]
