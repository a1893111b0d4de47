"""Pytest configuration and fixtures for the Archives tests.

``FakeStore`` stands in for ClickHouse. It answers each built query by
name and honours the bound parameters (time range, severity floor, text,
service, pagination, bucketing), so tests exercise what the builder
actually produced rather than canned answers.
"""

from collections import defaultdict
from typing import Any

import pytest
from whenever import Instant

from archives.models import ArchivesConfig, Severity
from archives.query import BuiltQuery, QueryService
from archives.query.builder import NANOS_PER_SECOND, bucket_start

NOW = Instant.from_utc(2026, 3, 1, 12, 0, 0)
NOW_NS = NOW.timestamp(unit="nanosecond")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# =============================================================================
# ROW FACTORIES
# =============================================================================


def log_row(
    body: str,
    *,
    severity: Severity = Severity.INFO,
    minutes_ago: float = 5,
    service: str = "checkout",
    trace_id: str = "",
    span_id: str = "",
    resource_attributes: dict[str, str] | None = None,
    log_attributes: dict[str, str] | None = None,
) -> dict[str, Any]:
    """A stored log in the shape the search query selects."""
    timestamp_ns = NOW_NS - int(minutes_ago * 60 * NANOS_PER_SECOND)
    return {
        "id": f"{abs(hash((timestamp_ns, body))):016x}",
        "timestamp_ns": timestamp_ns,
        "observed_timestamp_ns": timestamp_ns + 1_000,
        "trace_id": trace_id,
        "span_id": span_id,
        "severity_number": severity.lower_bound,
        "severity_text": severity.name,
        "body": body,
        "resource_attributes": resource_attributes or {"service.name": service},
        "log_attributes": log_attributes or {},
        "service_name": service,
    }


def metric_sample(name: str, seconds_after: float, value: float, *, start: Instant) -> dict:
    return {
        "name": name,
        "timestamp_ns": start.timestamp(unit="nanosecond") + int(seconds_after * NANOS_PER_SECOND),
        "value": value,
    }


# =============================================================================
# FAKE STORE
# =============================================================================


class FakeStore:
    """In-memory TelemetryStore that evaluates built queries by name."""

    def __init__(
        self,
        logs: list[dict] | None = None,
        samples: list[dict] | None = None,
        parts: list[dict] | None = None,
        *,
        connected: bool = True,
    ) -> None:
        self.logs = logs or []
        self.samples = samples or []
        self.parts = parts or []
        self.connected = connected
        self.calls: list[BuiltQuery] = []

    async def fetch(self, query: BuiltQuery) -> list[dict[str, Any]]:
        self.calls.append(query)
        return getattr(self, f"_{query.name}")(query.parameters)

    async def ping(self) -> bool:
        return self.connected

    # -- logs -----------------------------------------------------------------

    def _matching_logs(self, p: dict[str, Any]) -> list[dict]:
        rows = [r for r in self.logs if p["start_ns"] <= r["timestamp_ns"] < p["end_ns"]]
        if "min_severity_number" in p:
            rows = [r for r in rows if r["severity_number"] >= p["min_severity_number"]]
        if "text" in p:
            needle = p["text"].casefold()
            rows = [r for r in rows if needle in r["body"].casefold()]
        if "service" in p:
            rows = [r for r in rows if r["service_name"] == p["service"]]
        return rows

    def _log_search(self, p: dict[str, Any]) -> list[dict]:
        rows = sorted(self._matching_logs(p), key=lambda r: r["timestamp_ns"])
        return [dict(r) for r in rows[p["offset"] : p["offset"] + p["limit"]]]

    def _log_tail(self, p: dict[str, Any]) -> list[dict]:
        rows = sorted(self._matching_logs(p), key=lambda r: r["timestamp_ns"], reverse=True)
        return [dict(r) for r in rows[: p["limit"]]]

    def _log_count(self, p: dict[str, Any]) -> list[dict]:
        return [{"count": len(self._matching_logs(p))}]

    def _error_patterns(self, p: dict[str, Any]) -> list[dict]:
        length = p["pattern_length"]
        groups: dict[str, list[str]] = defaultdict(list)
        for row in self._matching_logs(p):
            groups[row["body"][:length]].append(row["body"])
        rows = [
            {
                "pattern": pattern,
                "count": len(bodies),
                "example": bodies[0],
                "truncated": int(max(len(b) for b in bodies) > length),
            }
            for pattern, bodies in groups.items()
        ]
        rows.sort(key=lambda r: (-r["count"], r["pattern"]))
        return rows[: p["limit"]]

    # -- metrics --------------------------------------------------------------

    def _metric_query(self, p: dict[str, Any]) -> list[dict]:
        interval_seconds = p["interval_ns"] // NANOS_PER_SECOND
        buckets: dict[int, list[float]] = defaultdict(list)
        for s in self.samples:
            if s["name"] == p["metric_name"] and p["start_ns"] <= s["timestamp_ns"] < p["end_ns"]:
                bucket = bucket_start(s["timestamp_ns"], p["start_ns"], interval_seconds)
                buckets[bucket].append(s["value"])
        return [
            {"bucket_ns": bucket, "value": sum(values) / len(values)}
            for bucket, values in sorted(buckets.items())
        ]

    def _metric_names(self, p: dict[str, Any]) -> list[dict]:
        return [{"name": name} for name in sorted({s["name"] for s in self.samples})]

    # -- health ---------------------------------------------------------------

    def _storage_stats(self, p: dict[str, Any]) -> list[dict]:
        return [dict(part) for part in self.parts if part.get("database") == p["database"]]

    def _ping(self, p: dict[str, Any]) -> list[dict]:
        return [{"ok": 1}]


class FailingStore:
    """Store whose every query raises the given error."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls: list[BuiltQuery] = []

    async def fetch(self, query: BuiltQuery) -> list[dict[str, Any]]:
        self.calls.append(query)
        raise self.error

    async def ping(self) -> bool:
        return False


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def config() -> ArchivesConfig:
    return ArchivesConfig()


@pytest.fixture
def incident_logs() -> list[dict]:
    """5 ERROR 'connection refused' rows and 3 unrelated INFO rows."""
    errors = [
        log_row(
            f"upstream connection refused by payments-{i}",
            severity=Severity.ERROR,
            minutes_ago=30 + i,
            service="checkout",
            trace_id=f"trace{i:02d}",
            span_id=f"span{i:02d}",
        )
        for i in range(5)
    ]
    infos = [
        log_row("request served in 12ms", minutes_ago=10, service="checkout"),
        log_row("cache warmed", minutes_ago=20, service="catalog"),
        log_row("health probe ok", minutes_ago=40, service="gateway"),
    ]
    return errors + infos


@pytest.fixture
def storage_parts() -> list[dict]:
    return [
        {"database": "default", "table": "otel_logs", "rows": 1500, "bytes": 123456789},
        {"database": "default", "table": "otel_metrics_gauge", "rows": 700, "bytes": 2048},
        {"database": "default", "table": "otel_metrics_sum", "rows": 300, "bytes": 1024},
    ]


@pytest.fixture
def store(incident_logs, storage_parts) -> FakeStore:
    return FakeStore(logs=incident_logs, parts=storage_parts)


@pytest.fixture
def service(store, config) -> QueryService:
    return QueryService(store, config, clock=lambda: NOW)
