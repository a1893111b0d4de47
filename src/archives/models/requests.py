"""Request models consumed by the query builder.

These are the typed shapes both surfaces parse their input into. Field
types are checked here; semantic rules (inverted ranges, non-positive
intervals, negative pagination) are the query builder's job so that they
fail with InvalidRequest at one place.

Timestamps on the wire are ISO 8601 strings. ``TimeRange`` holds
``whenever.Instant`` values for the builder.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError
from whenever import Instant, TimeDelta

from archives.errors import InvalidParameter, InvalidSeverity

from .severity import Severity

# Upper bound on hours-back windows (ten years).
MAX_LOOKBACK_HOURS = 24 * 365 * 10


class Aggregation(StrEnum):
    """Aggregation functions for metric queries."""

    AVG = "avg"
    MIN = "min"
    MAX = "max"
    SUM = "sum"
    COUNT = "count"
    P50 = "p50"
    P90 = "p90"
    P95 = "p95"
    P99 = "p99"


class TimeRange(BaseModel):
    """Half-open interval ``[start, end)``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    start: Instant
    end: Instant

    @classmethod
    def last(
        cls,
        *,
        hours: float = 0,
        minutes: float = 0,
        now: Instant | None = None,
    ) -> "TimeRange":
        """Range ending at ``now`` and reaching back the given duration."""
        end = now if now is not None else Instant.now()
        try:
            start = end - TimeDelta(hours=hours, minutes=minutes)
        except (ValueError, OverflowError):
            raise InvalidParameter(
                "hours", f"look-back of {hours}h {minutes}m is out of range"
            ) from None
        return cls(start=start, end=end)

    @classmethod
    def from_iso(cls, start: str, end: str) -> "TimeRange":
        return cls(start=Instant.parse_iso(start), end=Instant.parse_iso(end))

    @classmethod
    def resolve(
        cls,
        *,
        hours: float,
        start: str | None = None,
        end: str | None = None,
        now: Instant | None = None,
    ) -> "TimeRange":
        """Pick the window for an ``hours``-or-``start``/``end`` request.

        An explicit ``start``/``end`` pair wins over ``hours``. Supplying
        only one of the pair is rejected.
        """
        if start is not None and end is not None:
            return cls.from_iso(start, end)
        if start is not None or end is not None:
            missing = "end" if end is None else "start"
            raise InvalidParameter(missing, "start and end must be supplied together")
        return cls.last(hours=hours, now=now)

    def iso(self) -> tuple[str, str]:
        return self.start.format_iso(), self.end.format_iso()

    @property
    def hours(self) -> float:
        return (self.end - self.start).total("hours")


def _check_iso(value: str) -> str:
    try:
        Instant.parse_iso(value)
    except ValueError:
        raise PydanticCustomError(
            "invalid_timestamp",
            "'{value}' is not an ISO 8601 timestamp with offset",
            {"value": value},
        ) from None
    return value


def _coerce_severity(value: object) -> Severity | None:
    if value is None:
        return None
    try:
        return Severity.parse(value)  # type: ignore[arg-type]
    except InvalidSeverity:
        raise PydanticCustomError(
            "invalid_severity",
            "unknown severity {value!r}, expected one of TRACE, DEBUG, INFO, WARN, ERROR, FATAL",
            {"value": value},
        ) from None


class _SeverityFiltered(BaseModel):
    """Mixin for requests with an optional minimum-severity threshold."""

    min_severity: Severity | None = Field(
        default=None, description="Minimum severity to include (TRACE..FATAL)"
    )

    @field_validator("min_severity", mode="before")
    @classmethod
    def parse_min_severity(cls, value: object) -> Severity | None:
        return _coerce_severity(value)


# =============================================================================
# LOG REQUESTS
# =============================================================================


class LogSearchRequest(_SeverityFiltered):
    """Search logs inside an explicit time range."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(description="Range start, ISO 8601 (inclusive)")
    end: str = Field(description="Range end, ISO 8601 (exclusive)")
    query: str | None = Field(default=None, description="Substring to match in the log body")
    service: str | None = Field(default=None, description="Exact service name")
    offset: int = Field(default=0, description="Rows to skip")
    limit: int | None = Field(default=None, description="Page size, clamped server-side")

    @field_validator("start", "end")
    @classmethod
    def validate_timestamps(cls, value: str) -> str:
        return _check_iso(value)

    def time_range(self) -> TimeRange:
        return TimeRange.from_iso(self.start, self.end)


class LogTailRequest(_SeverityFiltered):
    """Most recent logs, newest first."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(default=20, description="Number of recent logs to return")
    service: str | None = Field(default=None, description="Exact service name")


class ErrorSummaryRequest(BaseModel):
    """Group ERROR-and-above logs by message pattern."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str
    limit: int = Field(default=10, description="Maximum number of patterns")

    @field_validator("start", "end")
    @classmethod
    def validate_timestamps(cls, value: str) -> str:
        return _check_iso(value)

    def time_range(self) -> TimeRange:
        return TimeRange.from_iso(self.start, self.end)


# =============================================================================
# METRIC REQUESTS
# =============================================================================


class MetricQueryRequest(BaseModel):
    """Aggregate one metric into fixed-width time buckets."""

    model_config = ConfigDict(frozen=True)

    metric_name: str
    start: str
    end: str
    aggregation: Aggregation = Aggregation.AVG
    interval_seconds: int = Field(default=60, description="Bucket width in seconds")

    @field_validator("start", "end")
    @classmethod
    def validate_timestamps(cls, value: str) -> str:
        return _check_iso(value)

    def time_range(self) -> TimeRange:
        return TimeRange.from_iso(self.start, self.end)
