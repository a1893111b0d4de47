"""Tool-invocation models: the envelope and one parameter model per tool.

Each tool's parameters are a closed, typed model. Unknown keys are
rejected, absent optional keys take the declared defaults, and the
registry validates raw input into these models in a single pass.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .requests import MAX_LOOKBACK_HOURS, Aggregation, _check_iso, _coerce_severity
from .severity import Severity

# =============================================================================
# ENVELOPE
# =============================================================================


class ToolInvocation(BaseModel):
    """Body of POST /mcp."""

    tool: str
    params: dict[str, Any] = Field(default_factory=dict)


class ToolEnvelope(BaseModel):
    """Uniform result of every tool invocation.

    On success ``data`` holds the tool's result; on failure ``error`` holds
    the error kind (e.g. ``"UnknownTool"``) and ``message`` the detail.
    """

    success: bool
    data: Any | None = None
    error: str | None = None
    message: str | None = None


class ParameterSpec(BaseModel):
    type: str
    required: bool = False
    default: Any | None = None
    description: str | None = None


class ToolInfo(BaseModel):
    """Entry in GET /tools."""

    name: str
    description: str
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)


# =============================================================================
# PARAMETER MODELS
# =============================================================================


class _ToolParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class _TimeWindowParams(_ToolParams):
    """``hours`` back from now, or an explicit ``start``/``end`` pair."""

    hours: int = Field(
        default=1, ge=0, le=MAX_LOOKBACK_HOURS, description="Hours to look back from now"
    )
    start: str | None = Field(default=None, description="Range start, ISO 8601")
    end: str | None = Field(default=None, description="Range end, ISO 8601")

    @field_validator("start", "end")
    @classmethod
    def validate_timestamps(cls, value: str | None) -> str | None:
        return None if value is None else _check_iso(value)


class SearchLogsParams(_TimeWindowParams):
    query: str | None = Field(default=None, description="Text to search for in log bodies")
    min_severity: Severity | None = Field(
        default=None, description="Minimum severity (TRACE, DEBUG, INFO, WARN, ERROR, FATAL)"
    )
    service: str | None = Field(default=None, description="Filter by service name")
    offset: int = Field(default=0, description="Rows to skip")
    limit: int = Field(default=50, description="Maximum results")

    @field_validator("min_severity", mode="before")
    @classmethod
    def parse_min_severity(cls, value: object) -> Severity | None:
        return _coerce_severity(value)


class TailLogsParams(_ToolParams):
    count: int = Field(default=20, description="Number of recent logs")
    min_severity: Severity | None = Field(default=None, description="Minimum severity")
    service: str | None = Field(default=None, description="Filter by service name")

    @field_validator("min_severity", mode="before")
    @classmethod
    def parse_min_severity(cls, value: object) -> Severity | None:
        return _coerce_severity(value)


class ErrorSummaryParams(_TimeWindowParams):
    hours: int = Field(default=24, ge=0, le=MAX_LOOKBACK_HOURS, description="Hours to analyze")
    limit: int = Field(default=10, description="Top N error patterns")


class QueryMetricsParams(_TimeWindowParams):
    metric_name: str = Field(description="Name of the metric")
    aggregation: Aggregation = Field(default=Aggregation.AVG, description="Aggregation function")
    interval_seconds: int = Field(default=60, description="Bucket width in seconds")


class SystemHealthParams(_ToolParams):
    pass
