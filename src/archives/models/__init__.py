"""Archives data models.

Request, response, configuration and tool models shared by the query
engine and both transport surfaces.
"""

from .config import (
    ApiConfig,
    ArchivesConfig,
    ClickHouseConfig,
    McpConfig,
    QueryLimits,
    RetentionConfig,
    load_config,
)
from .requests import (
    Aggregation,
    ErrorSummaryRequest,
    LogSearchRequest,
    LogTailRequest,
    MetricQueryRequest,
    TimeRange,
)
from .responses import (
    ErrorPattern,
    ErrorResponse,
    ErrorSummary,
    HealthResponse,
    LastHourStats,
    LogRecord,
    LogSearchResponse,
    MetricNamesResponse,
    MetricPoint,
    MetricQueryResponse,
    RetentionInfo,
    StatusResponse,
    StorageStats,
    SystemHealth,
)
from .severity import Severity, matches, rank
from .tools import (
    ErrorSummaryParams,
    ParameterSpec,
    QueryMetricsParams,
    SearchLogsParams,
    SystemHealthParams,
    TailLogsParams,
    ToolEnvelope,
    ToolInfo,
    ToolInvocation,
)

__all__ = [
    # Config
    "ApiConfig",
    "ArchivesConfig",
    "ClickHouseConfig",
    "McpConfig",
    "QueryLimits",
    "RetentionConfig",
    "load_config",
    # Severity
    "Severity",
    "matches",
    "rank",
    # Requests
    "Aggregation",
    "ErrorSummaryRequest",
    "LogSearchRequest",
    "LogTailRequest",
    "MetricQueryRequest",
    "TimeRange",
    # Responses
    "ErrorPattern",
    "ErrorResponse",
    "ErrorSummary",
    "HealthResponse",
    "LastHourStats",
    "LogRecord",
    "LogSearchResponse",
    "MetricNamesResponse",
    "MetricPoint",
    "MetricQueryResponse",
    "RetentionInfo",
    "StatusResponse",
    "StorageStats",
    "SystemHealth",
    # Tools
    "ErrorSummaryParams",
    "ParameterSpec",
    "QueryMetricsParams",
    "SearchLogsParams",
    "SystemHealthParams",
    "TailLogsParams",
    "ToolEnvelope",
    "ToolInfo",
    "ToolInvocation",
]
