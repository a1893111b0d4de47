"""Tool handlers and the default tool catalogue.

Each handler turns a validated parameter model into a request model and
hands it to the QueryService. Hours-back parameters are resolved here,
against the service clock; explicit ``start``/``end`` win over ``hours``.
"""

from archives.models.requests import (
    ErrorSummaryRequest,
    LogSearchRequest,
    LogTailRequest,
    MetricQueryRequest,
    TimeRange,
)
from archives.models.responses import (
    ErrorSummary,
    LogSearchResponse,
    MetricQueryResponse,
    SystemHealth,
)
from archives.models.tools import (
    ErrorSummaryParams,
    QueryMetricsParams,
    SearchLogsParams,
    SystemHealthParams,
    TailLogsParams,
)
from archives.query.service import QueryService

from .registry import ToolDescriptor, ToolRegistry


def _window(
    service: QueryService,
    params: SearchLogsParams | ErrorSummaryParams | QueryMetricsParams,
) -> tuple[str, str]:
    time_range = TimeRange.resolve(
        hours=params.hours,
        start=params.start,
        end=params.end,
        now=service.clock(),
    )
    return time_range.iso()


class ToolHandlers:
    """Handlers bound to one QueryService."""

    def __init__(self, service: QueryService) -> None:
        self.service = service

    async def search_logs(self, params: SearchLogsParams) -> LogSearchResponse:
        start, end = _window(self.service, params)
        request = LogSearchRequest(
            start=start,
            end=end,
            query=params.query,
            min_severity=params.min_severity,
            service=params.service,
            offset=params.offset,
            limit=params.limit,
        )
        return await self.service.search_logs(request)

    async def tail_logs(self, params: TailLogsParams) -> LogSearchResponse:
        request = LogTailRequest(
            count=params.count,
            min_severity=params.min_severity,
            service=params.service,
        )
        return await self.service.tail_logs(request)

    async def get_error_summary(self, params: ErrorSummaryParams) -> ErrorSummary:
        start, end = _window(self.service, params)
        return await self.service.error_summary(
            ErrorSummaryRequest(start=start, end=end, limit=params.limit)
        )

    async def query_metrics(self, params: QueryMetricsParams) -> MetricQueryResponse:
        start, end = _window(self.service, params)
        request = MetricQueryRequest(
            metric_name=params.metric_name,
            start=start,
            end=end,
            aggregation=params.aggregation,
            interval_seconds=params.interval_seconds,
        )
        return await self.service.query_metrics(request)

    async def get_system_health(self, params: SystemHealthParams) -> SystemHealth:
        return await self.service.system_health()


def build_default_registry(service: QueryService) -> ToolRegistry:
    """The fixed tool catalogue served by the MCP surface."""
    handlers = ToolHandlers(service)
    return ToolRegistry(
        [
            ToolDescriptor(
                name="search_logs",
                description=(
                    "Search logs by text, severity and service over the last N hours"
                    " or an explicit start/end range"
                ),
                params_model=SearchLogsParams,
                handler=handlers.search_logs,
            ),
            ToolDescriptor(
                name="tail_logs",
                description="Most recent log entries, newest first",
                params_model=TailLogsParams,
                handler=handlers.tail_logs,
            ),
            ToolDescriptor(
                name="get_error_summary",
                description="Top error patterns by frequency",
                params_model=ErrorSummaryParams,
                handler=handlers.get_error_summary,
            ),
            ToolDescriptor(
                name="query_metrics",
                description="Aggregate a metric into fixed-width time buckets",
                params_model=QueryMetricsParams,
                handler=handlers.query_metrics,
            ),
            ToolDescriptor(
                name="get_system_health",
                description="Storage usage and last-hour log and error counts",
                params_model=SystemHealthParams,
                handler=handlers.get_system_health,
            ),
        ]
    )
