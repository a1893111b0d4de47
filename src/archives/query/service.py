"""Query operations: builder, executor and mapper composed per request.

Both surfaces call these. The HTTP routes call them directly; the tool
handlers call them after the registry has validated the parameters.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from whenever import Instant

from archives import __version__
from archives.models.config import ArchivesConfig, QueryLimits
from archives.models.requests import (
    ErrorSummaryRequest,
    LogSearchRequest,
    LogTailRequest,
    MetricQueryRequest,
)
from archives.models.responses import (
    ErrorSummary,
    HealthResponse,
    LogSearchResponse,
    MetricNamesResponse,
    MetricQueryResponse,
    RetentionInfo,
    StatusResponse,
    StorageStats,
    SystemHealth,
)

from . import builder, mapper
from .builder import BuiltQuery
from .executor import TelemetryStore

logger = logging.getLogger("archives.query")


async def _fetch_all(store: TelemetryStore, *queries: BuiltQuery) -> list[list[dict[str, Any]]]:
    """Run independent queries concurrently.

    The first failure cancels the queries still in flight and is re-raised
    unwrapped from its ExceptionGroup.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(store.fetch(query)) for query in queries]
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None
    return [task.result() for task in tasks]


class QueryService:
    """Per-process entry point to the telemetry store.

    Holds no per-request state; ``store`` is the shared pool and ``clock``
    supplies "now" for tail and hours-back windows.
    """

    def __init__(
        self,
        store: TelemetryStore,
        config: ArchivesConfig,
        *,
        clock: Callable[[], Instant] = Instant.now,
    ) -> None:
        self.store = store
        self.config = config
        self.clock = clock

    @property
    def limits(self) -> QueryLimits:
        return self.config.limits

    # -------------------------------------------------------------------------
    # Logs
    # -------------------------------------------------------------------------

    async def search_logs(self, request: LogSearchRequest) -> LogSearchResponse:
        query = builder.build_log_search(request, self.limits)
        rows = await self.store.fetch(query)
        logs = mapper.map_log_records(rows)
        return LogSearchResponse(count=len(logs), logs=logs)

    async def tail_logs(self, request: LogTailRequest) -> LogSearchResponse:
        query = builder.build_log_tail(request, self.limits, now=self.clock())
        rows = await self.store.fetch(query)
        logs = mapper.map_log_records(rows)
        return LogSearchResponse(count=len(logs), logs=logs)

    async def error_summary(self, request: ErrorSummaryRequest) -> ErrorSummary:
        queries = builder.build_error_summary(request, self.limits)
        pattern_rows, total_rows = await _fetch_all(self.store, queries.patterns, queries.total)
        return mapper.map_error_summary(pattern_rows, total_rows, request.time_range())

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    async def query_metrics(self, request: MetricQueryRequest) -> MetricQueryResponse:
        query = builder.build_metric_query(request)
        rows = await self.store.fetch(query)
        points = mapper.map_metric_points(rows)
        return MetricQueryResponse(
            metric_name=request.metric_name,
            aggregation=request.aggregation.value,
            interval_seconds=request.interval_seconds,
            data_points=len(points),
            data=points,
        )

    async def metric_names(self) -> MetricNamesResponse:
        rows = await self.store.fetch(builder.build_metric_names())
        return MetricNamesResponse(names=mapper.map_metric_names(rows))

    # -------------------------------------------------------------------------
    # Health / status
    # -------------------------------------------------------------------------

    async def storage_stats(self) -> StorageStats:
        rows = await self.store.fetch(builder.build_storage_stats(self.config.clickhouse.database))
        return mapper.map_storage_stats(rows)

    async def system_health(self) -> SystemHealth:
        """Recomputed on every call."""
        queries = builder.build_system_health(self.config.clickhouse.database, now=self.clock())
        storage_rows, total_rows, error_rows = await _fetch_all(self.store, *queries)
        return SystemHealth(
            status="operational",
            storage=mapper.map_storage_stats(storage_rows),
            last_hour=mapper.map_last_hour(total_rows, error_rows),
        )

    async def status(self) -> StatusResponse:
        return StatusResponse(
            status="operational",
            version=__version__,
            storage=await self.storage_stats(),
            retention=RetentionInfo(
                log_retention_days=self.config.retention.log_retention_days,
                metrics_retention_days=self.config.retention.metrics_retention_days,
            ),
        )

    async def health(self) -> HealthResponse:
        connected = await self.store.ping()
        if not connected:
            logger.warning("Health check: store not reachable")
        return HealthResponse(
            status="healthy" if connected else "degraded",
            store_connected=connected,
        )
