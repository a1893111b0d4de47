"""FastAPI HTTP surface for log and metric queries.

Thin adapter: routes parse the body into a request model, call the
QueryService and return its typed response. Every ArchivesError is mapped
to ``{"error": <message>}`` with the status its class declares; body
validation failures are mapped to 400 with the same shape.

The store pool is created in the lifespan and lives on ``app.state``.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from whenever import Instant

from archives import __version__
from archives.errors import ArchivesError, parameter_error
from archives.models import (
    ArchivesConfig,
    ErrorResponse,
    ErrorSummary,
    ErrorSummaryParams,
    ErrorSummaryRequest,
    HealthResponse,
    LogSearchRequest,
    LogSearchResponse,
    LogTailRequest,
    MetricNamesResponse,
    MetricQueryRequest,
    MetricQueryResponse,
    StatusResponse,
    TimeRange,
    load_config,
)
from archives.query import QueryExecutor, QueryService, TelemetryStore

logger = logging.getLogger("archives.api")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


# =============================================================================
# SHARED WIRING (also used by the MCP surface)
# =============================================================================


def store_lifespan(
    config: ArchivesConfig,
    store: TelemetryStore | None = None,
    *,
    clock: Callable[[], Instant] = Instant.now,
    on_ready: Callable[[FastAPI, QueryService], None] | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Lifespan that owns the store pool for one app.

    When ``store`` is given (tests, embedding) it is used as-is and not
    closed; otherwise a QueryExecutor is created on startup and closed on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        executor: QueryExecutor | None = None
        if store is None:
            executor = QueryExecutor(config.clickhouse)
            if await executor.ping():
                logger.info("Connected to ClickHouse at %s", config.clickhouse.url)
            else:
                logger.warning(
                    "ClickHouse at %s not reachable; serving degraded", config.clickhouse.url
                )
        service = QueryService(store if store is not None else executor, config, clock=clock)
        app.state.service = service
        if on_ready is not None:
            on_ready(app, service)
        try:
            yield
        finally:
            if executor is not None:
                await executor.close()

    return lifespan


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ArchivesError)
    async def archives_error_handler(request: Request, exc: ArchivesError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = parameter_error(exc.errors())
        return JSONResponse(status_code=error.status_code, content={"error": error.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def add_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]  # Starlette middleware typing
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


def get_service(request: Request) -> QueryService:
    return request.app.state.service


Service = Annotated[QueryService, Depends(get_service)]


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================


def create_app(
    config: ArchivesConfig | None = None,
    store: TelemetryStore | None = None,
    *,
    clock: Callable[[], Instant] = Instant.now,
) -> FastAPI:
    """Build the HTTP surface."""
    config = config or load_config()

    app = FastAPI(
        title="Archives API",
        description="Search logs and query metrics stored in ClickHouse.",
        version=__version__,
        lifespan=store_lifespan(config, store, clock=clock),
    )
    add_cors(app)
    install_error_handlers(app)

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/health")
    async def health(service: Service) -> HealthResponse:
        """Liveness plus store connectivity."""
        return await service.health()

    @app.get("/v1/status", responses=_ERROR_RESPONSES)
    async def status(service: Service) -> StatusResponse:
        """Row and byte counts with retention settings."""
        return await service.status()

    @app.post("/v1/logs/search", responses=_ERROR_RESPONSES)
    async def search_logs(body: LogSearchRequest, service: Service) -> LogSearchResponse:
        return await service.search_logs(body)

    @app.post("/v1/logs/tail", responses=_ERROR_RESPONSES)
    async def tail_logs(body: LogTailRequest, service: Service) -> LogSearchResponse:
        return await service.tail_logs(body)

    @app.post("/v1/errors/summary", responses=_ERROR_RESPONSES)
    async def error_summary(params: ErrorSummaryParams, service: Service) -> ErrorSummary:
        """Top error patterns over the last ``hours`` or an explicit range."""
        start, end = TimeRange.resolve(
            hours=params.hours, start=params.start, end=params.end, now=service.clock()
        ).iso()
        return await service.error_summary(
            ErrorSummaryRequest(start=start, end=end, limit=params.limit)
        )

    @app.get("/v1/metrics/names", responses=_ERROR_RESPONSES)
    async def metric_names(service: Service) -> MetricNamesResponse:
        return await service.metric_names()

    @app.post("/v1/metrics/query", responses=_ERROR_RESPONSES)
    async def query_metrics(body: MetricQueryRequest, service: Service) -> MetricQueryResponse:
        return await service.query_metrics(body)

    return app
