"""MCP tool-invocation surface.

POST /mcp takes ``{tool, params}`` and always answers 200 with a
ToolEnvelope; tool failures are reported inside the envelope, never as an
HTTP status. GET /tools lists the catalogue for agent discovery.
"""

import logging
from collections.abc import Callable

from fastapi import FastAPI, Request
from whenever import Instant

from archives import __version__
from archives.api import Service, add_cors, install_error_handlers, store_lifespan
from archives.models import (
    ArchivesConfig,
    HealthResponse,
    ToolEnvelope,
    ToolInfo,
    ToolInvocation,
    load_config,
)
from archives.query import QueryService, TelemetryStore
from archives.tools import ToolRegistry, build_default_registry

logger = logging.getLogger("archives.mcp")


def _attach_registry(app: FastAPI, service: QueryService) -> None:
    app.state.registry = build_default_registry(service)
    logger.info("Registered tools: %s", ", ".join(app.state.registry.names()))


def get_registry(request: Request) -> ToolRegistry:
    return request.app.state.registry


def create_app(
    config: ArchivesConfig | None = None,
    store: TelemetryStore | None = None,
    *,
    clock: Callable[[], Instant] = Instant.now,
) -> FastAPI:
    """Build the MCP surface."""
    config = config or load_config()

    app = FastAPI(
        title="Archives MCP",
        description="Tool invocation endpoint for AI agents.",
        version=__version__,
        lifespan=store_lifespan(config, store, clock=clock, on_ready=_attach_registry),
    )
    add_cors(app)
    install_error_handlers(app)

    @app.post("/mcp", response_model_exclude_unset=True)
    async def invoke(invocation: ToolInvocation, request: Request) -> ToolEnvelope:
        """Dispatch one tool call."""
        return await get_registry(request).dispatch(invocation.tool, invocation.params)

    @app.get("/tools")
    async def list_tools(request: Request) -> list[ToolInfo]:
        return get_registry(request).describe()

    @app.get("/ping")
    async def ping() -> dict[str, bool]:
        return {"pong": True}

    @app.get("/health")
    async def health(service: Service) -> HealthResponse:
        return await service.health()

    return app
