"""Query executor: runs built queries against ClickHouse over HTTP.

One ``httpx.AsyncClient`` is the connection pool. It is created by the
surface lifespan, shared by every in-flight request, and closed on
shutdown. The pool caps concurrent connections at ``pool_size``; requests
beyond that wait up to ``pool_wait_seconds`` for a free connection and
then fail with StoreUnavailable.

Bound parameters travel as ``param_<name>`` URL parameters, so the SQL
body never contains a caller-supplied value.
"""

import asyncio
import json
import logging
from typing import Any, Protocol

import httpx

from archives.errors import StoreQueryFailed, StoreTimeout, StoreUnavailable
from archives.models.config import ClickHouseConfig

from .builder import BuiltQuery, build_ping

logger = logging.getLogger("archives.executor")

OUTPUT_FORMAT = "JSONEachRow"

# Failures where no request reached the store; safe to retry once.
_RETRYABLE = (httpx.ConnectError, httpx.ConnectTimeout)


class TelemetryStore(Protocol):
    """What the rest of the query layer needs from the store."""

    async def fetch(self, query: BuiltQuery) -> list[dict[str, Any]]: ...

    async def ping(self) -> bool: ...


def encode_parameter(value: Any) -> str:
    """Render a bound value in ClickHouse's text format for ``param_*``."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int | float):
        return str(value)
    text = str(value)
    return (
        text.replace("\\", "\\\\")
        .replace("\t", "\\t")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def parse_rows(body: str) -> list[dict[str, Any]]:
    """Decode a JSONEachRow body into row dicts."""
    return [json.loads(line) for line in body.splitlines() if line.strip()]


class QueryExecutor:
    """Pooled ClickHouse HTTP client implementing ``TelemetryStore``."""

    def __init__(
        self,
        config: ClickHouseConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        headers = {}
        if config.username:
            headers["X-ClickHouse-User"] = config.username
        if config.password:
            headers["X-ClickHouse-Key"] = config.password

        self._client = httpx.AsyncClient(
            base_url=config.url,
            headers=headers,
            limits=httpx.Limits(
                max_connections=config.pool_size,
                max_keepalive_connections=config.pool_size,
            ),
            timeout=httpx.Timeout(config.query_timeout_seconds, pool=config.pool_wait_seconds),
            transport=transport,
        )
        logger.info(
            "Created ClickHouse pool for %s (max %d connections)", config.url, config.pool_size
        )

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Closed ClickHouse pool")

    def _request_params(self, query: BuiltQuery) -> dict[str, str]:
        params = {
            "database": self._config.database,
            "max_execution_time": str(int(self._config.query_timeout_seconds)),
            "output_format_json_quote_64bit_integers": "0",
        }
        for name, value in query.parameters.items():
            params[f"param_{name}"] = encode_parameter(value)
        return params

    async def _send(self, query: BuiltQuery) -> httpx.Response:
        """POST the query, retrying once if the connection could not be made."""
        content = f"{query.sql}\nFORMAT {OUTPUT_FORMAT}"
        params = self._request_params(query)
        for attempt in (1, 2):
            try:
                return await self._client.post("/", params=params, content=content)
            except _RETRYABLE as e:
                if attempt == 2:
                    raise StoreUnavailable(f"Cannot connect to ClickHouse: {e}") from e
                logger.warning(
                    "ClickHouse connection failed (%s), retrying in %.2fs",
                    e,
                    self._config.retry_backoff_seconds,
                )
                await asyncio.sleep(self._config.retry_backoff_seconds)
            except httpx.PoolTimeout as e:
                raise StoreUnavailable(
                    f"No store connection free within {self._config.pool_wait_seconds}s"
                ) from e
            except httpx.TimeoutException as e:
                raise StoreTimeout(f"Query '{query.name}' timed out") from e
            except httpx.TransportError as e:
                raise StoreUnavailable(f"ClickHouse transport error: {e}") from e
        raise AssertionError("unreachable")

    async def fetch(self, query: BuiltQuery) -> list[dict[str, Any]]:
        """Execute a query and return its rows in store order.

        Raises:
            StoreUnavailable: no connection could be made or the pool is exhausted.
            StoreQueryFailed: the store rejected the query. Never retried.
            StoreTimeout: the query ran past ``query_timeout_seconds``.
        """
        try:
            async with asyncio.timeout(self._config.query_timeout_seconds):
                response = await self._send(query)
        except TimeoutError:
            raise StoreTimeout(
                f"Query '{query.name}' exceeded {self._config.query_timeout_seconds}s"
            ) from None

        if not response.is_success:
            detail = response.text.strip()
            logger.error(
                "ClickHouse rejected query %s (HTTP %d): %s",
                query.name,
                response.status_code,
                detail,
            )
            raise StoreQueryFailed(f"Query '{query.name}' failed: {detail}")

        try:
            return parse_rows(response.text)
        except json.JSONDecodeError as e:
            raise StoreQueryFailed(f"Query '{query.name}' returned unreadable rows: {e}") from e

    async def ping(self) -> bool:
        """True when the store answers ``SELECT 1``."""
        try:
            await self.fetch(build_ping())
        except (StoreUnavailable, StoreTimeout, StoreQueryFailed) as e:
            logger.warning("ClickHouse ping failed: %s", e.message)
            return False
        return True
