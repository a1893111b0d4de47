"""Query engine: builder, executor, mapper and the service composing them."""

from .builder import BuiltQuery
from .executor import QueryExecutor, TelemetryStore
from .service import QueryService

__all__ = [
    "BuiltQuery",
    "QueryExecutor",
    "QueryService",
    "TelemetryStore",
]
