"""Error taxonomy for the Archives query layer.

Every failure that crosses a layer boundary is one of these types. Layers
below the transport adapters raise them and never downgrade one kind into
another; the adapters alone decide the final status code or envelope.

Kinds:
- InvalidRequest / InvalidParameter / InvalidSeverity: client input (400)
- UnknownTool: dispatch miss (404)
- StoreUnavailable: cannot connect or pool exhausted (503)
- StoreQueryFailed: the store rejected the query (500)
- StoreTimeout: deadline exceeded (504)
- MalformedRow: a required column is missing from a result row (500)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class ArchivesError(Exception):
    """Base class for all typed Archives errors."""

    kind: str = "ArchivesError"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ArchivesError):
    """A request is structurally valid but semantically unusable."""

    kind = "InvalidRequest"
    status_code = 400


class InvalidParameter(ArchivesError):
    """A single input parameter is missing or has the wrong type."""

    kind = "InvalidParameter"
    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid parameter '{field}': {reason}")
        self.field = field
        self.reason = reason


class InvalidSeverity(InvalidParameter):
    """A severity name outside TRACE..FATAL."""

    kind = "InvalidSeverity"

    def __init__(self, name: object, field: str = "min_severity") -> None:
        super().__init__(field, f"unknown severity {name!r}")
        self.name = name


class UnknownTool(ArchivesError):
    kind = "UnknownTool"
    status_code = 404

    def __init__(self, tool: str) -> None:
        super().__init__(f"Unknown tool: {tool}")
        self.tool = tool


class StoreUnavailable(ArchivesError):
    kind = "StoreUnavailable"
    status_code = 503


class StoreQueryFailed(ArchivesError):
    kind = "StoreQueryFailed"
    status_code = 500


class StoreTimeout(ArchivesError):
    kind = "StoreTimeout"
    status_code = 504


class MalformedRow(ArchivesError):
    kind = "MalformedRow"
    status_code = 500

    def __init__(self, field: str, detail: str = "missing required field") -> None:
        super().__init__(f"Malformed row: {detail} '{field}'")
        self.field = field


def parameter_error(details: Sequence[Mapping[str, Any]]) -> InvalidParameter:
    """Translate pydantic error details into the first offending parameter.

    ``details`` is ``ValidationError.errors()``. Location prefixes added by
    FastAPI (``body``, ``query``) are skipped so the field name is the one
    the caller sent.
    """
    if not details:
        return InvalidParameter("params", "invalid input")
    first = details[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    field = loc[0] if loc else "params"
    error_type = first.get("type", "")
    if error_type == "invalid_severity":
        return InvalidSeverity(first.get("input"), field)
    if error_type == "missing":
        return InvalidParameter(field, "required parameter is missing")
    if error_type == "extra_forbidden":
        return InvalidParameter(field, "unexpected parameter")
    return InvalidParameter(field, first.get("msg", "invalid value"))
