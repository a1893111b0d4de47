"""Tool registry: tool name -> {parameter model, handler}.

Built once at startup from a fixed list of descriptors and immutable from
then on. ``dispatch`` is the only entry point the MCP surface uses:

1. look the tool up (UnknownTool, with no store access, if absent)
2. validate the raw parameters into the tool's model in one pass
   (InvalidParameter / InvalidSeverity naming the field)
3. run the handler
4. wrap the result or typed error in a ToolEnvelope
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ValidationError

from archives.errors import ArchivesError, UnknownTool, parameter_error
from archives.models.tools import ParameterSpec, ToolEnvelope, ToolInfo

logger = logging.getLogger("archives.tools")

Handler = Callable[[Any], Awaitable[BaseModel]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A named tool with its parameter model and handler."""

    name: str
    description: str
    params_model: type[BaseModel]
    handler: Handler

    def parameter_schema(self) -> dict[str, ParameterSpec]:
        """Parameter name -> {type, required, default}, read off the model."""
        schema = self.params_model.model_json_schema()
        properties = schema.get("properties", {})
        specs = {}
        for name, field in self.params_model.model_fields.items():
            prop = properties.get(name, {})
            specs[name] = ParameterSpec(
                type=_json_type(prop),
                required=field.is_required(),
                default=None if field.is_required() else _jsonable(field.default),
                description=field.description,
            )
        return specs

    def info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            description=self.description,
            parameters=self.parameter_schema(),
        )


def _json_type(prop: Mapping[str, Any]) -> str:
    if "type" in prop:
        return str(prop["type"])
    # Optional fields render as anyOf [<type>, null]; enums as a $ref.
    for option in prop.get("anyOf", []):
        if option.get("type") not in (None, "null"):
            return str(option["type"])
    if "$ref" in prop or "allOf" in prop or prop.get("anyOf"):
        return "string"
    return "any"


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    return str(value)


class ToolRegistry:
    """Immutable mapping of tool names to descriptors."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]) -> None:
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise ValueError(f"Tool '{descriptor.name}' is already registered")
            tools[descriptor.name] = descriptor
        self._tools = MappingProxyType(tools)

    @property
    def tools(self) -> Mapping[str, ToolDescriptor]:
        return self._tools

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> list[ToolInfo]:
        return [descriptor.info() for descriptor in self._tools.values()]

    def validate(self, name: str, params: Mapping[str, Any] | None) -> BaseModel:
        """Coerce raw parameters into the tool's model, defaults applied."""
        descriptor = self.get(name)
        try:
            return descriptor.params_model.model_validate(dict(params or {}))
        except ValidationError as e:
            raise parameter_error(e.errors()) from None

    async def invoke(self, name: str, params: Mapping[str, Any] | None = None) -> BaseModel:
        """Validate and run a tool, raising its typed error on failure."""
        descriptor = self.get(name)
        validated = self.validate(name, params)
        return await descriptor.handler(validated)

    async def dispatch(self, name: str, params: Mapping[str, Any] | None = None) -> ToolEnvelope:
        """Run a tool and wrap the outcome in the uniform envelope."""
        logger.info("Tool invocation: %s", name)
        try:
            result = await self.invoke(name, params)
        except ArchivesError as e:
            logger.warning("Tool %s failed: %s (%s)", name, e.kind, e.message)
            return ToolEnvelope(success=False, error=e.kind, message=e.message)
        except Exception:
            logger.exception("Tool %s failed unexpectedly", name)
            return ToolEnvelope(
                success=False, error="InternalError", message="Internal server error"
            )
        return ToolEnvelope(success=True, data=result.model_dump(mode="json"))
