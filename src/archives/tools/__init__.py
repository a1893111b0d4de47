"""Tool dispatch for the MCP surface."""

from .handlers import ToolHandlers, build_default_registry
from .registry import ToolDescriptor, ToolRegistry

__all__ = [
    "ToolDescriptor",
    "ToolHandlers",
    "ToolRegistry",
    "build_default_registry",
]
