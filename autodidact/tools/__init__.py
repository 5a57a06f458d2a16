"""Tool catalog: generated helper tools and their usage."""

from autodidact.tools.catalog import ToolCatalog, sanitize_name
from autodidact.tools.models import ParamSpec, ToolNeed, ToolResult, ToolSpec, ToolType

__all__ = ["ParamSpec", "ToolCatalog", "ToolNeed", "ToolResult", "ToolSpec", "ToolType", "sanitize_name"]
