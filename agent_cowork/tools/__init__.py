"""Tools package for Agent Cowork."""

from agent_cowork.tools.registry import (
    Tool,
    ToolContext,
    ToolExecutor,
    ToolResult,
)
from agent_cowork.tools.bash import BashTool
from agent_cowork.tools.read import ReadTool
from agent_cowork.tools.write import WriteTool
from agent_cowork.tools.edit import EditTool
from agent_cowork.tools.glob import GlobTool
from agent_cowork.tools.grep import GrepTool
from agent_cowork.tools.web_search import ExtractPageContentTool, WebSearchTool
from agent_cowork.tools.memory import MemoryTool


def default_tools() -> list[Tool]:
    """Built-in tools in the order they are offered to the model."""
    return [
        BashTool(),
        ReadTool(),
        WriteTool(),
        EditTool(),
        GlobTool(),
        GrepTool(),
        WebSearchTool(),
        ExtractPageContentTool(),
        MemoryTool(),
    ]


__all__ = [
    "Tool",
    "ToolContext",
    "ToolExecutor",
    "ToolResult",
    "BashTool",
    "ReadTool",
    "WriteTool",
    "EditTool",
    "GlobTool",
    "GrepTool",
    "WebSearchTool",
    "ExtractPageContentTool",
    "MemoryTool",
    "default_tools",
]
