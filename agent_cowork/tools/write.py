"""Write tool for writing file contents."""

from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)


class WriteTool(Tool):
    """Write content to files."""

    name = "Write"
    description = "Create or overwrite a file inside the working directory."
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on why the file is written",
            },
            "path": {
                "type": "string",
                "description": "Path to the file, relative to the working directory",
            },
            "content": {
                "type": "string",
                "description": "Full content to write to the file",
            },
        },
        "required": ["path", "content"],
    }
    path_arguments = ("path",)

    async def execute(self, context: ToolContext, path: str, content: str, **kwargs: Any) -> ToolResult:
        """Write content to a file, creating parent directories."""
        file_path = context.resolve_path(path)
        if file_path.is_dir():
            return ToolResult(success=False, error=f"Path is a directory: {path}")

        existed = file_path.exists()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")

        verb = "Updated" if existed else "Created"
        return ToolResult(
            success=True,
            output=f"{verb} {context.display_path(file_path)} ({len(content)} chars)",
        )
