"""Read tool for reading file contents."""

import asyncio
from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)


class ReadTool(Tool):
    """Read file contents."""

    name = "Read"
    description = (
        "Read a text file inside the working directory. "
        "Lines are returned with 1-based line numbers."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on why the file is read",
            },
            "path": {
                "type": "string",
                "description": "Path to the file, relative to the working directory",
            },
            "offset": {
                "type": "number",
                "description": "Line number to start reading from (1-indexed)",
            },
            "limit": {
                "type": "number",
                "description": "Maximum number of lines to read",
            },
        },
        "required": ["path"],
    }
    path_arguments = ("path",)

    async def execute(
        self,
        context: ToolContext,
        path: str,
        offset: int | None = None,
        limit: int | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        """Read a file.

        Args:
            path: Path to file
            offset: Optional 1-based start line
            limit: Optional line limit

        Returns:
            ToolResult with numbered file contents
        """
        file_path = context.resolve_path(path)

        if not file_path.exists():
            return ToolResult(success=False, error=f"File not found: {path}")
        if not file_path.is_file():
            return ToolResult(success=False, error=f"Not a file: {path}")

        read_cfg = context.config.tools.read
        file_size = file_path.stat().st_size
        if file_size > read_cfg.max_bytes:
            return ToolResult(
                success=False,
                error=f"File too large: {file_size} bytes (max {read_cfg.max_bytes})",
            )

        try:
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except UnicodeDecodeError:
            return ToolResult(success=False, error=f"Not a UTF-8 text file: {path}")

        lines = content.splitlines()
        if not lines:
            return ToolResult(success=True, output=f"[{context.display_path(file_path)} is empty]")

        start = max(1, int(offset or 1))
        if start > len(lines):
            return ToolResult(
                success=False,
                error=f"Offset {start} is beyond end of file ({len(lines)} lines)",
            )
        if limit is None:
            count = read_cfg.default_limit
        elif int(limit) < 1:
            return ToolResult(success=False, error=f"Limit must be a positive number of lines, got {limit}")
        else:
            count = int(limit)
        selected = lines[start - 1:start - 1 + count]

        numbered = "\n".join(
            f"{number:>6}\t{line}" for number, line in enumerate(selected, start=start)
        )
        end = start + len(selected) - 1
        header = f"[{context.display_path(file_path)} lines {start}-{end} of {len(lines)}]"
        return ToolResult(success=True, output=f"{header}\n{numbered}")
