"""Glob tool for finding files by pattern."""

import asyncio
from pathlib import Path
from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)


class GlobTool(Tool):
    """Find files by pattern."""

    name = "Glob"
    description = (
        "Find files matching a glob pattern (e.g. '**/*.py'). "
        "Results are sorted by modification time, newest first."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on what is being looked for",
            },
            "pattern": {
                "type": "string",
                "description": "Glob pattern (e.g., '**/*.py', 'src/**/*.ts')",
            },
            "path": {
                "type": "string",
                "description": "Directory to search from (default: working directory)",
            },
        },
        "required": ["pattern"],
    }
    path_arguments = ("path",)

    @staticmethod
    def _find(context: ToolContext, root: Path, pattern: str) -> list[Path]:
        matches: list[Path] = []
        for match in root.glob(pattern):
            if not match.is_file():
                continue
            try:
                match.resolve().relative_to(context.cwd)
            except ValueError:
                continue
            matches.append(match)
        matches.sort(key=lambda item: item.stat().st_mtime, reverse=True)
        return matches

    async def execute(
        self,
        context: ToolContext,
        pattern: str,
        path: str | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        """Find files matching pattern.

        Args:
            pattern: Glob pattern relative to the search root
            path: Optional search root

        Returns:
            ToolResult with matching files
        """
        if Path(pattern).is_absolute():
            return ToolResult(success=False, error="Pattern must be relative to the search path")

        root = context.resolve_path(path) if path else context.cwd
        if not root.is_dir():
            return ToolResult(success=False, error=f"Not a directory: {path}")

        matches = await asyncio.to_thread(self._find, context, root, pattern)
        if not matches:
            return ToolResult(success=True, output=f"No files found matching: {pattern}")

        limit = context.config.tools.glob.max_results
        shown = matches[:limit]
        output = f"Found {len(matches)} file(s):\n"
        output += "\n".join(context.display_path(match) for match in shown)
        if len(matches) > limit:
            output += f"\n... [{len(matches) - limit} more not shown]"
        return ToolResult(success=True, output=output)
