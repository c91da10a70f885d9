"""Grep tool for searching file contents."""

import asyncio
import fnmatch
import re
from pathlib import Path
from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)

_SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"}


class GrepTool(Tool):
    """Search file contents with a regular expression."""

    name = "Grep"
    description = (
        "Search file contents with a regular expression. "
        "Returns matching lines as 'file:line: text'."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on what is being searched for",
            },
            "pattern": {
                "type": "string",
                "description": "Regular expression (Python syntax)",
            },
            "path": {
                "type": "string",
                "description": "File or directory to search (default: working directory)",
            },
            "glob": {
                "type": "string",
                "description": "Only search files whose name matches this glob (e.g. '*.py')",
            },
            "ignore_case": {
                "type": "boolean",
                "description": "Case-insensitive search",
            },
            "max_results": {
                "type": "number",
                "description": "Maximum matching lines to return",
            },
        },
        "required": ["pattern"],
    }
    path_arguments = ("path",)

    @staticmethod
    def _iter_files(context: ToolContext, root: Path, name_glob: str | None):
        if root.is_file():
            yield root
            return
        for candidate in sorted(root.rglob("*")):
            if any(part in _SKIPPED_DIRS for part in candidate.relative_to(root).parts[:-1]):
                continue
            if not candidate.is_file():
                continue
            if name_glob and not fnmatch.fnmatch(candidate.name, name_glob):
                continue
            # Symlinks may point outside the working directory.
            if not context.is_path_safe(candidate):
                continue
            yield candidate

    def _search(
        self,
        context: ToolContext,
        root: Path,
        regex: re.Pattern[str],
        name_glob: str | None,
        limit: int,
    ) -> tuple[list[str], bool]:
        max_file_bytes = context.config.tools.grep.max_file_bytes
        results: list[str] = []
        for file_path in self._iter_files(context, root, name_glob):
            try:
                if file_path.stat().st_size > max_file_bytes:
                    continue
                text = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            display = context.display_path(file_path)
            for number, line in enumerate(text.splitlines(), start=1):
                if regex.search(line):
                    if len(results) >= limit:
                        return results, True
                    results.append(f"{display}:{number}: {line.strip()[:300]}")
        return results, False

    async def execute(
        self,
        context: ToolContext,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
        ignore_case: bool = False,
        max_results: int | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        try:
            regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
        except re.error as e:
            return ToolResult(success=False, error=f"Invalid regular expression: {e}")

        root = context.resolve_path(path) if path else context.cwd
        if not root.exists():
            return ToolResult(success=False, error=f"Path not found: {path}")

        limit = int(max_results) if max_results else context.config.tools.grep.max_results
        limit = max(1, limit)
        results, truncated = await asyncio.to_thread(
            self._search, context, root, regex, glob, limit
        )
        if not results:
            return ToolResult(success=True, output=f"No matches found for: {pattern}")

        output = "\n".join(results)
        if truncated:
            output += f"\n... [stopped after {limit} matches]"
        return ToolResult(success=True, output=output)
