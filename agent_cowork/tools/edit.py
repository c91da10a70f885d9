"""Edit tool for exact string replacement in files."""

from typing import Any

from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)


class EditTool(Tool):
    """Replace text in an existing file."""

    name = "Edit"
    description = (
        "Replace an exact string in a file. old_string must match the file "
        "exactly and be unique unless replace_all is set."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "One sentence on what the edit changes",
            },
            "path": {
                "type": "string",
                "description": "Path to the file, relative to the working directory",
            },
            "old_string": {
                "type": "string",
                "description": "Exact text to replace",
            },
            "new_string": {
                "type": "string",
                "description": "Replacement text",
            },
            "replace_all": {
                "type": "boolean",
                "description": "Replace every occurrence (default false)",
            },
        },
        "required": ["path", "old_string", "new_string"],
    }
    path_arguments = ("path",)

    async def execute(
        self,
        context: ToolContext,
        path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        file_path = context.resolve_path(path)
        if not file_path.is_file():
            return ToolResult(success=False, error=f"File not found: {path}")
        if old_string == new_string:
            return ToolResult(success=False, error="old_string and new_string are identical")
        if not old_string:
            return ToolResult(success=False, error="old_string must not be empty")

        content = file_path.read_text(encoding="utf-8")
        occurrences = content.count(old_string)
        if occurrences == 0:
            return ToolResult(success=False, error=f"old_string not found in {path}")
        if occurrences > 1 and not replace_all:
            return ToolResult(
                success=False,
                error=(
                    f"old_string occurs {occurrences} times in {path}; "
                    "add surrounding context or set replace_all"
                ),
            )

        if replace_all:
            updated = content.replace(old_string, new_string)
        else:
            updated = content.replace(old_string, new_string, 1)
        file_path.write_text(updated, encoding="utf-8")

        replaced = occurrences if replace_all else 1
        log.debug("File edited", path=str(file_path), replacements=replaced)
        return ToolResult(
            success=True,
            output=f"Edited {context.display_path(file_path)} ({replaced} replacement(s))",
        )
