"""Memory tool: a small markdown file of facts about the user."""

from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from agent_cowork.config import Config
from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)


def memory_path(config: Config) -> Path:
    return Path(config.features.memory_path).expanduser()


def load_memory(config: Config) -> str | None:
    """Return stored memory when the feature is enabled and non-empty."""
    if not config.features.enable_memory:
        return None
    path = memory_path(config)
    if not path.is_file():
        return None
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        log.warning("Failed to read memory file", path=str(path), error=str(e))
        return None
    return content or None


class MemoryTool(Tool):
    """Read and update long-lived memory about the user."""

    name = "Memory"
    description = (
        "Persistent memory about the user across sessions. Use 'add' to store a "
        "durable preference or fact, 'read' to review memory, 'clear' to erase it."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "Why memory is accessed",
            },
            "action": {
                "type": "string",
                "enum": ["read", "add", "clear"],
                "description": "Memory operation",
            },
            "content": {
                "type": "string",
                "description": "Fact to remember (required for 'add')",
            },
        },
        "required": ["action"],
    }

    def is_available(self, config: Config) -> bool:
        return config.features.enable_memory

    async def execute(
        self,
        context: ToolContext,
        action: Literal["read", "add", "clear"],
        content: str | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        path = memory_path(context.config)
        action = str(action or "").strip().lower()

        if action == "read":
            if not path.is_file():
                return ToolResult(success=True, output="Memory is empty.")
            text = path.read_text(encoding="utf-8").strip()
            return ToolResult(success=True, output=text or "Memory is empty.")

        if action == "add":
            fact = (content or "").strip()
            if not fact:
                return ToolResult(success=False, error="content is required for action 'add'")
            path.parent.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y-%m-%d")
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"- [{stamp}] {fact}\n")
            log.info("Memory updated", path=str(path))
            return ToolResult(success=True, output="Saved to memory.")

        if action == "clear":
            if path.exists():
                path.unlink()
            return ToolResult(success=True, output="Memory cleared.")

        return ToolResult(success=False, error=f"Unknown memory action: {action}")
