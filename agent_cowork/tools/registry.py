"""Tool base class, result model and the confined tool executor."""

import asyncio
import json
import os
import re
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, model_validator

from agent_cowork.config import Config, get_config
from agent_cowork.exceptions import (
    PathSecurityError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from agent_cowork.llm import ToolCall
from agent_cowork.logging import get_logger

log = get_logger(__name__)

SUCCESS_SENTINEL = "Success"

_ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=.*$")
_SHELL_SEPARATOR_TOKENS = {";", "&&", "||", "|", "&"}
_SHELL_WRAPPER_TOKENS = {"sudo", "command", "builtin", "nohup", "time"}


def _compile_shell_pattern(pattern: str) -> re.Pattern[str]:
    """Compile regex pattern with literal fallback for invalid regex input."""
    try:
        return re.compile(pattern)
    except re.error:
        return re.compile(re.escape(pattern))


def _split_shell_segments(command: str) -> list[list[str]]:
    """Split shell command into tokenized segments separated by control operators."""
    lexer = shlex.shlex(command, posix=True, punctuation_chars=";&|")
    lexer.whitespace_split = True
    lexer.commenters = ""
    segments: list[list[str]] = []
    current: list[str] = []
    for token in lexer:
        if token in _SHELL_SEPARATOR_TOKENS:
            if current:
                segments.append(current)
                current = []
            continue
        current.append(token)
    if current:
        segments.append(current)
    return segments


def _extract_segment_base_command(tokens: list[str]) -> str:
    """Extract executable command token from a tokenized shell segment."""
    for token in tokens:
        token = str(token).strip()
        if not token or token in _SHELL_WRAPPER_TOKENS:
            continue
        if _ASSIGNMENT_RE.match(token) and "/" not in token:
            continue
        return token
    return ""


def is_blocked_shell_command(command: str, blocked_patterns: list[str]) -> tuple[bool, str]:
    """Evaluate command against blocked patterns using parsed command matching.

    Patterns containing whitespace match whole segments; single-word patterns
    match the base command of each segment.
    """
    cleaned = str(command or "").strip()
    if not cleaned:
        return True, "empty_command"

    try:
        segments = _split_shell_segments(cleaned)
    except ValueError:
        return True, "unparseable_command"
    if not segments:
        return True, "unparseable_command"

    segment_texts = [" ".join(tokens) for tokens in segments]
    base_commands = [
        base
        for segment in segments
        if (base := _extract_segment_base_command(segment))
    ]
    if not base_commands:
        return True, "unparseable_command"

    for raw_pattern in blocked_patterns or []:
        pattern = str(raw_pattern or "").strip()
        if not pattern:
            continue
        compiled = _compile_shell_pattern(pattern)
        segment_level_pattern = bool(re.search(r"\s", pattern))
        targets = segment_texts if segment_level_pattern else base_commands
        matcher = compiled.search if segment_level_pattern else compiled.match
        for target in targets:
            if matcher(target):
                return True, pattern
    return False, ""


class ToolResult(BaseModel):
    """Result from tool execution."""

    success: bool = True
    output: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _normalize_failure_error(self) -> "ToolResult":
        """Ensure failed results always provide an error message."""
        if not self.success and not (self.error or "").strip():
            fallback = (self.output or "").strip()
            self.error = fallback or "Tool execution failed"
        return self

    def to_text(self) -> str:
        """Canonical text fed back to the model."""
        if self.success:
            return self.output or SUCCESS_SENTINEL
        return f"Error: {self.error}"


@dataclass(frozen=True)
class ToolContext:
    """Working directory boundary shared by all tools of one executor."""

    cwd: Path
    config: Config

    def is_path_safe(self, path: str | Path) -> bool:
        """Return whether ``path`` stays inside the working directory."""
        absolute = (self.cwd / Path(path).expanduser()).resolve()
        try:
            relative = Path(os.path.relpath(absolute, self.cwd))
        except ValueError:
            # Different drive on Windows.
            relative = absolute
        safe = not (relative.parts and relative.parts[0] == "..") and not relative.is_absolute()
        if not safe:
            log.warning(
                "Blocked access to path outside working directory",
                path=str(path),
                cwd=str(self.cwd),
            )
        return safe

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve ``path`` against the working directory or refuse it."""
        if not self.is_path_safe(path):
            raise PathSecurityError(str(path))
        return (self.cwd / Path(path).expanduser()).resolve()

    def display_path(self, path: Path) -> str:
        """Path relative to the working directory for tool output."""
        try:
            relative = path.resolve().relative_to(self.cwd)
        except ValueError:
            return str(path)
        return str(relative) if str(relative) != "." else "."


class Tool(ABC):
    """Base class for all tools."""

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {}
    timeout_seconds: float = 60.0
    path_arguments: tuple[str, ...] = ()

    @abstractmethod
    async def execute(self, context: ToolContext, **kwargs: Any) -> ToolResult:
        """Execute the tool.

        Args:
            context: Working directory boundary and config snapshot
            **kwargs: Tool-specific arguments

        Returns:
            ToolResult with success status and output
        """
        pass

    def is_available(self, config: Config) -> bool:
        """Whether the tool is offered to the model under ``config``."""
        return True

    async def close(self) -> None:
        """Release resources held by the tool."""
        return None

    def get_definition(self) -> dict[str, Any]:
        """Get the tool definition for the model.

        Returns:
            OpenAI function-style definition
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def validate_arguments(self, arguments: dict[str, Any]) -> None:
        """Validate required arguments are present.

        Raises:
            ToolExecutionError if a required argument is missing
        """
        required = self.parameters.get("required", [])
        for field in required:
            if arguments.get(field) is None:
                raise ToolExecutionError(
                    self.name,
                    f"Missing required argument: {field}",
                )


class ToolExecutor:
    """Dispatch tool calls inside one working directory.

    ``execute_tool`` never raises: unknown tools, bad arguments, paths outside
    the working directory and exceptions from tool bodies all come back as
    failed ``ToolResult`` values.
    """

    def __init__(
        self,
        cwd: Path | str,
        config: Config | None = None,
        tools: list[Tool] | None = None,
    ):
        config = config or get_config()
        self._context = ToolContext(cwd=Path(cwd).expanduser().resolve(), config=config)
        if tools is None:
            from agent_cowork.tools import default_tools

            tools = default_tools()
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    @property
    def cwd(self) -> Path:
        """Confinement boundary, fixed for the executor lifetime."""
        return self._context.cwd

    @property
    def context(self) -> ToolContext:
        return self._context

    def register(self, tool: Tool) -> None:
        """Register a tool; later registrations replace earlier ones."""
        if not tool.name:
            raise ValueError("Tool must have a name")
        log.debug("Registering tool", tool=tool.name)
        self._tools[tool.name] = tool

    def is_path_safe(self, path: str | Path) -> bool:
        return self._context.is_path_safe(path)

    def get(self, name: str) -> Tool:
        """Get an available tool by name.

        Raises:
            ToolNotFoundError if unknown or disabled by config
        """
        tool = self._tools.get(name)
        if tool is None or not tool.is_available(self._context.config):
            raise ToolNotFoundError(name)
        return tool

    def _available_tools(self) -> list[Tool]:
        return [tool for tool in self._tools.values() if tool.is_available(self._context.config)]

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self._available_tools()]

    def get_definitions(self) -> list[dict[str, Any]]:
        """Ordered tool schema offered to the model."""
        return [tool.get_definition() for tool in self._available_tools()]

    def _timeout_for(self, tool: Tool, arguments: dict[str, Any]) -> float:
        timeout_seconds = float(tool.timeout_seconds or 60.0)
        override = arguments.get("timeout")
        if override is not None:
            try:
                timeout_seconds = max(timeout_seconds, float(override) + 5.0)
            except (TypeError, ValueError):
                pass
        return max(1.0, timeout_seconds)

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool by name."""
        try:
            tool = self.get(name)
        except ToolNotFoundError as e:
            log.warning("Unknown tool requested", tool=name)
            return ToolResult(success=False, error=str(e))

        if not isinstance(arguments, dict):
            return ToolResult(success=False, error=f"Invalid tool arguments for {name}: expected an object")

        timeout_seconds = self._timeout_for(tool, arguments)
        try:
            tool.validate_arguments(arguments)
            for key in tool.path_arguments:
                value = arguments.get(key)
                if isinstance(value, str) and value.strip():
                    self._context.resolve_path(value)

            log.info("Executing tool", tool=name, args=arguments)
            result = await asyncio.wait_for(
                tool.execute(self._context, **arguments),
                timeout=timeout_seconds,
            )
            if not isinstance(result, ToolResult):
                raise ToolExecutionError(name, "Tool returned invalid result payload")
            log.info("Tool executed", tool=name, success=result.success)
            return result
        except asyncio.TimeoutError:
            label = int(timeout_seconds) if timeout_seconds.is_integer() else timeout_seconds
            log.error("Tool timed out", tool=name, timeout=label)
            return ToolResult(success=False, error=f"Execution timed out after {label}s")
        except PathSecurityError as e:
            return ToolResult(success=False, error=str(e))
        except ToolError as e:
            log.error("Tool execution failed", tool=name, error=str(e))
            return ToolResult(success=False, error=str(e))
        except Exception as e:
            log.error("Tool execution failed", tool=name, error=str(e))
            return ToolResult(success=False, error=str(e) or type(e).__name__)

    async def close(self) -> None:
        """Close every registered tool."""
        for tool in self._tools.values():
            try:
                await tool.close()
            except Exception as e:
                log.warning("Failed to close tool", tool=tool.name, error=str(e))

    async def execute_call(self, call: ToolCall) -> ToolResult:
        """Decode a streamed tool call's JSON arguments and execute it."""
        try:
            arguments = decode_tool_arguments(call.arguments)
        except ValueError as e:
            log.warning("Malformed tool arguments", tool=call.name, call_id=call.id, error=str(e))
            return ToolResult(success=False, error=f"Invalid tool arguments for {call.name}: {e}")
        return await self.execute_tool(call.name, arguments)


def decode_tool_arguments(raw: str) -> dict[str, Any]:
    """Decode a tool-call argument string into a dict.

    Raises:
        ValueError for malformed JSON or a non-object payload
    """
    if not raw or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"malformed JSON ({e.msg})") from e
    if not isinstance(value, dict):
        raise ValueError("arguments must be a JSON object")
    return value
