import asyncio
from pathlib import Path

import pytest

from agent_cowork.config import Config
from agent_cowork.llm import ToolCall
from agent_cowork.tools.registry import (
    Tool,
    ToolContext,
    ToolExecutor,
    ToolResult,
    decode_tool_arguments,
    is_blocked_shell_command,
)


class EchoTool(Tool):
    name = "Echo"
    description = "Echo text back"
    parameters = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }

    async def execute(self, context: ToolContext, text: str, **kwargs) -> ToolResult:
        return ToolResult(success=True, output=text)


class SlowTool(Tool):
    name = "Slow"
    description = "Sleeps forever"
    parameters = {"type": "object", "properties": {}, "required": []}
    timeout_seconds = 0.05

    async def execute(self, context: ToolContext, **kwargs) -> ToolResult:
        await asyncio.sleep(10)
        return ToolResult(success=True, output="never")


class BoomTool(Tool):
    name = "Boom"
    description = "Always raises"
    parameters = {"type": "object", "properties": {}, "required": []}

    async def execute(self, context: ToolContext, **kwargs) -> ToolResult:
        raise RuntimeError("kaboom")


class HiddenTool(EchoTool):
    name = "Hidden"

    def is_available(self, config: Config) -> bool:
        return False


def _executor(cwd: Path, tools: list[Tool] | None = None) -> ToolExecutor:
    return ToolExecutor(cwd, Config(), tools=tools)


def test_tool_result_renders_success_sentinel_and_error_prefix():
    assert ToolResult(success=True).to_text() == "Success"
    assert ToolResult(success=True, output="done").to_text() == "done"
    assert ToolResult(success=False, error="bad").to_text() == "Error: bad"


def test_failed_tool_result_gets_fallback_error():
    assert ToolResult(success=False).error == "Tool execution failed"
    assert ToolResult(success=False, output="partial").error == "partial"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("notes.txt", True),
        ("src/../notes.txt", True),
        (".", True),
        ("../outside.txt", False),
        ("../../etc/passwd", False),
        ("/etc/passwd", False),
        ("src/../../outside", False),
    ],
)
def test_is_path_safe_confines_to_working_directory(tmp_path: Path, path: str, expected: bool):
    executor = _executor(tmp_path, tools=[])
    assert executor.is_path_safe(path) is expected


def test_absolute_path_inside_working_directory_is_safe(tmp_path: Path):
    executor = _executor(tmp_path, tools=[])
    assert executor.is_path_safe(str(tmp_path / "a" / "b.txt")) is True


def test_sibling_directory_with_shared_prefix_is_unsafe(tmp_path: Path):
    root = tmp_path / "project"
    root.mkdir()
    executor = _executor(root, tools=[])
    assert executor.is_path_safe(str(tmp_path / "project-evil" / "x")) is False


def test_symlink_escaping_working_directory_is_unsafe(tmp_path: Path):
    root = tmp_path / "project"
    root.mkdir()
    outside = tmp_path / "secret"
    outside.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)
    executor = _executor(root, tools=[])
    assert executor.is_path_safe("link/key.txt") is False


def test_cwd_is_resolved_and_read_only(tmp_path: Path):
    executor = _executor(tmp_path / "sub" / "..", tools=[])
    assert executor.cwd == tmp_path.resolve()
    with pytest.raises(AttributeError):
        executor.cwd = Path("/")  # type: ignore[misc]


def test_default_tool_schema_order_without_memory(tmp_path: Path):
    executor = ToolExecutor(tmp_path, Config())
    names = [item["function"]["name"] for item in executor.get_definitions()]
    assert names == [
        "Bash",
        "Read",
        "Write",
        "Edit",
        "Glob",
        "Grep",
        "WebSearch",
        "ExtractPageContent",
    ]
    assert all(item["type"] == "function" for item in executor.get_definitions())
    assert executor.get_definitions()[1]["function"]["parameters"]["required"] == ["path"]


def test_memory_tool_offered_only_when_enabled(tmp_path: Path):
    cfg = Config()
    cfg.features.enable_memory = True
    executor = ToolExecutor(tmp_path, cfg)
    assert executor.tool_names[-1] == "Memory"


@pytest.mark.asyncio
async def test_unknown_tool_returns_failure(tmp_path: Path):
    executor = _executor(tmp_path, tools=[EchoTool()])
    result = await executor.execute_tool("Nope", {})
    assert result.success is False
    assert result.error == "Unknown tool: Nope"


@pytest.mark.asyncio
async def test_unavailable_tool_is_reported_as_unknown(tmp_path: Path):
    executor = _executor(tmp_path, tools=[HiddenTool()])
    assert executor.get_definitions() == []
    result = await executor.execute_tool("Hidden", {"text": "x"})
    assert result.success is False
    assert "Unknown tool" in result.error


@pytest.mark.asyncio
async def test_missing_required_argument_names_it(tmp_path: Path):
    executor = _executor(tmp_path, tools=[EchoTool()])
    result = await executor.execute_tool("Echo", {})
    assert result.success is False
    assert "text" in result.error


@pytest.mark.asyncio
async def test_tool_exception_becomes_failure(tmp_path: Path):
    executor = _executor(tmp_path, tools=[BoomTool()])
    result = await executor.execute_tool("Boom", {})
    assert result.success is False
    assert result.error == "kaboom"


@pytest.mark.asyncio
async def test_tool_timeout_becomes_failure(tmp_path: Path):
    executor = _executor(tmp_path, tools=[SlowTool()])
    result = await executor.execute_tool("Slow", {})
    assert result.success is False
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_execute_call_decodes_arguments(tmp_path: Path):
    executor = _executor(tmp_path, tools=[EchoTool()])
    result = await executor.execute_call(ToolCall(id="c1", name="Echo", arguments='{"text": "hi"}'))
    assert result.success is True
    assert result.output == "hi"


@pytest.mark.asyncio
async def test_execute_call_with_malformed_json_fails_without_raising(tmp_path: Path):
    executor = _executor(tmp_path, tools=[EchoTool()])
    result = await executor.execute_call(ToolCall(id="c1", name="Echo", arguments='{"text": '))
    assert result.success is False
    assert result.error.startswith("Invalid tool arguments for Echo")


@pytest.mark.asyncio
async def test_execute_call_with_non_object_arguments_fails(tmp_path: Path):
    executor = _executor(tmp_path, tools=[EchoTool()])
    result = await executor.execute_call(ToolCall(id="c1", name="Echo", arguments="[1, 2]"))
    assert result.success is False
    assert "JSON object" in result.error


@pytest.mark.asyncio
async def test_read_outside_working_directory_is_denied(tmp_path: Path):
    project = tmp_path / "home" / "user" / "project"
    project.mkdir(parents=True)
    executor = ToolExecutor(project, Config())

    result = await executor.execute_tool("Read", {"path": "../../etc/passwd"})

    assert result.success is False
    assert "outside working directory" in result.error


def test_decode_tool_arguments_treats_empty_as_empty_object():
    assert decode_tool_arguments("") == {}
    assert decode_tool_arguments("   ") == {}
    assert decode_tool_arguments('{"a": 1}') == {"a": 1}
    with pytest.raises(ValueError):
        decode_tool_arguments("{nope")


def test_blocked_shell_command_matches_segments():
    patterns = ["rm -rf /", "mkfs"]
    assert is_blocked_shell_command("ls && rm -rf /", patterns)[0] is True
    assert is_blocked_shell_command("sudo mkfs.ext4 /dev/sda", patterns)[0] is True
    assert is_blocked_shell_command("echo mkfs", patterns) == (False, "")
    assert is_blocked_shell_command("   ", patterns) == (True, "empty_command")


class ClosingTool(EchoTool):
    name = "Closing"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False

    async def close(self) -> None:
        self.closed = True
        if self.fail:
            raise RuntimeError("close failed")


@pytest.mark.asyncio
async def test_executor_close_closes_every_tool(tmp_path: Path):
    broken = ClosingTool(fail=True)
    broken.name = "Broken"
    healthy = ClosingTool()
    executor = _executor(tmp_path, tools=[broken, healthy, EchoTool()])

    await executor.close()

    assert broken.closed is True
    assert healthy.closed is True
