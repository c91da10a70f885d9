import sys
from pathlib import Path

import pytest

from agent_cowork.config import Config
from agent_cowork.tools.bash import BashTool
from agent_cowork.tools.registry import ToolContext

pytestmark = pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX shell required")


def _context(cwd: Path) -> ToolContext:
    return ToolContext(cwd=cwd.resolve(), config=Config())


@pytest.mark.asyncio
async def test_bash_runs_in_working_directory(tmp_path: Path):
    result = await BashTool().execute(_context(tmp_path), command="pwd")

    assert result.success is True
    assert result.output == str(tmp_path.resolve())


@pytest.mark.asyncio
async def test_bash_appends_stderr(tmp_path: Path):
    result = await BashTool().execute(_context(tmp_path), command="echo out; echo err 1>&2")

    assert result.success is True
    assert result.output == "out\n[stderr] err"


@pytest.mark.asyncio
async def test_bash_nonzero_exit_is_failure(tmp_path: Path):
    result = await BashTool().execute(_context(tmp_path), command="echo nope; exit 3")

    assert result.success is False
    assert result.error.startswith("Command exited with code 3")
    assert "nope" in result.error


@pytest.mark.asyncio
async def test_bash_blocks_configured_patterns(tmp_path: Path):
    result = await BashTool().execute(_context(tmp_path), command="rm -rf /")

    assert result.success is False
    assert result.error.startswith("Command blocked")


@pytest.mark.asyncio
async def test_bash_timeout_kills_command(tmp_path: Path):
    result = await BashTool().execute(_context(tmp_path), command="sleep 5", timeout=1)

    assert result.success is False
    assert result.error == "Command timed out after 1s"


@pytest.mark.asyncio
async def test_bash_truncates_long_output(tmp_path: Path):
    context = _context(tmp_path)
    context.config.tools.bash.max_output_chars = 10

    result = await BashTool().execute(context, command="printf '%050d' 0")

    assert result.success is True
    assert result.output.startswith("0" * 10)
    assert "[truncated, 50 total chars]" in result.output
