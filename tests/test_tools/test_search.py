import os
from pathlib import Path

import pytest

from agent_cowork.config import Config
from agent_cowork.tools.glob import GlobTool
from agent_cowork.tools.grep import GrepTool
from agent_cowork.tools.registry import ToolContext, ToolExecutor


def _context(cwd: Path) -> ToolContext:
    return ToolContext(cwd=cwd.resolve(), config=Config())


@pytest.mark.asyncio
async def test_glob_lists_matches_newest_first(tmp_path: Path):
    (tmp_path / "src").mkdir()
    old = tmp_path / "src" / "old.py"
    new = tmp_path / "src" / "new.py"
    old.write_text("", encoding="utf-8")
    new.write_text("", encoding="utf-8")
    (tmp_path / "readme.md").write_text("", encoding="utf-8")
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))

    result = await GlobTool().execute(_context(tmp_path), pattern="**/*.py")

    assert result.success is True
    lines = result.output.splitlines()
    assert lines[0] == "Found 2 file(s):"
    assert lines[1:] == [os.path.join("src", "new.py"), os.path.join("src", "old.py")]


@pytest.mark.asyncio
async def test_glob_rejects_absolute_pattern(tmp_path: Path):
    result = await GlobTool().execute(_context(tmp_path), pattern="/etc/*")

    assert result.success is False


@pytest.mark.asyncio
async def test_glob_reports_no_matches(tmp_path: Path):
    result = await GlobTool().execute(_context(tmp_path), pattern="*.rs")

    assert result.success is True
    assert result.output == "No files found matching: *.rs"


@pytest.mark.asyncio
async def test_glob_truncates_to_configured_limit(tmp_path: Path):
    for index in range(5):
        (tmp_path / f"f{index}.txt").write_text("", encoding="utf-8")
    context = _context(tmp_path)
    context.config.tools.glob.max_results = 2

    result = await GlobTool().execute(context, pattern="*.txt")

    assert "Found 5 file(s):" in result.output
    assert "[3 more not shown]" in result.output


@pytest.mark.asyncio
async def test_grep_returns_file_line_and_text(tmp_path: Path):
    (tmp_path / "a.py").write_text("import os\nTODO = 1\n", encoding="utf-8")
    (tmp_path / "b.txt").write_text("todo later\n", encoding="utf-8")

    result = await GrepTool().execute(_context(tmp_path), pattern="todo", ignore_case=True, glob="*.py")

    assert result.success is True
    assert result.output == "a.py:2: TODO = 1"


@pytest.mark.asyncio
async def test_grep_skips_vcs_directories(tmp_path: Path):
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_text("needle\n", encoding="utf-8")
    (tmp_path / "main.py").write_text("needle = True\n", encoding="utf-8")

    result = await GrepTool().execute(_context(tmp_path), pattern="needle")

    assert result.output == "main.py:1: needle = True"


@pytest.mark.asyncio
async def test_grep_stops_at_max_results(tmp_path: Path):
    (tmp_path / "many.txt").write_text("hit\n" * 5, encoding="utf-8")

    result = await GrepTool().execute(_context(tmp_path), pattern="hit", max_results=2)

    assert result.output.count("many.txt:") == 2
    assert "[stopped after 2 matches]" in result.output


@pytest.mark.asyncio
async def test_grep_invalid_regex_fails(tmp_path: Path):
    result = await GrepTool().execute(_context(tmp_path), pattern="(")

    assert result.success is False
    assert "Invalid regular expression" in result.error


@pytest.mark.asyncio
async def test_grep_does_not_follow_symlinks_out_of_working_directory(tmp_path: Path):
    project = tmp_path / "project"
    project.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("TOPSECRET=hunter2\n", encoding="utf-8")
    (project / "link.txt").symlink_to(outside / "secret.txt")
    (project / "plain.txt").write_text("TOPSECRET=placeholder\n", encoding="utf-8")
    executor = ToolExecutor(project, Config())

    grep = await executor.execute_tool("Grep", {"pattern": "TOPSECRET"})
    read = await executor.execute_tool("Read", {"path": "link.txt"})

    assert grep.success is True
    assert "hunter2" not in grep.output
    assert grep.output == "plain.txt:1: TOPSECRET=placeholder"
    assert read.success is False


@pytest.mark.asyncio
async def test_grep_skips_symlinked_directory_outside_working_directory(tmp_path: Path):
    project = tmp_path / "project"
    project.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "keys.txt").write_text("needle\n", encoding="utf-8")
    (project / "linked").symlink_to(outside, target_is_directory=True)

    result = await GrepTool().execute(_context(project), pattern="needle")

    assert result.output == "No matches found for: needle"


@pytest.mark.asyncio
async def test_grep_with_path_reports_paths_relative_to_working_directory(tmp_path: Path):
    (tmp_path / "src" / "pkg").mkdir(parents=True)
    (tmp_path / "src" / "pkg" / "mod.py").write_text("x = 1\nneedle = 2\n", encoding="utf-8")

    result = await GrepTool().execute(_context(tmp_path), pattern="needle", path="src")

    assert result.output == f"{os.path.join('src', 'pkg', 'mod.py')}:2: needle = 2"
    assert str(tmp_path) not in result.output
