from pathlib import Path

import pytest

from agent_cowork.config import Config
from agent_cowork.tools.memory import MemoryTool, load_memory
from agent_cowork.tools.registry import ToolContext


def _config(tmp_path: Path, enabled: bool = True) -> Config:
    cfg = Config()
    cfg.features.enable_memory = enabled
    cfg.features.memory_path = str(tmp_path / "memory.md")
    return cfg


@pytest.mark.asyncio
async def test_memory_add_read_and_clear(tmp_path: Path):
    cfg = _config(tmp_path)
    context = ToolContext(cwd=tmp_path.resolve(), config=cfg)
    tool = MemoryTool()

    empty = await tool.execute(context, action="read")
    assert empty.output == "Memory is empty."

    added = await tool.execute(context, action="add", content="Prefers tabs over spaces")
    assert added.success is True

    read = await tool.execute(context, action="read")
    assert read.output.startswith("- [")
    assert read.output.endswith("Prefers tabs over spaces")
    assert load_memory(cfg) == read.output

    cleared = await tool.execute(context, action="clear")
    assert cleared.output == "Memory cleared."
    assert load_memory(cfg) is None


@pytest.mark.asyncio
async def test_memory_add_requires_content(tmp_path: Path):
    context = ToolContext(cwd=tmp_path.resolve(), config=_config(tmp_path))

    result = await MemoryTool().execute(context, action="add")

    assert result.success is False
    assert "content is required" in result.error


def test_load_memory_is_none_when_feature_disabled(tmp_path: Path):
    cfg = _config(tmp_path, enabled=False)
    (tmp_path / "memory.md").write_text("- fact\n", encoding="utf-8")

    assert load_memory(cfg) is None
    assert MemoryTool().is_available(cfg) is False
