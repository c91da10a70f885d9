from datetime import datetime

import pytest

from agent_cowork.history import (
    OtherEvent,
    TextEvent,
    ToolResultEvent,
    ToolUseEvent,
    UserPromptEvent,
    build_history,
    parse_persisted_event,
)
from agent_cowork.llm import AssistantMessage, SystemMessage, UserMessage
from agent_cowork.prompts import PromptTemplates, render_initial_prompt, render_system_prompt


@pytest.fixture
def templates(tmp_path):
    # Keep personal overrides out of the rendered prompts.
    return PromptTemplates(personal_dir=tmp_path / "personal")


def test_empty_log_yields_system_and_formatted_prompt(templates):
    result = build_history([], "list files", cwd="/work", templates=templates)

    assert len(result.messages) == 2
    assert isinstance(result.messages[0], SystemMessage)
    assert "/work" in result.messages[0].content
    assert isinstance(result.messages[1], UserMessage)
    assert result.messages[1].content.startswith("Current date: ")
    assert result.messages[1].content.endswith("TASK:\nlist files")
    assert result.appended_prompt is True


def test_resubmitted_prompt_is_not_duplicated(templates):
    result = build_history([UserPromptEvent("hi")], "hi", cwd="/work", templates=templates)

    assert [type(message) for message in result.messages] == [SystemMessage, UserMessage]
    assert result.messages[1].content == "hi"
    assert result.last_user_prompt == "hi"
    assert result.appended_prompt is False


def test_assistant_turn_collapses_text_and_inlined_tool_output(templates):
    events = [
        UserPromptEvent("read a.txt"),
        TextEvent("Reading it."),
        ToolUseEvent(id="c1", name="Read", input={"path": "a.txt"}),
        ToolResultEvent(tool_use_id="c1", output="hello"),
        TextEvent("It says hello."),
        UserPromptEvent("thanks"),
    ]

    result = build_history(events, "next", cwd="/work", templates=templates)

    roles = [message.role for message in result.messages]
    assert roles == ["system", "user", "assistant", "user", "user"]
    assistant = result.messages[2]
    assert isinstance(assistant, AssistantMessage)
    assert assistant.content == "Reading it.\n[Tool Output: hello]\nIt says hello."
    assert assistant.tool_calls == []
    assert result.messages[3].content == "thanks"


def test_trailing_assistant_text_is_flushed(templates):
    events = [UserPromptEvent("q"), TextEvent("  answer  ")]

    result = build_history(events, None, cwd="/work", templates=templates)

    assert result.messages[-1] == AssistantMessage(content="answer")
    assert result.appended_prompt is False


def test_unknown_and_blank_events_are_skipped(templates):
    events = [
        OtherEvent(type="system", data={"subtype": "init"}),
        UserPromptEvent("q"),
        TextEvent("   "),
        OtherEvent(type="result"),
    ]

    result = build_history(events, "q", cwd="/work", templates=templates)

    assert [message.role for message in result.messages] == ["system", "user"]


def test_parse_persisted_event_variants():
    assert parse_persisted_event({"type": "user_prompt", "prompt": "p"}) == UserPromptEvent("p")
    assert parse_persisted_event({"type": "text", "text": "t"}) == TextEvent("t")
    assert parse_persisted_event(
        {"type": "tool_use", "id": "c", "name": "Read", "input": "bad"}
    ) == ToolUseEvent(id="c", name="Read", input={})
    assert parse_persisted_event(
        {"type": "tool_result", "tool_use_id": "c", "output": "o", "is_error": True}
    ) == ToolResultEvent(tool_use_id="c", output="o", is_error=True)

    other = parse_persisted_event({"type": "stream_event", "uuid": "u"})
    assert isinstance(other, OtherEvent)
    assert other.to_record() == {"type": "stream_event", "uuid": "u"}


def test_initial_prompt_includes_memory_section(templates):
    prompt = render_initial_prompt(
        "do it",
        memory="- likes tea",
        now=datetime(2024, 5, 1, 9, 30, 0),
        templates=templates,
    )

    assert prompt == (
        "Current date: 2024-05-01 09:30:00\n\n"
        "MEMORY ABOUT USER:\n\n- likes tea\n\n---\n"
        "TASK:\ndo it"
    )


def test_system_prompt_uses_platform_commands(templates):
    windows = render_system_prompt("C:\\work", platform="win32", templates=templates)
    linux = render_system_prompt("/work", platform="linux", templates=templates)

    assert "Windows" in windows
    assert "findstr" in windows
    assert "Linux" in linux
    assert "grep -r" in linux
    assert "{cwd}" not in linux
