import pytest

from agent_cowork.events import StreamDeltaEvent
from agent_cowork.llm import StreamDelta, ToolCall, ToolCallFragment
from agent_cowork.streaming import StreamAssembler


def _assembler():
    events = []
    return StreamAssembler("s1", events.append), events


def test_fragments_for_one_slot_assemble_into_single_call():
    assembler, _ = _assembler()
    assembler.feed(StreamDelta(tool_calls=(
        ToolCallFragment(index=0, id="c1", name="Read", arguments='{"pa'),
    )))
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, arguments='th":"x"}'),)))

    response = assembler.finish()

    assert response.text == ""
    assert response.tool_calls == (ToolCall(id="c1", name="Read", arguments='{"path":"x"}'),)


def test_interleaved_slots_keep_index_order():
    assembler, _ = _assembler()
    assembler.feed(StreamDelta(tool_calls=(
        ToolCallFragment(index=1, id="b", name="Glob", arguments='{"pattern":'),
        ToolCallFragment(index=0, id="a", name="Read", arguments='{"path":'),
    )))
    assembler.feed(StreamDelta(tool_calls=(
        ToolCallFragment(index=0, arguments='"x"}'),
        ToolCallFragment(index=1, arguments='"*.py"}'),
    )))

    calls = assembler.finish().tool_calls

    assert [call.id for call in calls] == ["a", "b"]
    assert calls[0].arguments == '{"path":"x"}'
    assert calls[1].arguments == '{"pattern":"*.py"}'


def test_index_holes_are_compacted():
    assembler, _ = _assembler()
    assembler.feed(StreamDelta(tool_calls=(
        ToolCallFragment(index=2, id="late", name="Bash", arguments="{}"),
        ToolCallFragment(index=0, id="early", name="Read", arguments="{}"),
    )))

    calls = assembler.finish().tool_calls

    assert [call.id for call in calls] == ["early", "late"]


def test_missing_id_is_generated_and_first_name_wins():
    assembler, _ = _assembler()
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, name="Read"),)))
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, name="Write", arguments="{}"),)))

    (call,) = assembler.finish().tool_calls

    assert call.id.startswith("call_")
    assert call.id.endswith("_0")
    assert call.name == "Read"
    assert call.arguments == "{}"


def test_late_name_fills_unnamed_slot():
    assembler, _ = _assembler()
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, id="c1", arguments="{"),)))
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, name="Read", arguments="}"),)))

    (call,) = assembler.finish().tool_calls

    assert call.name == "Read"
    assert call.arguments == "{}"


def test_text_deltas_emit_block_lifecycle():
    assembler, events = _assembler()
    assembler.feed(StreamDelta(content="Hel"))
    assembler.feed(StreamDelta(content="lo"))

    response = assembler.finish()
    assembler.finish()

    assert response.text == "Hello"
    assert [event.kind for event in events] == [
        "content_block_start",
        "content_block_delta",
        "content_block_delta",
        "content_block_stop",
    ]
    assert [event.text for event in events if event.kind == "content_block_delta"] == ["Hel", "lo"]
    assert all(isinstance(event, StreamDeltaEvent) and event.session_id == "s1" for event in events)


def test_tool_only_response_emits_no_text_events():
    assembler, events = _assembler()
    assembler.feed(StreamDelta(tool_calls=(ToolCallFragment(index=0, id="c", name="Bash"),)))

    assembler.finish()

    assert events == []
    assert assembler.content_started is False


def test_feed_after_finish_raises():
    assembler, _ = _assembler()
    assembler.finish()

    with pytest.raises(RuntimeError):
        assembler.feed(StreamDelta(content="late"))
