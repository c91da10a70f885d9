"""Reassemble a streamed model response into text and tool calls."""

from dataclasses import dataclass, field
import time
from typing import Callable

from agent_cowork.events import StreamDeltaEvent, StreamEvent
from agent_cowork.llm import StreamDelta, ToolCall, ToolCallFragment


@dataclass
class _ToolCallBuilder:
    """Mutable accumulator for one tool-call slot."""

    id: str
    name: str
    arguments: str = ""

    def freeze(self) -> ToolCall:
        return ToolCall(id=self.id, name=self.name, arguments=self.arguments)


@dataclass(frozen=True)
class AssembledResponse:
    """Final text and ordered tool calls of one model turn."""

    text: str
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)


def _generated_call_id(index: int) -> str:
    return f"call_{int(time.time() * 1000)}_{index}"


class StreamAssembler:
    """Accumulate deltas for a single iteration.

    Tool-call fragments are keyed by their slot index because the call id is
    usually only present in the first fragment of a slot. Text deltas are
    forwarded to the observer as they arrive.
    """

    def __init__(self, session_id: str, emit: Callable[[StreamEvent], None]):
        self.session_id = session_id
        self._emit = emit
        self._text_parts: list[str] = []
        self._content_started = False
        self._slots: dict[int, _ToolCallBuilder] = {}
        self._finished = False

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def content_started(self) -> bool:
        return self._content_started

    def feed(self, delta: StreamDelta) -> None:
        """Consume one stream delta."""
        if self._finished:
            raise RuntimeError("StreamAssembler already finished")

        if delta.content:
            if not self._content_started:
                self._content_started = True
                self._emit(StreamDeltaEvent(self.session_id, "content_block_start"))
            self._text_parts.append(delta.content)
            self._emit(StreamDeltaEvent(self.session_id, "content_block_delta", text=delta.content))

        for fragment in delta.tool_calls:
            self._feed_fragment(fragment)

    def _feed_fragment(self, fragment: ToolCallFragment) -> None:
        builder = self._slots.get(fragment.index)
        if builder is None:
            self._slots[fragment.index] = _ToolCallBuilder(
                id=fragment.id or _generated_call_id(fragment.index),
                name=fragment.name or "",
                arguments=fragment.arguments or "",
            )
            return
        # Name is fixed at first sight; only argument text keeps growing.
        if fragment.arguments:
            builder.arguments += fragment.arguments
        if not builder.name and fragment.name:
            builder.name = fragment.name

    def finish(self) -> AssembledResponse:
        """Close the text block and freeze accumulated tool calls."""
        if not self._finished:
            self._finished = True
            if self._content_started:
                self._emit(StreamDeltaEvent(self.session_id, "content_block_stop"))
        calls = tuple(self._slots[index].freeze() for index in sorted(self._slots))
        return AssembledResponse(text=self.text, tool_calls=calls)
