"""Persisted session events and conversation history reconstruction."""

from dataclasses import dataclass, field
from typing import Any, Iterable

from agent_cowork.llm import (
    AssistantMessage,
    ConversationMessage,
    SystemMessage,
    UserMessage,
)
from agent_cowork.logging import get_logger
from agent_cowork.prompts import PromptTemplates, render_initial_prompt, render_system_prompt

log = get_logger(__name__)


@dataclass(frozen=True)
class UserPromptEvent:
    prompt: str

    def to_record(self) -> dict[str, Any]:
        return {"type": "user_prompt", "prompt": self.prompt}


@dataclass(frozen=True)
class TextEvent:
    text: str

    def to_record(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseEvent:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class ToolResultEvent:
    tool_use_id: str
    output: str
    is_error: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "output": self.output,
            "is_error": self.is_error,
        }


@dataclass(frozen=True)
class OtherEvent:
    """Any record kind the history builder does not interpret."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {**self.data, "type": self.type}


PersistedEvent = UserPromptEvent | TextEvent | ToolUseEvent | ToolResultEvent | OtherEvent


def parse_persisted_event(record: dict[str, Any]) -> PersistedEvent:
    """Parse one stored record into its event variant."""
    kind = str(record.get("type", "") or "")
    if kind == "user_prompt":
        return UserPromptEvent(prompt=str(record.get("prompt") or ""))
    if kind == "text":
        return TextEvent(text=str(record.get("text") or ""))
    if kind == "tool_use":
        raw_input = record.get("input")
        return ToolUseEvent(
            id=str(record.get("id") or ""),
            name=str(record.get("name") or ""),
            input=raw_input if isinstance(raw_input, dict) else {},
        )
    if kind == "tool_result":
        return ToolResultEvent(
            tool_use_id=str(record.get("tool_use_id") or ""),
            output=str(record.get("output") or ""),
            is_error=bool(record.get("is_error", False)),
        )
    return OtherEvent(type=kind, data=dict(record))


@dataclass
class HistoryBuildResult:
    messages: list[ConversationMessage]
    last_user_prompt: str = ""
    appended_prompt: bool = False


def build_history(
    events: Iterable[PersistedEvent],
    prompt: str | None,
    *,
    cwd: str,
    memory: str | None = None,
    platform: str | None = None,
    templates: PromptTemplates | None = None,
) -> HistoryBuildResult:
    """Rebuild the message list for the model from a persisted event log.

    Assistant-side events between two user prompts collapse into a single
    assistant message; tool results are inlined into its text. The new
    prompt is appended only when it differs from the last prompt in the log,
    so replaying a log on resume does not submit the same prompt twice.
    """
    messages: list[ConversationMessage] = [
        SystemMessage(render_system_prompt(cwd, platform=platform, templates=templates))
    ]
    pending: list[str] = []
    last_user_prompt = ""

    def flush() -> None:
        text = "".join(pending).strip()
        pending.clear()
        if text:
            messages.append(AssistantMessage(content=text))

    for event in events:
        if isinstance(event, UserPromptEvent):
            flush()
            last_user_prompt = event.prompt
            messages.append(UserMessage(event.prompt))
        elif isinstance(event, TextEvent):
            pending.append(event.text)
        elif isinstance(event, ToolResultEvent):
            pending.append(f"\n[Tool Output: {event.output}]\n")
        elif isinstance(event, (ToolUseEvent, OtherEvent)):
            continue
    flush()

    appended = False
    if prompt is not None and prompt != last_user_prompt:
        messages.append(UserMessage(render_initial_prompt(prompt, memory=memory, templates=templates)))
        appended = True

    log.debug(
        "History built",
        message_count=len(messages),
        appended_prompt=appended,
    )
    return HistoryBuildResult(
        messages=messages,
        last_user_prompt=last_user_prompt,
        appended_prompt=appended,
    )
