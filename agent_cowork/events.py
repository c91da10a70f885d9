"""Events emitted by the agent loop to its observer.

Every variant is a frozen dataclass carrying the session id; ``to_dict``
renders the payload shape consumed by the hosting shell.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

PERMISSION_MODE_DEFAULT = "default"


def _stream_message(session_id: str, message: dict[str, Any]) -> dict[str, Any]:
    return {"type": "stream.message", "payload": {"sessionId": session_id, "message": message}}


@dataclass(frozen=True)
class SystemInitEvent:
    session_id: str
    cwd: str
    tools: tuple[str, ...]
    model: str
    permission_mode: str = PERMISSION_MODE_DEFAULT

    def to_dict(self) -> dict[str, Any]:
        return _stream_message(self.session_id, {
            "type": "system",
            "subtype": "init",
            "cwd": self.cwd,
            "session_id": self.session_id,
            "tools": list(self.tools),
            "model": self.model,
            "permissionMode": self.permission_mode,
        })


@dataclass(frozen=True)
class StreamDeltaEvent:
    """Incremental text block lifecycle: start, delta, stop."""

    session_id: str
    kind: Literal["content_block_start", "content_block_delta", "content_block_stop"]
    text: str = ""
    index: int = 0

    def to_dict(self) -> dict[str, Any]:
        event: dict[str, Any] = {"type": self.kind, "index": self.index}
        if self.kind == "content_block_start":
            event["content_block"] = {"type": "text", "text": ""}
        elif self.kind == "content_block_delta":
            event["delta"] = {"type": "text_delta", "text": self.text}
        return _stream_message(self.session_id, {"type": "stream_event", "event": event})


@dataclass(frozen=True)
class AssistantTextEvent:
    session_id: str
    message_id: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return _stream_message(self.session_id, {
            "type": "assistant",
            "message": {
                "id": self.message_id,
                "content": [{"type": "text", "text": self.text}],
            },
        })


@dataclass(frozen=True)
class AssistantToolUseEvent:
    session_id: str
    tool_use_id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _stream_message(self.session_id, {
            "type": "assistant",
            "message": {
                "id": f"msg_{self.tool_use_id}",
                "content": [{
                    "type": "tool_use",
                    "id": self.tool_use_id,
                    "name": self.name,
                    "input": self.input,
                }],
            },
        })


@dataclass(frozen=True)
class ToolResultMessageEvent:
    session_id: str
    tool_use_id: str
    content: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _stream_message(self.session_id, {
            "type": "user",
            "message": {
                "content": [{
                    "type": "tool_result",
                    "tool_use_id": self.tool_use_id,
                    "content": self.content,
                    "is_error": self.is_error,
                }],
            },
        })


@dataclass(frozen=True)
class PermissionRequestEvent:
    """Advisory notice that a tool is about to run."""

    session_id: str
    tool_use_id: str
    tool_name: str
    input: dict[str, Any] = field(default_factory=dict)
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "permission.request",
            "payload": {
                "sessionId": self.session_id,
                "toolUseId": self.tool_use_id,
                "toolName": self.tool_name,
                "input": self.input,
                "explanation": self.explanation,
            },
        }


@dataclass(frozen=True)
class ResultEvent:
    session_id: str
    result: str
    num_turns: int
    duration_ms: int = 0
    duration_api_ms: int = 0
    is_error: bool = False
    subtype: str = "success"

    def to_dict(self) -> dict[str, Any]:
        # Cost and token usage are not tracked; zeros keep the shape stable.
        return _stream_message(self.session_id, {
            "type": "result",
            "subtype": self.subtype,
            "is_error": self.is_error,
            "duration_ms": self.duration_ms,
            "duration_api_ms": self.duration_api_ms,
            "num_turns": self.num_turns,
            "result": self.result,
            "session_id": self.session_id,
            "total_cost_usd": 0,
            "usage": {"input_tokens": 0, "output_tokens": 0},
        })


@dataclass(frozen=True)
class SessionStatusEvent:
    session_id: str
    status: Literal["completed", "error"]
    title: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sessionId": self.session_id,
            "status": self.status,
            "title": self.title,
        }
        if self.error is not None:
            payload["error"] = self.error
        return {"type": "session.status", "payload": payload}


StreamEvent = (
    SystemInitEvent
    | StreamDeltaEvent
    | AssistantTextEvent
    | AssistantToolUseEvent
    | ToolResultMessageEvent
    | PermissionRequestEvent
    | ResultEvent
    | SessionStatusEvent
)
