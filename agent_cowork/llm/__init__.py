"""OpenAI-compatible chat provider - direct HTTP streaming via httpx."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, ClassVar, assert_never

import httpx

from agent_cowork.config import Config
from agent_cowork.exceptions import LLMAPIError, LLMError
from agent_cowork.logging import get_logger

log = get_logger(__name__)


DEFAULT_API_KEY = "dummy-key"


@dataclass(frozen=True)
class ToolCall:
    """A fully assembled tool call issued by the model.

    ``arguments`` is the raw JSON string exactly as streamed.
    """

    id: str
    name: str
    arguments: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class SystemMessage:
    content: str
    role: ClassVar[str] = "system"


@dataclass
class UserMessage:
    content: str
    role: ClassVar[str] = "user"


@dataclass
class AssistantMessage:
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    role: ClassVar[str] = "assistant"


@dataclass
class ToolResultMessage:
    tool_call_id: str
    name: str
    content: str
    role: ClassVar[str] = "tool"


ConversationMessage = SystemMessage | UserMessage | AssistantMessage | ToolResultMessage


def message_to_wire(message: ConversationMessage) -> dict[str, Any]:
    """Convert a conversation message to the chat-completions wire format."""
    if isinstance(message, (SystemMessage, UserMessage)):
        return {"role": message.role, "content": message.content}
    if isinstance(message, AssistantMessage):
        payload: dict[str, Any] = {"role": "assistant", "content": message.content or ""}
        if message.tool_calls:
            payload["tool_calls"] = [call.to_wire() for call in message.tool_calls]
        return payload
    if isinstance(message, ToolResultMessage):
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "name": message.name,
            "content": message.content,
        }
    assert_never(message)


@dataclass(frozen=True)
class ToolCallFragment:
    """Partial tool-call data carried by one stream delta."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(frozen=True)
class StreamDelta:
    """One incremental piece of a streamed model response."""

    content: str | None = None
    tool_calls: tuple[ToolCallFragment, ...] = ()


def parse_stream_chunk(chunk: dict[str, Any]) -> StreamDelta | None:
    """Extract the first choice delta from a streamed completion chunk.

    Returns ``None`` when the chunk carries no delta (keep-alives, usage-only
    chunks).
    """
    error = chunk.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise LLMAPIError(f"Model stream error: {message}")

    choices = chunk.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None

    fragments: list[ToolCallFragment] = []
    for raw in delta.get("tool_calls") or []:
        if not isinstance(raw, dict) or raw.get("index") is None:
            continue
        function = raw.get("function") or {}
        fragments.append(ToolCallFragment(
            index=int(raw["index"]),
            id=raw.get("id") or None,
            name=function.get("name") or None,
            arguments=function.get("arguments") or None,
        ))

    content = delta.get("content") or None
    if content is None and not fragments:
        return None
    return StreamDelta(content=content, tool_calls=tuple(fragments))


class LLMProvider(ABC):
    """Abstract base class for streaming chat providers."""

    model: str = ""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[ConversationMessage],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamDelta]:
        """Stream a chat completion as a sequence of deltas."""

    async def close(self) -> None:
        """Release network resources."""


class OpenAICompatibleProvider(LLMProvider):
    """Provider for any endpoint speaking the OpenAI chat-completions API."""

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str | None = None,
        temperature: float = 0.3,
        timeout: float = 120.0,
    ):
        """Initialize provider.

        Args:
            model: Model identifier sent with every request
            base_url: API base URL, already ending with ``/v1``
            api_key: Bearer token (a placeholder is sent when empty)
            temperature: Default sampling temperature
            timeout: HTTP timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or DEFAULT_API_KEY
        self.temperature = temperature
        self.client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def build_request_body(
        self,
        messages: list[ConversationMessage],
        tools: list[dict[str, Any]] | None,
        temperature: float | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [message_to_wire(msg) for msg in messages],
            "temperature": self.temperature if temperature is None else temperature,
            "stream": True,
        }
        if tools:
            body["tools"] = tools
        return body

    async def stream_chat(
        self,
        messages: list[ConversationMessage],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamDelta]:
        """Stream a completion, yielding parsed deltas."""
        url = f"{self.base_url}/chat/completions"
        body = self.build_request_body(messages, tools, temperature)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            log.debug("Calling model", model=self.model, url=url, msg_count=len(messages))
            async with self.client.stream("POST", url, json=body, headers=headers) as response:
                if not response.is_success:
                    error_text = (await response.aread()).decode("utf-8", errors="replace")
                    raise LLMAPIError(
                        f"API error {response.status_code}: {error_text}",
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line or not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        log.debug("Skipping undecodable stream line", line=data[:200])
                        continue
                    delta = parse_stream_chunk(chunk)
                    if delta is not None:
                        yield delta
        except LLMError:
            raise
        except httpx.HTTPError as e:
            raise LLMAPIError(f"HTTP error: {e}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_provider(config: Config) -> LLMProvider:
    """Create the chat provider described by a config snapshot."""
    return OpenAICompatibleProvider(
        model=config.model.model,
        base_url=config.normalized_base_url(),
        api_key=config.model.api_key or None,
        temperature=config.model.temperature,
    )
