"""Agent loop: stream the model, run its tool calls, repeat until it answers."""

import asyncio
from enum import Enum
import os
import time
from typing import Any, AsyncIterator, Callable
import uuid

from agent_cowork.config import Config, get_config
from agent_cowork.events import (
    AssistantTextEvent,
    AssistantToolUseEvent,
    PermissionRequestEvent,
    ResultEvent,
    SessionStatusEvent,
    StreamEvent,
    SystemInitEvent,
    ToolResultMessageEvent,
)
from agent_cowork.exceptions import ConfigurationError, IterationLimitError
from agent_cowork.history import (
    PersistedEvent,
    TextEvent,
    ToolResultEvent,
    ToolUseEvent,
    build_history,
    parse_persisted_event,
)
from agent_cowork.llm import (
    AssistantMessage,
    ConversationMessage,
    LLMProvider,
    StreamDelta,
    ToolCall,
    ToolResultMessage,
    create_provider,
)
from agent_cowork.logging import get_logger
from agent_cowork.request_log import log_request
from agent_cowork.session import Session, SessionStore
from agent_cowork.streaming import AssembledResponse, StreamAssembler
from agent_cowork.tools.memory import load_memory
from agent_cowork.tools.registry import ToolExecutor, decode_tool_arguments

log = get_logger(__name__)


class RunState(str, Enum):
    INIT = "init"
    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"
    ERROR = "error"


def _lenient_input(call: ToolCall) -> dict[str, Any]:
    """Decoded call arguments for display and logs; ``{}`` when malformed."""
    try:
        return decode_tool_arguments(call.arguments)
    except ValueError:
        return {}


class AgentRunner:
    """Drive one prompt through the model/tool loop for a session.

    All collaborators are injected; anything omitted is built from the config
    snapshot taken when the run starts. The observer sees every state change
    through ``on_event``; failures end the run with a ``session.status`` error
    event instead of raising.
    """

    def __init__(
        self,
        session: Session,
        on_event: Callable[[StreamEvent], None],
        *,
        store: SessionStore | None = None,
        config: Config | None = None,
        provider: LLMProvider | None = None,
        executor: ToolExecutor | None = None,
        on_session_update: Callable[[dict[str, Any]], None] | None = None,
        max_iterations: int | None = None,
    ):
        self.session = session
        self.on_event = on_event
        self.store = store
        self.on_session_update = on_session_update
        self._config = config
        self._provider = provider
        self._executor = executor
        self._max_iterations = max_iterations
        self._abort_event = asyncio.Event()
        self.state = RunState.INIT
        self.iterations = 0

    @property
    def aborted(self) -> bool:
        return self._abort_event.is_set()

    def abort(self) -> None:
        """Request cooperative cancellation at the next poll point."""
        self._abort_event.set()

    def _emit(self, event: StreamEvent) -> None:
        try:
            self.on_event(event)
        except Exception as e:
            log.warning("Event observer failed", event_type=type(event).__name__, error=str(e))

    async def _save(self, event: PersistedEvent) -> None:
        """Append an event to the session log; failures are logged only."""
        if self.store is None or not self.session.id:
            return
        record = event.to_record()
        record["uuid"] = uuid.uuid4().hex
        try:
            await self.store.record_message(self.session.id, record)
        except Exception as e:
            log.warning("Failed to record session event", session_id=self.session.id, error=str(e))

    async def _load_events(self) -> list[PersistedEvent]:
        if self.store is None or not self.session.id:
            return []
        try:
            records = await self.store.get_session_history(self.session.id)
        except Exception as e:
            log.warning("Failed to load session history", session_id=self.session.id, error=str(e))
            return []
        events = [parse_persisted_event(record) for record in records or [] if isinstance(record, dict)]
        if events:
            log.info("Loaded session history", session_id=self.session.id, events=len(events))
        return events

    def _mark_aborted(self) -> RunState:
        log.info("Agent loop aborted", session_id=self.session.id, iteration=self.iterations)
        self.state = RunState.ABORTED
        return self.state

    async def run(self, prompt: str) -> RunState:
        """Run the loop to completion. Never raises except on task cancellation."""
        provider: LLMProvider | None = None
        executor: ToolExecutor | None = None
        owns_provider = False
        owns_executor = False
        try:
            config = (self._config or get_config()).model_copy(deep=True)
            missing = config.missing_model_settings()
            if missing:
                raise ConfigurationError(
                    "API settings not configured. Please set Base URL and Model in Settings "
                    f"(missing: {', '.join(missing)})."
                )
            provider = self._provider
            if provider is None:
                provider = create_provider(config)
                owns_provider = True
            executor = self._executor
            if executor is None:
                executor = ToolExecutor(self.session.cwd or os.getcwd(), config)
                owns_executor = True
            return await self._run(prompt, config, provider, executor)
        except asyncio.CancelledError:
            self._mark_aborted()
            raise
        except Exception as e:
            log.error("Agent loop failed", session_id=self.session.id, error=str(e), exc_info=True)
            self.state = RunState.ERROR
            self._emit(SessionStatusEvent(
                session_id=self.session.id,
                status="error",
                title=self.session.title,
                error=str(e),
            ))
            return self.state
        finally:
            if owns_executor and executor is not None:
                await executor.close()
            if owns_provider and provider is not None:
                await provider.close()

    async def _run(
        self,
        prompt: str,
        config: Config,
        provider: LLMProvider,
        executor: ToolExecutor,
    ) -> RunState:
        started = time.monotonic()
        cwd = str(executor.cwd)

        events = await self._load_events()
        built = build_history(events, prompt, cwd=cwd, memory=load_memory(config))
        messages: list[ConversationMessage] = built.messages
        tools = executor.get_definitions()
        temperature = config.model.temperature

        if config.runner.log_requests:
            log_request(
                config.runner.log_dir,
                self.session.id,
                model=config.model.model,
                messages=messages,
                tools=tools,
                temperature=temperature,
            )

        self._emit(SystemInitEvent(
            session_id=self.session.id,
            cwd=cwd,
            tools=tuple(executor.tool_names),
            model=config.model.model,
        ))
        if self.on_session_update is not None:
            try:
                self.on_session_update({"resume_session_id": self.session.id})
            except Exception as e:
                log.warning("Session update callback failed", session_id=self.session.id, error=str(e))

        self.state = RunState.RUNNING
        max_iterations = self._max_iterations or config.runner.max_iterations
        api_ms = 0.0
        log.info(
            "Agent loop started",
            session_id=self.session.id,
            model=config.model.model,
            history=len(messages),
            max_iterations=max_iterations,
        )

        for iteration in range(1, max_iterations + 1):
            if self.aborted:
                return self._mark_aborted()
            self.iterations = iteration
            log.info("Iteration", session_id=self.session.id, iteration=iteration, message_count=len(messages))

            api_started = time.monotonic()
            response = await self._stream_response(
                provider.stream_chat(messages, tools, temperature)
            )
            api_ms += (time.monotonic() - api_started) * 1000
            if self.aborted:
                return self._mark_aborted()

            if not response.tool_calls:
                await self._complete(response.text, iteration, started, api_ms)
                return self.state

            messages.append(AssistantMessage(content=response.text, tool_calls=list(response.tool_calls)))
            if response.text.strip():
                await self._save(TextEvent(response.text))

            for call in response.tool_calls:
                tool_input = _lenient_input(call)
                self._emit(AssistantToolUseEvent(
                    session_id=self.session.id,
                    tool_use_id=call.id,
                    name=call.name,
                    input=tool_input,
                ))
                await self._save(ToolUseEvent(id=call.id, name=call.name, input=tool_input))

            for call in response.tool_calls:
                if self.aborted:
                    return self._mark_aborted()
                messages.append(await self._run_tool_call(call, executor))

        raise IterationLimitError(max_iterations)

    async def _stream_response(self, stream: AsyncIterator[StreamDelta]) -> AssembledResponse:
        """Feed the model stream to a fresh assembler, stopping early on abort."""
        assembler = StreamAssembler(self.session.id, self._emit)
        try:
            async for delta in stream:
                if self.aborted:
                    break
                assembler.feed(delta)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return assembler.finish()

    async def _run_tool_call(self, call: ToolCall, executor: ToolExecutor) -> ToolResultMessage:
        tool_input = _lenient_input(call)
        explanation = tool_input.get("explanation")
        # Advisory under the default permission mode: execution does not wait.
        self._emit(PermissionRequestEvent(
            session_id=self.session.id,
            tool_use_id=call.id,
            tool_name=call.name,
            input=tool_input,
            explanation=explanation if isinstance(explanation, str) else None,
        ))

        result = await executor.execute_call(call)
        text = result.to_text()

        self._emit(ToolResultMessageEvent(
            session_id=self.session.id,
            tool_use_id=call.id,
            content=text,
            is_error=not result.success,
        ))
        await self._save(ToolResultEvent(tool_use_id=call.id, output=text, is_error=not result.success))
        return ToolResultMessage(tool_call_id=call.id, name=call.name, content=text)

    async def _complete(self, text: str, iteration: int, started: float, api_ms: float) -> None:
        self._emit(AssistantTextEvent(
            session_id=self.session.id,
            message_id=f"msg_{uuid.uuid4().hex}",
            text=text,
        ))
        await self._save(TextEvent(text))
        self._emit(ResultEvent(
            session_id=self.session.id,
            result=text,
            num_turns=iteration,
            duration_ms=int((time.monotonic() - started) * 1000),
            duration_api_ms=int(api_ms),
        ))
        self._emit(SessionStatusEvent(
            session_id=self.session.id,
            status="completed",
            title=self.session.title,
        ))
        self.state = RunState.DONE
        log.info("Agent loop completed", session_id=self.session.id, iterations=iteration)


class RunnerHandle:
    """Handle to a background agent run."""

    def __init__(self, runner: AgentRunner, task: asyncio.Task[RunState]):
        self._runner = runner
        self._task = task

    def abort(self) -> None:
        """Stop the run at its next poll point."""
        self._runner.abort()

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def state(self) -> RunState:
        return self._runner.state

    async def wait(self) -> RunState:
        """Wait for the run to finish and return its final state."""
        return await self._task


def run_agent(
    prompt: str,
    session: Session,
    on_event: Callable[[StreamEvent], None],
    *,
    store: SessionStore | None = None,
    config: Config | None = None,
    provider: LLMProvider | None = None,
    executor: ToolExecutor | None = None,
    on_session_update: Callable[[dict[str, Any]], None] | None = None,
    max_iterations: int | None = None,
) -> RunnerHandle:
    """Start an agent run in the background and return immediately.

    Must be called from a running event loop.
    """
    runner = AgentRunner(
        session,
        on_event,
        store=store,
        config=config,
        provider=provider,
        executor=executor,
        on_session_update=on_session_update,
        max_iterations=max_iterations,
    )
    task = asyncio.create_task(runner.run(prompt), name=f"agent-run-{session.id}")
    return RunnerHandle(runner, task)
