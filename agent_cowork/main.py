"""Command-line entry point for Agent Cowork."""

import asyncio
from pathlib import Path
import sys
from typing import assert_never

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
import typer

from agent_cowork.config import Config, set_config
from agent_cowork.events import (
    AssistantTextEvent,
    AssistantToolUseEvent,
    PermissionRequestEvent,
    ResultEvent,
    SessionStatusEvent,
    StreamDeltaEvent,
    StreamEvent,
    SystemInitEvent,
    ToolResultMessageEvent,
)
from agent_cowork.exceptions import SessionNotFoundError
from agent_cowork.history import UserPromptEvent
from agent_cowork.logging import configure_logging, log
from agent_cowork.runner import RunState, run_agent
from agent_cowork.session import Session, SqliteSessionStore

app = typer.Typer(help="Agent Cowork - a tool-calling agent for your working directory")

_PREVIEW_CHARS = 400


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text)} chars]"


class EventPrinter:
    """Render agent events to a rich console."""

    def __init__(self, console: Console):
        self.console = console
        self.streamed_text = False

    def __call__(self, event: StreamEvent) -> None:
        if isinstance(event, SystemInitEvent):
            self.console.print(
                f"[dim]model={event.model} cwd={event.cwd} tools={', '.join(event.tools)}[/dim]"
            )
        elif isinstance(event, StreamDeltaEvent):
            if event.kind == "content_block_delta":
                self.streamed_text = True
                self.console.print(event.text, end="", markup=False, highlight=False)
            elif event.kind == "content_block_stop":
                self.console.print()
        elif isinstance(event, AssistantTextEvent):
            if not self.streamed_text and event.text:
                self.console.print(event.text, markup=False)
        elif isinstance(event, AssistantToolUseEvent):
            self.console.print(f"[cyan]> {event.name}[/cyan] [dim]{escape(str(event.input))}[/dim]")
        elif isinstance(event, PermissionRequestEvent):
            if event.explanation:
                self.console.print(f"[dim]  {escape(event.explanation)}[/dim]")
        elif isinstance(event, ToolResultMessageEvent):
            style = "red" if event.is_error else "green"
            self.console.print(f"[{style}]{escape(_preview(event.content))}[/{style}]", highlight=False)
        elif isinstance(event, ResultEvent):
            self.console.print(
                f"[dim]turns={event.num_turns} duration={event.duration_ms}ms "
                f"api={event.duration_api_ms}ms[/dim]"
            )
        elif isinstance(event, SessionStatusEvent):
            if event.status == "error":
                self.console.print(Panel(escape(event.error or "Unknown error"), title="Error", style="red"))
            else:
                self.console.print(f"[green]Session {event.status}[/green]")
        else:
            assert_never(event)


def _load_config(config_path: str, model: str) -> Config:
    if config_path:
        cfg = Config.from_yaml(Path(config_path))
    else:
        cfg = Config.load()
    if model:
        cfg.model.model = model
    set_config(cfg)
    return cfg


async def _run_prompt(
    prompt: str,
    cfg: Config,
    cwd: Path,
    session_id: str,
    console: Console,
) -> RunState:
    store = SqliteSessionStore(config=cfg)
    try:
        session: Session | None = None
        if session_id:
            session = await store.load_session(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
        else:
            session = await store.create_session(cwd, title=_preview(prompt, 60))

        await store.record_message(session.id, UserPromptEvent(prompt).to_record())
        await store.update_session(session.id, {"status": "running"})

        def on_session_update(updates: dict[str, object]) -> None:
            for key, value in updates.items():
                setattr(session, key, value)

        handle = run_agent(
            prompt,
            session,
            EventPrinter(console),
            store=store,
            config=cfg,
            on_session_update=on_session_update,
        )
        try:
            state = await handle.wait()
        except asyncio.CancelledError:
            handle.abort()
            raise

        status = "completed" if state == RunState.DONE else state.value
        await store.update_session(session.id, {
            "status": status,
            "resume_session_id": session.resume_session_id,
        })
        console.print(f"[dim]session {session.id}[/dim]")
        return state
    finally:
        await store.close()


@app.command()
def run(
    prompt: str = typer.Argument(..., help="Task for the agent"),
    cwd: str = typer.Option("", "--cwd", help="Working directory (default: current)"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    session: str = typer.Option("", "-s", "--session", help="Continue an existing session"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Run one prompt through the agent loop."""
    cfg = _load_config(config, model)
    configure_logging(cfg, verbose=verbose)

    missing = cfg.missing_model_settings()
    if missing:
        typer.echo(f"Missing model settings: {', '.join(missing)}", err=True)
        raise typer.Exit(code=2)

    console = Console()
    workdir = Path(cwd or Path.cwd()).expanduser().resolve()
    try:
        state = asyncio.run(_run_prompt(prompt, cfg, workdir, session, console))
    except SessionNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    except KeyboardInterrupt:
        log.info("Interrupted, run aborted")
        sys.exit(130)
    if state != RunState.DONE:
        raise typer.Exit(code=1)


@app.command()
def sessions(
    limit: int = typer.Option(10, "-n", "--limit", help="Number of sessions to show"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
) -> None:
    """List recent sessions."""
    cfg = _load_config(config, "")
    configure_logging(cfg)

    async def _list() -> list[Session]:
        store = SqliteSessionStore(config=cfg)
        try:
            return await store.list_sessions(limit=limit)
        finally:
            await store.close()

    table = Table(title="Sessions")
    table.add_column("ID")
    table.add_column("Status")
    table.add_column("Updated")
    table.add_column("Title")
    table.add_column("Cwd")
    for item in asyncio.run(_list()):
        table.add_row(item.id, item.status, item.updated_at, item.title, item.cwd)
    Console().print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from agent_cowork import __version__
    print(f"Agent Cowork v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
