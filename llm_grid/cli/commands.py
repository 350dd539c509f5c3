"""CLI commands for llm-grid."""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from llm_grid import __version__

app = typer.Typer(
    name="llm-grid",
    help="llm-grid - broadcast prompts to a grid of chat-agent windows",
    no_args_is_help=True,
)
history_app = typer.Typer(help="Inspect and edit conversation history.", no_args_is_help=True)
settings_app = typer.Typer(help="Show or change persisted settings.", no_args_is_help=True)
app.add_typer(history_app, name="history")
app.add_typer(settings_app, name="settings")
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"llm-grid v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output to stderr."),
) -> None:
    """llm-grid entrypoint."""
    del version
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _conversation_store(state: Path | None = None):
    from llm_grid.config.loader import load_config
    from llm_grid.session.conversation_store import ConversationStore
    from llm_grid.session.kv_store import JsonFileStore

    config = load_config()
    store = JsonFileStore(state or config.state_path)
    return ConversationStore(store, dedupe_window_s=config.timing.dedupe_window_s)


def _format_ts(value: int) -> str:
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _truncate(text: str, max_length: int) -> str:
    trimmed = (text or "").strip().replace("\n", " ")
    if not trimmed:
        return "Untitled"
    if len(trimmed) <= max_length:
        return trimmed
    return trimmed[:max_length] + "..."


StateOption = typer.Option(None, "--state", help="State file (default from config).")


@app.command()
def status() -> None:
    """Show llm-grid configuration and persisted state."""
    from llm_grid.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    state_path = config.state_path
    store = _conversation_store()

    async def collect():
        settings = await store.load_settings()
        return settings, await store.list(), await store.active_id()

    settings, conversations, active_id = asyncio.run(collect())

    console.print("llm-grid Status\n")
    console.print(f"Config: {config_path} {'[green]OK[/green]' if config_path.exists() else '[dim]defaults[/dim]'}")
    console.print(f"State: {state_path} {'[green]OK[/green]' if state_path.exists() else '[dim]empty[/dim]'}")
    console.print(f"Control surface: [cyan]{config.control.url}[/cyan] ({config.control.width}x{config.control.height})")
    console.print(
        f"Settings: history limit {settings.history_limit}, theme {settings.theme}, "
        f"default providers {', '.join(settings.default_providers)}"
    )
    console.print(f"Conversations: {len(conversations)} (active: {active_id or '-'})")
    timing = config.timing
    console.print(
        f"Timing: settle {timing.settle_delay_s}s, capture {timing.capture_max_attempts}x"
        f"{timing.capture_delay_s}s, poll {timing.poll_interval_s}s"
    )


@app.command()
def layout(
    count: int = typer.Argument(..., help="Number of windows, control surface included."),
    width: int = typer.Option(1920, "--width"),
    height: int = typer.Option(1040, "--height"),
    left: int = typer.Option(0, "--left"),
    top: int = typer.Option(0, "--top"),
) -> None:
    """Print the grid a given number of windows would be tiled into."""
    from llm_grid.host.base import Rect
    from llm_grid.windows.layout import grid_dimensions, tile

    dims = grid_dimensions(count)
    console.print(f"{count} window(s) -> {dims.columns} column(s) x {dims.rows} row(s)")
    table = Table("slot", "role", "left", "top", "width", "height")
    for index, rect in enumerate(tile(Rect(left, top, width, height), count)):
        role = "control" if index == 0 else "target"
        table.add_row(str(index), role, str(rect.left), str(rect.top), str(rect.width), str(rect.height))
    console.print(table)


@history_app.command("list")
def history_list(state: Path = StateOption) -> None:
    """List stored conversations, most recent first."""
    store = _conversation_store(state)

    async def collect():
        return await store.list(), await store.active_id()

    conversations, active_id = asyncio.run(collect())
    if not conversations:
        console.print("[dim]No conversations yet[/dim]")
        return
    table = Table("", "id", "updated", "messages", "links", "prompt")
    for conversation in conversations:
        links = sum(len(v) for v in conversation.links_by_provider.values())
        table.add_row(
            "*" if conversation.id == active_id else "",
            conversation.id,
            _format_ts(conversation.last_updated),
            str(len(conversation.messages)),
            str(links),
            _truncate(conversation.root_prompt, 42),
        )
    console.print(table)


@history_app.command("show")
def history_show(conversation_id: str, state: Path = StateOption) -> None:
    """Show messages and captured links of one conversation."""
    from llm_grid.providers.registry import PROVIDER_DEFS

    store = _conversation_store(state)
    conversation = asyncio.run(store.get(conversation_id))
    if conversation is None:
        console.print(f"[red]No conversation '{conversation_id}'[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{_truncate(conversation.root_prompt, 80)}[/bold]")
    console.print(f"created {_format_ts(conversation.created_at)}, updated {_format_ts(conversation.last_updated)}\n")
    for message in conversation.messages:
        console.print(f"  [dim]{_format_ts(message.created_at)}[/dim] {_truncate(message.prompt, 120)}")
    if not conversation.has_link_data():
        console.print("\n[dim]No links captured[/dim]")
        return
    console.print("\nLinks:")
    for provider_id, links in conversation.links_by_provider.items():
        provider = PROVIDER_DEFS.get(provider_id)
        name = provider.name if provider else provider_id
        for url in links:
            console.print(f"  {name}: [cyan]{url}[/cyan]")


@history_app.command("delete")
def history_delete(
    conversation_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    state: Path = StateOption,
) -> None:
    """Delete a conversation."""
    if not yes and not typer.confirm("Delete this conversation? This cannot be undone."):
        raise typer.Exit()
    store = _conversation_store(state)
    if not asyncio.run(store.delete(conversation_id)):
        console.print(f"[red]No conversation '{conversation_id}'[/red]")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] Deleted {conversation_id}")


@history_app.command("new")
def history_new(state: Path = StateOption) -> None:
    """Clear the active conversation; the next prompt starts a new one."""
    store = _conversation_store(state)
    asyncio.run(store.start_new_conversation())
    console.print("[green]OK[/green] Next prompt starts a new conversation")


@settings_app.command("show")
def settings_show(state: Path = StateOption) -> None:
    """Print persisted settings."""
    store = _conversation_store(state)
    settings = asyncio.run(store.load_settings())
    console.print(f"historyLimit: {settings.history_limit}")
    console.print(f"defaultProviders: {', '.join(settings.default_providers)}")
    console.print(f"theme: {settings.theme}")


@settings_app.command("set")
def settings_set(
    history_limit: int = typer.Option(None, "--history-limit"),
    providers: str = typer.Option(None, "--providers", help="Comma-separated provider ids."),
    theme: str = typer.Option(None, "--theme", help="system|light|dark"),
    state: Path = StateOption,
) -> None:
    """Change settings; invalid values fall back to defaults."""
    from llm_grid.session.models import Settings

    store = _conversation_store(state)

    async def update() -> Settings:
        current = await store.load_settings()
        return await store.save_settings(Settings(
            history_limit=current.history_limit if history_limit is None else history_limit,
            default_providers=(
                current.default_providers if providers is None
                else [p.strip().lower() for p in providers.split(",") if p.strip()]
            ),
            theme=current.theme if theme is None else theme,
        ))

    settings = asyncio.run(update())
    console.print(
        f"[green]OK[/green] historyLimit={settings.history_limit} "
        f"defaultProviders={','.join(settings.default_providers)} theme={settings.theme}"
    )


@app.command()
def demo(
    prompt: str = typer.Argument("Hello from llm-grid", help="Prompt to broadcast."),
    providers: str = typer.Option("", "--providers", help="Comma-separated provider ids (default: settings)."),
    mode: str = typer.Option("submit", "--mode", help="paste|submit|send"),
) -> None:
    """Run the orchestration core end-to-end against an in-memory host."""
    from llm_grid.config.schema import Config
    from llm_grid.host.memory import MemoryHost
    from llm_grid.orchestrator import Orchestrator
    from llm_grid.session.kv_store import MemoryStore

    config = Config()
    config.timing.capture_delay_s = 0.05
    config.timing.settle_delay_s = 0.05
    config.timing.window_stagger_s = 0.0
    selected = [p.strip().lower() for p in providers.split(",") if p.strip()] or None

    async def run() -> None:
        host = MemoryHost(
            control_url=config.control.url,
            verify_attempts=config.timing.verify_attempts,
            verify_delay_s=config.timing.verify_delay_s,
        )
        async with Orchestrator(host, MemoryStore(), config) as orchestrator:
            await orchestrator.open_control_window()
            await orchestrator.new_session(selected)
            status = await orchestrator.handle_message({"type": "get_status"})
            opened = [pid for pid, up in status["status"]["providerStatus"].items() if up]
            console.print(f"Opened: [cyan]{', '.join(opened)}[/cyan]")

            result, recorded = await orchestrator.send_prompt(prompt, mode=mode, providers=selected)
            console.print(f"Broadcast: {result.ok_count}/{result.total} delivered")

            # Pages move to their conversation URL after the first submission.
            for target in await orchestrator.locator.classify_tabs():
                host.navigate(target.tab_id, f"{target.url.rstrip('/')}/c/demo-{target.tab_id}")
            await orchestrator.link_capture.wait_idle()

            conversation = await orchestrator.conversations.active()
            if conversation is None:
                console.print("[yellow]Nothing recorded[/yellow]")
                return
            console.print(f"Conversation: [cyan]{conversation.id}[/cyan]")
            for provider_id, links in conversation.links_by_provider.items():
                for url in links:
                    console.print(f"  {provider_id}: {url}")

    asyncio.run(run())


if __name__ == "__main__":
    app()
