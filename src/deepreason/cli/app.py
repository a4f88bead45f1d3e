"""Main CLI application using Typer."""
import asyncio

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..client import SUPPORTED_MODELS
from ..context import ChatContext
from ..controller import ChatController, TurnOutcome
from ..prompts import get_system_prompt
from ..sessions import SessionManager
from .providers import get_api_tokens, get_model, get_storage, require_client

# Load environment variables
load_dotenv()

app = typer.Typer(
    name="deepreason",
    help="Chat with dual-model reasoning APIs from the terminal",
    no_args_is_help=True,
    add_completion=True,
)

chats_app = typer.Typer(help="Manage stored chats", no_args_is_help=True)
app.add_typer(chats_app, name="chats")

console = Console()


def _console_debug(verbose: bool):
    """Debug callback printing warnings and errors (everything if verbose)."""
    def _callback(level: str, component: str, message: str) -> None:
        if level in ("warning", "error"):
            color = "red" if level == "error" else "yellow"
            console.print(f"[{color}][{component}] {message}[/{color}]")
        elif verbose:
            console.print(f"[dim][{component}] {message}[/dim]")
    return _callback


def _load_sessions(storage_backend: str | None, storage_path: str | None) -> SessionManager:
    storage = get_storage(storage_backend, storage_path, _console_debug(False))
    sessions = SessionManager(storage, debug_callback=_console_debug(False))
    sessions.load(start_new=False)
    return sessions


def _find_chat(sessions: SessionManager, chat_id: str):
    """Resolve a full chat id or a unique id prefix."""
    matches = [c for c in sessions.chats if c.id.startswith(chat_id)]
    if len(matches) != 1:
        reason = "No chat" if not matches else "Ambiguous chat id"
        console.print(f"[red]Error: {reason} matching '{chat_id}'[/red]")
        raise typer.Exit(code=1)
    return matches[0]


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send"),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Answer model (default: $DEEPREASON_MODEL or claude-3-5-sonnet-20241022)"
    ),
    show_thinking: bool = typer.Option(
        False,
        "--show-thinking",
        "-t",
        help="Stream the reasoning trace as well as the answer"
    ),
    storage_backend: str | None = typer.Option(
        None,
        "--storage",
        help="Chat storage: json, sqlite or memory"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed stream diagnostics"
    ),
):
    """Send one message and stream the answer into a new chat."""
    async def _ask():
        client = require_client(console)
        debug = _console_debug(verbose)
        sessions = SessionManager(get_storage(storage_backend, None, debug), debug_callback=debug)
        sessions.load()
        context = ChatContext(sessions)
        controller = ChatController(
            context,
            client,
            model=get_model(model, console),
            system_prompt=get_system_prompt(),
            debug_callback=debug,
        )

        printed = {"thinking": 0, "content": 0}

        def _print_delta(messages) -> None:
            if not messages or messages[-1].role != "assistant":
                return
            last = messages[-1]
            if show_thinking and last.thinking:
                new = last.thinking[printed["thinking"]:]
                if new:
                    if printed["thinking"] == 0:
                        console.print("[bold magenta]Thinking:[/bold magenta]")
                    console.print(new, end="", style="dim italic", markup=False, highlight=False)
                    printed["thinking"] = len(last.thinking)
            new = last.content[printed["content"]:]
            if new:
                if printed["content"] == 0:
                    console.print("\n[bold green]Answer:[/bold green]")
                console.print(new, end="", markup=False, highlight=False)
                printed["content"] = len(last.content)

        sessions.store.subscribe(_print_delta)

        try:
            outcome = await controller.submit(prompt)
            console.print()
            if outcome is TurnOutcome.FAILED:
                console.print(f"[red]Error: {context.last_error}[/red]")
                raise typer.Exit(code=1)
            if outcome is TurnOutcome.REJECTED:
                console.print("[red]Error: message was rejected[/red]")
                raise typer.Exit(code=1)
            console.print(f"[dim]Thought for {context.thinking_elapsed}s[/dim]")
        finally:
            context.close()
            sessions.storage.close()
            await client.close()

    asyncio.run(_ask())


@app.command(name="tui")
def tui_command(
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Answer model (default: $DEEPREASON_MODEL or claude-3-5-sonnet-20241022)"
    ),
    storage_backend: str | None = typer.Option(
        None,
        "--storage",
        "-s",
        help="Chat storage: 'json' (default), 'sqlite' or 'memory' (session-only)"
    ),
    storage_path: str | None = typer.Option(
        None,
        "--storage-path",
        help="File for the json or sqlite storage"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch interactive TUI chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        client = require_client(console)
        storage = get_storage(storage_backend, storage_path)

        try:
            await run_textual_tui(
                client=client,
                storage=storage,
                model=get_model(model, console),
                system_prompt=get_system_prompt(),
                log_level=log_level,
            )
        finally:
            try:
                storage.close()
                await client.close()
            except BaseException:
                pass
            console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass


@app.command()
def models():
    """List the answer models the API accepts."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Model", style="cyan")
    for name in SUPPORTED_MODELS:
        table.add_row(name)
    console.print(table)


@app.command()
def health():
    """Check that credentials and chat storage are usable."""
    all_healthy = True

    deepseek_token, anthropic_token = get_api_tokens()
    if deepseek_token:
        console.print("[green]+[/green] DeepSeek API token: SET")
    else:
        console.print("[red]x[/red] DeepSeek API token: NOT SET")
        all_healthy = False

    if anthropic_token:
        console.print("[green]+[/green] Anthropic API token: SET")
    else:
        console.print("[red]x[/red] Anthropic API token: NOT SET")
        all_healthy = False

    try:
        storage = get_storage()
        count = len(storage.load())
        storage.close()
        console.print(f"[green]+[/green] Chat storage ({storage.backend_type}): OK, {count} chat(s)")
    except Exception as e:
        console.print(f"[red]x[/red] Chat storage: FAILED ({e})")
        all_healthy = False

    if not all_healthy:
        raise typer.Exit(code=1)


@chats_app.command("list")
def list_chats(
    storage_backend: str | None = typer.Option(None, "--storage", help="Chat storage backend"),
    storage_path: str | None = typer.Option(None, "--storage-path", help="Storage file"),
):
    """List stored chats, newest first."""
    sessions = _load_sessions(storage_backend, storage_path)

    if not sessions.chats:
        console.print("[yellow]No chats stored[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Title", style="cyan")
    table.add_column("Messages", style="yellow", width=8)
    table.add_column("Created", style="green")

    for chat in reversed(sessions.chats):
        table.add_row(
            chat.id[:8],
            chat.title,
            str(len(chat.messages)),
            chat.timestamp.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@chats_app.command("show")
def show_chat(
    chat_id: str = typer.Argument(..., help="Chat id or unique prefix"),
    thinking: bool = typer.Option(False, "--thinking", "-t", help="Include reasoning traces"),
    storage_backend: str | None = typer.Option(None, "--storage", help="Chat storage backend"),
    storage_path: str | None = typer.Option(None, "--storage-path", help="Storage file"),
):
    """Print a stored chat."""
    sessions = _load_sessions(storage_backend, storage_path)
    chat = _find_chat(sessions, chat_id)

    console.print(f"[bold cyan]{chat.title}[/bold cyan] [dim]{chat.id}[/dim]\n")
    for message in chat.messages:
        if message.role == "user":
            console.print(Panel(message.content, title="You", border_style="green"))
            continue
        if thinking and message.thinking:
            console.print(Panel(message.thinking, title="Thinking", border_style="dim"))
        console.print(Panel(Markdown(message.content), title="Assistant", border_style="magenta"))


@chats_app.command("delete")
def delete_chat(
    chat_id: str = typer.Argument(..., help="Chat id or unique prefix"),
    storage_backend: str | None = typer.Option(None, "--storage", help="Chat storage backend"),
    storage_path: str | None = typer.Option(None, "--storage-path", help="Storage file"),
):
    """Delete one stored chat."""
    sessions = _load_sessions(storage_backend, storage_path)
    chat = _find_chat(sessions, chat_id)
    sessions.delete_chat(chat.id)
    console.print(f"[green]Deleted chat '{chat.title}'[/green]")


@chats_app.command("clear")
def clear_chats(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    ),
    storage_backend: str | None = typer.Option(None, "--storage", help="Chat storage backend"),
    storage_path: str | None = typer.Option(None, "--storage-path", help="Storage file"),
):
    """Delete every stored chat."""
    sessions = _load_sessions(storage_backend, storage_path)

    if not yes:
        console.print("[yellow]WARNING: This will delete all stored chats![/yellow]")
        confirm = typer.confirm("Are you sure you want to continue?")
        if not confirm:
            console.print("[dim]Aborted.[/dim]")
            return

    count = len(sessions.chats)
    sessions.clear_all()
    console.print(f"[green]Success! Deleted {count} chat(s).[/green]")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
