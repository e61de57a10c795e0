"""Main CLI application using Typer."""
import asyncio
from enum import Enum

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..errors import TabChatError
from ..llm import ChatMessage, ErrorIncrement, SessionManager, TextIncrement
from .providers import (
    configure_logging,
    get_client,
    get_settings,
    get_store,
    require_client,
)

# Create Typer app
app = typer.Typer(
    name="tabchat",
    help="Tabbed terminal chat with Claude, streaming several conversations at once",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


class LogLevelName(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@app.command()
def chat(
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model for new replies (overrides CLAUDE_MODEL)"
    ),
    log_level: LogLevelName | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
    fresh: bool = typer.Option(
        False,
        "--fresh",
        help="Start with a single empty tab instead of reopening saved conversations"
    ),
    no_persist: bool = typer.Option(
        False,
        "--no-persist",
        help="Keep conversations in memory only for this run"
    ),
):
    """Launch the interactive tabbed chat interface."""
    async def _chat():
        from ..ui import run_textual_tui

        settings = get_settings(console, model=model)
        client = get_client(settings, console)
        store = get_store(settings, persist=not no_persist)

        await run_textual_tui(
            settings,
            client,
            store,
            log_level=log_level.value if log_level else None,
            restore=not fresh,
        )
        console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_chat())
    except KeyboardInterrupt:
        pass


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send"),
    system: str | None = typer.Option(
        None,
        "--system",
        "-s",
        help="System prompt for this exchange"
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model to use (overrides CLAUDE_MODEL)"
    ),
    no_stream: bool = typer.Option(
        False,
        "--no-stream",
        help="Wait for the whole reply and render it as Markdown"
    ),
    log_level: LogLevelName | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log to stderr with level: debug, info, warning, or error"
    ),
):
    """Send one message and print the reply."""
    configure_logging(log_level.value if log_level else None)

    async def _ask() -> int:
        settings = get_settings(console, model=model)
        client = require_client(settings, console)
        history = [ChatMessage(role="user", content=prompt)]

        async with client:
            if no_stream:
                try:
                    reply = await client.complete(history, system=system)
                except TabChatError as e:
                    console.print(f"[red]Error: {escape(str(e))}[/red]")
                    return 1
                console.print(Markdown(reply))
                return 0

            sessions = SessionManager(client, settings.channel_capacity)
            session = sessions.start("cli", history, system=system)
            while True:
                output = await session.channel.get()
                increment = output.increment
                if isinstance(increment, TextIncrement):
                    console.print(increment.text, end="", markup=False, highlight=False, soft_wrap=True)
                elif isinstance(increment, ErrorIncrement):
                    console.print(f"\n[red]Error: {escape(increment.message)}[/red]")
                    return 1
                else:
                    console.print()
                    return 0

    code = asyncio.run(_ask())
    if code:
        raise typer.Exit(code=code)


@app.command(name="list")
def list_conversations():
    """List saved conversations, most recent first."""
    async def _list():
        settings = get_settings(console)
        store = get_store(settings)
        summaries = await store.list_saved()

        if not summaries:
            console.print("[yellow]No saved conversations[/yellow]")
            console.print(f"[dim]Directory: {settings.data_dir}[/dim]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title")
        table.add_column("Messages", justify="right")
        table.add_column("Saved", style="green")

        for summary in summaries:
            table.add_row(
                summary.id,
                escape(summary.title or "New Chat"),
                str(summary.message_count),
                summary.saved_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    asyncio.run(_list())


@app.command()
def show(
    conversation_id: str = typer.Argument(..., help="ID of a saved conversation"),
):
    """Print a saved conversation."""
    async def _show() -> bool:
        settings = get_settings(console)
        store = get_store(settings)
        try:
            conversation = await store.load(conversation_id)
        except ValueError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            return False
        if conversation is None:
            console.print(f"[red]Error: no saved conversation {conversation_id}[/red]")
            return False

        console.print(f"[bold cyan]{escape(conversation.title or 'New Chat')}[/bold cyan]")
        if conversation.system_prompt:
            console.print(f"[dim]system: {escape(conversation.system_prompt)}[/dim]")
        console.print()
        for message in conversation.messages:
            if message.role == "user":
                console.print(Panel(escape(message.content), title="You", title_align="left", border_style="cyan"))
            else:
                console.print(Panel(Markdown(message.content), title="Claude", title_align="left", border_style="magenta"))
        return True

    if not asyncio.run(_show()):
        raise typer.Exit(code=1)


@app.command()
def delete(
    conversation_id: str = typer.Argument(..., help="ID of a saved conversation"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    ),
):
    """Delete a saved conversation."""
    if not yes:
        confirm = typer.confirm(f"Delete conversation {conversation_id}?")
        if not confirm:
            console.print("[dim]Aborted.[/dim]")
            return

    async def _delete() -> bool:
        settings = get_settings(console)
        store = get_store(settings)
        try:
            return await store.delete(conversation_id)
        except ValueError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)

    if asyncio.run(_delete()):
        console.print(f"[green]Deleted {conversation_id}[/green]")
    else:
        console.print(f"[red]Error: no saved conversation {conversation_id}[/red]")
        raise typer.Exit(code=1)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
