"""Provider factory functions for CLI.

Centralizes creation of settings, the API client, the conversation store
and console logging. Hides configuration details from command
implementations.
"""

import logging
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..config import Settings, load_settings
from ..errors import ConfigurationError
from ..llm import AnthropicClient
from ..storage import ConversationStore, create_conversation_store

# Default console for output
_console = Console()


def get_settings(console: Console | None = None, **overrides: Any) -> Settings:
    """Load settings from the environment (and .env).

    Args:
        console: Optional Rich console for output
        **overrides: Values taking precedence over the environment; None is ignored

    Raises:
        typer.Exit: If a setting is invalid
    """
    con = console or _console
    try:
        return load_settings(**overrides)
    except ConfigurationError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def get_client(settings: Settings, console: Console | None = None) -> AnthropicClient | None:
    """Create the API client, or None if no credential is configured.

    Environment variables:
        ANTHROPIC_API_KEY: API key (sending is disabled without it)
        CLAUDE_MODEL: Default model (default: claude-sonnet-4-20250514)
        ANTHROPIC_BASE_URL: Alternate API endpoint
    """
    con = console or _console
    if not settings.has_credential:
        con.print("[yellow]Warning: ANTHROPIC_API_KEY not set, sending is disabled[/yellow]")
        return None
    return AnthropicClient.from_settings(settings)


def require_client(settings: Settings, console: Console | None = None) -> AnthropicClient:
    """Get the API client, raising error if no credential is configured.

    Raises:
        typer.Exit: If ANTHROPIC_API_KEY is not set
    """
    con = console or _console
    if not settings.has_credential:
        con.print("[red]Error: ANTHROPIC_API_KEY not set in environment[/red]")
        raise typer.Exit(code=1)
    return AnthropicClient.from_settings(settings)


def get_store(settings: Settings, persist: bool = True) -> ConversationStore:
    """Create the conversation store.

    Args:
        settings: Loaded settings (data_dir locates the JSON files)
        persist: False keeps conversations in memory for this run only

    Environment variables:
        TABCHAT_DATA_DIR: Directory holding one JSON file per conversation
    """
    if not persist:
        return create_conversation_store("memory")
    return create_conversation_store("json", directory=settings.data_dir)


def configure_logging(level: str | None) -> None:
    """Send the package's log records to stderr through Rich.

    Only for non-interactive commands; the TUI routes records to its
    log panel instead.
    """
    if level is None:
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    package_logger = logging.getLogger("tabchat")
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())
