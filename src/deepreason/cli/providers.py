"""Provider factory functions for CLI.

Centralizes creation of the API client, chat storage and session objects
from environment variables. Hides configuration details from command
implementations.
"""

import os
from typing import Any

from rich.console import Console

from ..client import DEFAULT_API_URL, DEFAULT_MODEL, SUPPORTED_MODELS, ReasoningAPIClient
from ..sessions import ChatStorage, create_chat_storage

_console = Console()


def get_api_tokens() -> tuple[str, str]:
    """Read the two provider tokens.

    Environment variables:
        DEEPSEEK_API_TOKEN: Token forwarded to the reasoning model
        ANTHROPIC_API_TOKEN: Token forwarded to the answer model
    """
    return (
        os.getenv("DEEPSEEK_API_TOKEN", ""),
        os.getenv("ANTHROPIC_API_TOKEN", ""),
    )


def get_model(model: str | None = None, console: Console | None = None) -> str:
    """Resolve the answer model.

    Environment variables:
        DEEPREASON_MODEL: Model id (default: claude-3-5-sonnet-20241022)
    """
    con = console or _console
    resolved = model or os.getenv("DEEPREASON_MODEL", DEFAULT_MODEL)
    if resolved not in SUPPORTED_MODELS:
        con.print(f"[yellow]Warning: {resolved} is not a known model, sending it anyway[/yellow]")
    return resolved


def get_client(console: Console | None = None) -> ReasoningAPIClient | None:
    """Create the API client from environment variables.

    Returns:
        API client instance, or None if tokens are missing

    Environment variables:
        DEEPSEEK_API_TOKEN, ANTHROPIC_API_TOKEN: Provider tokens (required)
        DEEPREASON_API_URL: Endpoint (default: https://api.deepreasoning.com)
    """
    con = console or _console
    deepseek_token, anthropic_token = get_api_tokens()

    if not deepseek_token:
        con.print("[yellow]Warning: DEEPSEEK_API_TOKEN not set[/yellow]")
    if not anthropic_token:
        con.print("[yellow]Warning: ANTHROPIC_API_TOKEN not set[/yellow]")
    if not (deepseek_token and anthropic_token):
        return None

    return ReasoningAPIClient(
        deepseek_api_token=deepseek_token,
        anthropic_api_token=anthropic_token,
        api_url=os.getenv("DEEPREASON_API_URL", DEFAULT_API_URL),
    )


def require_client(console: Console | None = None) -> ReasoningAPIClient:
    """Get the API client, raising error if not configured.

    Raises:
        SystemExit: If the provider tokens are not configured
    """
    import typer

    con = console or _console
    client = get_client(con)
    if not client:
        con.print("[red]Error: DEEPSEEK_API_TOKEN and ANTHROPIC_API_TOKEN are required[/red]")
        raise typer.Exit(code=1)
    return client


def get_storage(
    backend: str | None = None,
    path: str | None = None,
    debug_callback: Any | None = None,
) -> ChatStorage:
    """Create the chat storage backend.

    Environment variables:
        DEEPREASON_STORAGE: json (default), sqlite or memory
        DEEPREASON_STORAGE_PATH: File used by the json / sqlite backends
    """
    backend = backend or os.getenv("DEEPREASON_STORAGE", "json")
    path = path or os.getenv("DEEPREASON_STORAGE_PATH")

    config: dict[str, Any] = {}
    if backend != "memory":
        config["debug_callback"] = debug_callback
        if path:
            config["path"] = path
    return create_chat_storage(backend, **config)
