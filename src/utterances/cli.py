"""CLI entry point for the Utterances relay."""

import os

import typer
from rich.console import Console

from . import __version__
from .auth.state_codec import StateError, decode_state, encode_state, now_ms
from .core.config import ConfigError, load_config
from .core.logging import LOG_LEVELS, configure_logging
from .gitlab.client import PAGE_SIZE
from .gitlab.pagination import plan_pages
from .relay.server import run_server

STATE_PASSWORD_ENV = "UTTERANCES_STATE_PASSWORD"
DAY_MS = 24 * 60 * 60 * 1000

app = typer.Typer(
    name="utterances",
    help="""Utterances for GitLab - OAuth relay and comment thread tooling.

Quick start:
  utterances serve --port 7000
  utterances plan-pages 76
""",
    add_completion=False,
)
console = Console()


def _state_password() -> str:
    password = os.getenv(STATE_PASSWORD_ENV)
    if not password:
        console.print(f"[red]Error:[/red] {STATE_PASSWORD_ENV} is not set")
        raise typer.Exit(1)
    return password


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Host to bind to (default: UTTERANCES_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to (default: UTTERANCES_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    log_level: str = typer.Option("info", "--log-level", "-l", help="Log level"),
) -> None:
    """Run the OAuth relay server."""
    if log_level not in LOG_LEVELS:
        console.print(f"[red]Error:[/red] Invalid log level: {log_level}")
        raise typer.Exit(1)

    try:
        config = load_config()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    configure_logging(log_level)

    run_server(host=host, port=port, config=config, reload=reload, log_level=log_level)


@app.command("encode-state")
def encode_state_command(
    value: str = typer.Argument(..., help="Value to wrap, usually an access token"),
    days: int = typer.Option(365, "--days", "-d", help="Days until the state expires"),
) -> None:
    """Encrypt a value into a session state."""
    password = _state_password()
    console.print(encode_state(value, password, now_ms() + days * DAY_MS), soft_wrap=True)


@app.command("decode-state")
def decode_state_command(
    state: str = typer.Argument(..., help="Encrypted session state"),
) -> None:
    """Decrypt a session state and print its value."""
    password = _state_password()
    try:
        value = decode_state(state, password)
    except StateError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    console.print(value, soft_wrap=True)


@app.command("plan-pages")
def plan_pages_command(
    total: int = typer.Argument(..., min=0, help="Number of comments on the issue"),
) -> None:
    """Show which comment pages load immediately and which on demand."""
    plan = plan_pages(total)

    console.print("\n[bold blue]Page Plan[/bold blue]\n")
    console.print(f"[cyan]Comments:[/cyan] {total} ({PAGE_SIZE} per page)")
    for page in range(1, plan.page_count + 1):
        mode = "[green]eager[/green]" if page in plan.eager_pages else "[yellow]on demand[/yellow]"
        console.print(f"  Page {page}: {mode}")
    console.print(
        f"[cyan]Hidden:[/cyan] {plan.hidden_page_count} page(s), "
        f"~{plan.hidden_page_count * PAGE_SIZE} comments"
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"utterances v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
