"""Typer CLI for the webhook plugin.

Commands:
    - send: log a message through a logger with the webhook plugin attached
    - config: show the webhook options read from the environment
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from src.core.logger import Logger
from src.delivery.models import Severity
from src.delivery.options import WebhookOptions
from src.delivery.plugin import WebhookPlugin
from src.delivery.queue import DeliveryQueue

app = typer.Typer(no_args_is_help=True)
console = Console()

# Characters of the webhook URL left visible by `config`
_URL_VISIBLE_CHARS = 32


def _mask(url: str) -> str:
    if len(url) <= _URL_VISIBLE_CHARS:
        return url
    return url[:_URL_VISIBLE_CHARS] + "…"


def _load_options(url: str | None, **overrides: object) -> WebhookOptions:
    values = {k: v for k, v in overrides.items() if v is not None}
    if url:
        values["url"] = url
    try:
        return WebhookOptions(**values)
    except ValidationError as e:
        console.print("[red]Invalid webhook options (set --url or AYA_WEBHOOK_URL).[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1) from None


async def _deliver(options: WebhookOptions, level: Severity, message: str, count: int) -> WebhookPlugin:
    queue = DeliveryQueue()
    log = Logger()
    plugin = WebhookPlugin(options, queue)
    log.use(plugin)

    emit = log.warn if level is Severity.WARN else log.error
    for index in range(count):
        parts = [message] if count == 1 else [message, f"({index + 1}/{count})"]
        emit(*parts)
    await log.aclose()
    return plugin


@app.command()
def send(
    message: Annotated[str, typer.Argument(help="Message to deliver")],
    url: Annotated[
        str | None, typer.Option("--url", "-u", help="Webhook URL (default: AYA_WEBHOOK_URL)")
    ] = None,
    level: Annotated[
        Severity, typer.Option("--level", "-l", help="Severity of the test record")
    ] = Severity.ERROR,
    count: Annotated[int, typer.Option("--count", "-n", min=1, help="Number of records")] = 1,
    username: Annotated[
        str | None, typer.Option("--username", help="Display name override")
    ] = None,
) -> None:
    """Log MESSAGE at LEVEL and wait until it has been delivered."""
    options = _load_options(url, username=username)
    if level not in options.levels:
        options = options.model_copy(update={"levels": [*options.levels, level]})

    plugin = asyncio.run(_deliver(options, level, message, count))

    if plugin.enabled:
        console.print(f"[green]Submitted {count} record(s) to {_mask(options.url)}[/green]")
    else:
        console.print(f"[red]Webhook plugin ended {plugin.state}; check the URL.[/red]")
        raise typer.Exit(code=1)


@app.command()
def config(
    url: Annotated[
        str | None, typer.Option("--url", "-u", help="Webhook URL (default: AYA_WEBHOOK_URL)")
    ] = None,
) -> None:
    """Show the effective webhook options."""
    options = _load_options(url)

    table = Table(show_header=True, header_style="bold", title="Webhook options")
    table.add_column("Option", style="bold")
    table.add_column("Value")

    table.add_row("url", _mask(options.url))
    table.add_row("username", options.username or "[dim](logger prefix)[/dim]")
    avatar = options.avatar_url
    table.add_row("avatar_url", avatar if isinstance(avatar, str) else f"{len(avatar or [])} choice(s)")
    table.add_row("levels", ", ".join(s.value for s in options.levels) or "[red]none[/red]")
    for severity, model in options.unit_models().items():
        table.add_row(f"{severity.value} embed", f"{model.title} (#{model.color:06X})")
    table.add_row("flush_interval", f"{options.flush_interval}s")
    table.add_row("request_timeout", f"{options.request_timeout}s")

    console.print(table)
