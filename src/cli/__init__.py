"""CLI interface using Typer.

Available subcommands:
    - webhook: send test records through the webhook plugin, show its options

Usage:
    uv run aya webhook send "disk almost full" --level warn
    uv run aya webhook config
"""

import typer


def create_app() -> typer.Typer:
    """Create the main CLI application with all sub-commands."""
    from src.cli.webhook import app as webhook_app

    main_app = typer.Typer(
        name="aya",
        help="aya - structured logger with webhook delivery",
        no_args_is_help=True,
    )

    main_app.add_typer(webhook_app, name="webhook", help="Webhook delivery plugin")

    return main_app


def main() -> None:
    """Entry point for the ``aya`` console script."""
    app = create_app()
    app()
