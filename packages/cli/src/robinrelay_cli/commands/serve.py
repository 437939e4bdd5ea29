"""serve: run the webhook endpoint and the Slack surface."""

from __future__ import annotations

import asyncio
import logging

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from robinrelay_cli.auth import build_backend
from robinrelay_cli.server import create_app
from robinrelay_core.bot import build_bot
from robinrelay_core.config import slack_enabled

console = Console()
logger = logging.getLogger(__name__)


async def _serve(app, host: str, port: int, slack_handler, router) -> None:
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    slack_task = asyncio.create_task(slack_handler.start_async()) if slack_handler is not None else None
    try:
        await server.serve()
    finally:
        if slack_task is not None:
            await slack_handler.close_async()
            slack_task.cancel()
        await router.drain()


def run_server(app, host: str, port: int, slack_handler, router) -> None:
    asyncio.run(_serve(app, host, port, slack_handler, router))


def _print_summary(config: dict, host: str, port: int, slack_on: bool) -> None:
    table = Table(title="RobinRelay Bot", show_header=False)
    table.add_column("Setting", style="bold cyan")
    table.add_column("Value")
    table.add_row("Webhook", f"http://{host}:{port}/webhooks/github")
    table.add_row("Bot mention", f"@{config['bot_name']}")
    table.add_row("Check run", config["check_run_name"])
    table.add_row("Cooldown", f"{config['cooldown_seconds']}s")
    table.add_row("Default repo", config.get("default_repo") or "[dim]not set[/dim]")
    table.add_row("Slack", f"[green]on[/green] ({config['slash_command']})" if slack_on else "[yellow]off[/yellow]")
    console.print(table)


@click.command("serve")
@click.option("--host", default=None, help="Interface to bind. Overrides config file.")
@click.option("--port", type=int, default=None, help="Port to bind. Overrides config file.")
@click.option("--no-slack", is_flag=True, help="Do not start the Slack surface even if configured.")
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None, no_slack: bool):
    """Run the bot.

    Receives GitHub webhooks on /webhooks/github and, when all Slack
    credentials are set, connects to Slack in Socket Mode.

    \b
    Required environment variables:
      GITHUB_WEBHOOK_SECRET    Secret configured on the GitHub App webhook
      GITHUB_APP_ID            GitHub App id (with GITHUB_PRIVATE_KEY_PATH)
      GITHUB_TOKEN             Alternative to App auth (no check runs)
    Optional:
      SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET, SLACK_APP_TOKEN
    """
    config = ctx.obj["config"]

    if not config.get("webhook_secret"):
        raise click.UsageError("GITHUB_WEBHOOK_SECRET environment variable is not set.")

    backend = build_backend(config)
    if backend is None:
        raise click.UsageError(
            "No GitHub credentials found. Set GITHUB_APP_ID and GITHUB_PRIVATE_KEY_PATH, "
            "or GITHUB_TOKEN, or run `gh auth login` first."
        )
    ctx.call_on_close(backend.close)

    bot = build_bot(config, backend)
    app = create_app(bot.router, config["webhook_secret"])

    slack_handler = None
    if slack_enabled(config) and not no_slack:
        from robinrelay_cli.slack import build_socket_mode_handler

        slack_handler = build_socket_mode_handler(config, bot.chat)
    elif not no_slack:
        logger.warning(
            "Slack integration not configured. Set SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET and SLACK_APP_TOKEN to enable."
        )

    host = host or config["host"]
    port = port or config["port"]
    _print_summary(config, host, port, slack_handler is not None)
    run_server(app, host, port, slack_handler, bot.router)
