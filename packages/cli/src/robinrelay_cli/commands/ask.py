"""ask: run one chat command from the terminal."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.markdown import Markdown

from robinrelay_cli.auth import build_backend
from robinrelay_core.bot import build_bot
from robinrelay_core.commands import CommandContext, Surface, command_name, parse

console = Console()


@click.command("ask")
@click.argument("words", nargs=-1)
@click.option("--user", default="cli", show_default=True, help="User id the command is issued as.")
@click.pass_context
def ask_cmd(ctx, words: tuple[str, ...], user: str):
    """Run a chat command, e.g. `robinrelay ask list branches owner/repo`.

    Uses the same grammar and command handlers as the Slack surface.
    """
    config = ctx.obj["config"]
    text = " ".join(words)

    command = parse(text, user_id=user, surface=Surface.CHAT)
    if command is None:
        raise click.UsageError(f"Unknown command: {command_name(text)!r}. Try `robinrelay ask help`.")

    backend = build_backend(config)
    if backend is None:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    ctx.call_on_close(backend.close)

    bot = build_bot(config, backend)
    result = asyncio.run(bot.registry.execute(command, CommandContext()))

    if result.is_error:
        console.print(result.text, style="red", markup=False)
        ctx.exit(1)
    console.print(Markdown(result.text))
