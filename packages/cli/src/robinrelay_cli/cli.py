"""CLI entry point for robinrelay.

Commands:
  serve  run the webhook endpoint (and Slack, when configured)
  ask    run one chat command from the terminal against GitHub
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from robinrelay_cli.commands.ask import ask_cmd
from robinrelay_cli.commands.serve import serve_cmd

console = Console()


def configure_logging(level: str) -> None:
    """Route all library and bot logging through rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )
    # PyGithub and urllib3 are chatty at DEBUG; keep them at WARNING unless asked.
    if level.upper() != "DEBUG":
        logging.getLogger("github").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("robinrelay"),
    prog_name="robinrelay",
)
@click.option(
    "--config",
    "config_path",
    default=".robinrelay.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="ROBINRELAY_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level. Overrides config file.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str | None):
    """GitHub PR status bot with comment and Slack commands."""
    from robinrelay_core.config import load_config

    ctx.ensure_object(dict)
    config = load_config(config_path, cli_overrides={"log_level": log_level})
    configure_logging(config["log_level"])
    ctx.obj["config"] = config


main.add_command(serve_cmd)
main.add_command(ask_cmd)
