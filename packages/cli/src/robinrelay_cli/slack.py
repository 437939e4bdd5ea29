"""Slack wiring: a slack_bolt AsyncApp in Socket Mode.

Socket Mode keeps the chat surface reachable without a public URL; the
webhook endpoint is the only HTTP listener the bot needs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from robinrelay_core.chat import register_chat_handlers

if TYPE_CHECKING:
    from robinrelay_core.chat import ChatAdapter


def build_socket_mode_handler(config: dict, adapter: ChatAdapter):
    """Return an AsyncSocketModeHandler with the chat handlers registered."""
    try:
        from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
        from slack_bolt.async_app import AsyncApp
    except ImportError:
        raise ImportError(
            "The 'slack_bolt' and 'aiohttp' packages are required for the Slack integration. "
            "Install them with: pip install 'robinrelay[slack]'"
        )

    app = AsyncApp(token=config["slack_bot_token"], signing_secret=config["slack_signing_secret"])
    register_chat_handlers(app, adapter, slash_command=config.get("slash_command", "/robin-relay"))
    return AsyncSocketModeHandler(app, config["slack_app_token"])
