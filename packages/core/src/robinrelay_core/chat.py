"""Chat surface: Slack mentions, direct messages and the slash command.

All three entry points funnel into process_command and reply through the
mechanism the event arrived on (``say`` for events, ``respond`` for the
slash command). Handler signatures use slack_bolt's argument names so the
bound methods can be registered on a bolt app directly.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from robinrelay_core import messages
from robinrelay_core.commands import CommandContext, Surface, command_name, parse

if TYPE_CHECKING:
    from robinrelay_core.commands import CommandRegistry

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(r"<@[^>]+>")

Reply = Callable[[str], Awaitable[Any]]


def strip_mentions(text: str) -> str:
    return _MENTION_RE.sub("", text or "").strip()


class ChatAdapter:
    def __init__(self, registry: CommandRegistry):
        self.registry = registry

    async def process_command(self, text: str, user_id: str) -> str:
        """Run one chat command line and return the reply text."""
        logger.info("Chat command %r from %s", text, user_id)
        command = parse(text, user_id=user_id, surface=Surface.CHAT)
        if command is None:
            return messages.unknown_command(command_name(text))
        result = await self.registry.execute(command, CommandContext())
        return result.text

    async def handle_mention(self, event: dict, say: Reply) -> None:
        await self._reply(say, strip_mentions(event.get("text", "")), event.get("user", ""))

    async def handle_direct_message(self, message: dict, say: Reply) -> None:
        if message.get("channel_type") != "im" or message.get("bot_id") or message.get("subtype"):
            return
        await self._reply(say, message.get("text", ""), message.get("user", ""))

    async def handle_slash_command(self, command: dict, ack: Callable[[], Awaitable[Any]], respond: Reply) -> None:
        try:
            await ack()
        except Exception:
            logger.exception("Could not acknowledge slash command from %s", command.get("user_id", ""))
        await self._reply(respond, command.get("text", ""), command.get("user_id", ""))

    async def _reply(self, send: Reply, text: str, user_id: str) -> None:
        try:
            reply = await self.process_command(text, user_id)
        except Exception:
            logger.exception("Chat command from %s failed", user_id)
            reply = messages.APOLOGY
        try:
            await send(reply)
        except Exception:
            logger.exception("Could not deliver chat reply to %s", user_id)


def register_chat_handlers(app, adapter: ChatAdapter, slash_command: str = "/robin-relay") -> None:
    """Bind the adapter's entry points on a slack_bolt (Async)App."""
    app.event("app_mention")(adapter.handle_mention)
    app.event("message")(adapter.handle_direct_message)
    app.command(slash_command)(adapter.handle_slash_command)
    logger.info("Registered chat handlers (mentions, direct messages, %s)", slash_command)
