"""Tests for the Slack chat surface."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from robinrelay_backend.memory import InMemoryBackend
from robinrelay_core.analysis import StaticAnalyzer
from robinrelay_core.chat import ChatAdapter, register_chat_handlers, strip_mentions
from robinrelay_core.commands import CommandRegistry
from robinrelay_core.messages import APOLOGY


def _make_adapter():
    backend = InMemoryBackend()
    registry = CommandRegistry(backend, StaticAnalyzer(), bot_name="robin-relay-bot", default_repo="acme/widgets")
    return ChatAdapter(registry), backend


class TestProcessCommand:
    def test_empty_text_equals_help(self):
        adapter, _ = _make_adapter()
        empty = asyncio.run(adapter.process_command("", "U1"))
        help_text = asyncio.run(adapter.process_command("help", "U1"))
        assert empty == help_text
        assert "RobinRelay Bot Commands" in help_text

    def test_unknown_command(self):
        adapter, backend = _make_adapter()
        reply = asyncio.run(adapter.process_command("Deploy prod", "U1"))
        assert reply == "❌ Unknown command: `deploy`. Type `help` to see available commands."
        assert backend.calls == []

    def test_validation_error_reply(self):
        adapter, backend = _make_adapter()
        reply = asyncio.run(adapter.process_command("create pr dev", "U1"))
        assert reply.startswith("❌ Please provide source branch")
        assert backend.calls == []


class TestHandlers:
    def test_mention_is_stripped(self):
        adapter, _ = _make_adapter()
        say = AsyncMock()

        asyncio.run(adapter.handle_mention({"text": "<@U0BOT> hello", "user": "U7"}, say))

        reply = say.await_args.args[0]
        assert "<@U7>" in reply

    def test_direct_message_answered(self):
        adapter, _ = _make_adapter()
        say = AsyncMock()
        asyncio.run(adapter.handle_direct_message({"channel_type": "im", "text": "hi", "user": "U7"}, say))
        say.assert_awaited_once()

    def test_channel_message_ignored(self):
        adapter, _ = _make_adapter()
        say = AsyncMock()
        asyncio.run(adapter.handle_direct_message({"channel_type": "channel", "text": "help", "user": "U7"}, say))
        say.assert_not_awaited()

    def test_bot_and_subtype_messages_ignored(self):
        adapter, _ = _make_adapter()
        say = AsyncMock()
        asyncio.run(adapter.handle_direct_message({"channel_type": "im", "text": "help", "bot_id": "B1"}, say))
        asyncio.run(
            adapter.handle_direct_message({"channel_type": "im", "text": "help", "subtype": "message_changed"}, say)
        )
        say.assert_not_awaited()

    def test_slash_command_acknowledged_before_reply(self):
        adapter, _ = _make_adapter()
        order = []

        async def ack():
            order.append("ack")

        async def respond(text):
            order.append("respond")

        asyncio.run(adapter.handle_slash_command({"text": "help", "user_id": "U7"}, ack, respond))

        assert order == ["ack", "respond"]

    def test_failed_acknowledgement_still_replies(self):
        adapter, _ = _make_adapter()
        ack = AsyncMock(side_effect=RuntimeError("expired_trigger_id"))
        respond = AsyncMock()

        asyncio.run(adapter.handle_slash_command({"text": "help", "user_id": "U7"}, ack, respond))

        ack.assert_awaited_once()
        respond.assert_awaited_once()

    def test_exception_replies_with_apology(self, mocker):
        adapter, _ = _make_adapter()
        mocker.patch.object(adapter, "process_command", side_effect=RuntimeError("boom"))
        say = AsyncMock()

        asyncio.run(adapter.handle_mention({"text": "<@U0BOT> help", "user": "U7"}, say))

        say.assert_awaited_once_with(APOLOGY)

    def test_delivery_failure_is_logged_not_raised(self):
        adapter, _ = _make_adapter()
        say = AsyncMock(side_effect=RuntimeError("channel_not_found"))
        asyncio.run(adapter.handle_mention({"text": "help", "user": "U7"}, say))  # must not raise


def test_strip_mentions():
    assert strip_mentions("<@U123> <@U456|bob>  list branches") == "list branches"
    assert strip_mentions(None) == ""


def test_register_chat_handlers():
    adapter, _ = _make_adapter()
    app = MagicMock()

    register_chat_handlers(app, adapter, slash_command="/robin-relay")

    app.event.assert_any_call("app_mention")
    app.event.assert_any_call("message")
    app.command.assert_called_once_with("/robin-relay")
    app.command.return_value.assert_called_once_with(adapter.handle_slash_command)
