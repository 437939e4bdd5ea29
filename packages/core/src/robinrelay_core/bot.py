"""Assembles the bot's components from a config dict and a backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from robinrelay_core.analysis import StaticAnalyzer
from robinrelay_core.chat import ChatAdapter
from robinrelay_core.commands import CommandRegistry
from robinrelay_core.comments import CommentAdapter
from robinrelay_core.events import EventRouter, build_router
from robinrelay_core.ratelimit import RateLimiter
from robinrelay_core.workflow import StatusWorkflow

if TYPE_CHECKING:
    from robinrelay_backend.base import BaseBackend
    from robinrelay_core.analysis import BaseAnalyzer


@dataclass
class Bot:
    registry: CommandRegistry
    workflow: StatusWorkflow
    comments: CommentAdapter
    chat: ChatAdapter
    router: EventRouter


def build_bot(config: dict, backend: BaseBackend, analyzer: BaseAnalyzer | None = None) -> Bot:
    analyzer = analyzer or StaticAnalyzer()
    registry = CommandRegistry(
        backend,
        analyzer,
        bot_name=config["bot_name"],
        default_repo=config.get("default_repo"),
        slash_command=config.get("slash_command", "/robin-relay"),
    )
    workflow = StatusWorkflow(backend, analyzer, check_name=config["check_run_name"])
    comments = CommentAdapter(
        backend,
        registry,
        RateLimiter(cooldown=float(config["cooldown_seconds"])),
        bot_name=config["bot_name"],
        bot_identities=config.get("bot_identities"),
        match_bot_substring=config.get("match_bot_substring", True),
    )
    return Bot(
        registry=registry,
        workflow=workflow,
        comments=comments,
        chat=ChatAdapter(registry),
        router=build_router(workflow, comments),
    )
