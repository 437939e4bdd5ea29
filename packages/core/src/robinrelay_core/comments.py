"""Comment surface: `@robin-relay-bot <command>` in pull request comments.

Processing order matters. Bot-loop prevention runs first so the bot never
answers its own output (or another bot's), then the mention check, the PR
scope check and the per-user cooldown. Only then is the command parsed and
executed. Every failure past that point is reported back to the thread as
an error comment; nothing propagates to the event router.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from robinrelay_backend.errors import NotFound
from robinrelay_core import messages
from robinrelay_core.commands import (
    COMMENT_COMMANDS,
    LONG_RUNNING,
    Command,
    CommandContext,
    CommandKind,
    Surface,
    mention_pattern,
    parse,
)

if TYPE_CHECKING:
    from robinrelay_backend.base import BaseBackend
    from robinrelay_core.commands import CommandRegistry
    from robinrelay_core.events import WebhookEvent
    from robinrelay_core.ratelimit import RateLimiter

logger = logging.getLogger(__name__)


class CommentAdapter:
    def __init__(
        self,
        backend: BaseBackend,
        registry: CommandRegistry,
        rate_limiter: RateLimiter,
        bot_name: str = "robin-relay-bot",
        bot_identities: list[str] | None = None,
        match_bot_substring: bool = True,
    ):
        self.backend = backend
        self.registry = registry
        self.rate_limiter = rate_limiter
        self.mention = f"@{bot_name}"
        self._mention_pattern = mention_pattern(self.mention)
        self.bot_identities = {i.lower() for i in (bot_identities or [bot_name])}
        self.match_bot_substring = match_bot_substring

    def is_bot(self, user: dict) -> bool:
        """True for bot accounts and for any of the bot's own identities."""
        login = (user.get("login") or "").lower()
        if user.get("type") == "Bot" or login in self.bot_identities:
            return True
        return self.match_bot_substring and "bot" in login

    @staticmethod
    def pull_request_number(event: WebhookEvent) -> int | None:
        """PR number for PR-scoped comments; None for comments on plain issues."""
        payload = event.payload
        issue = payload.get("issue")
        if issue is not None:
            return issue.get("number") if issue.get("pull_request") else None
        pr = payload.get("pull_request")
        return pr.get("number") if pr else None

    async def on_comment(self, event: WebhookEvent) -> None:
        comment = event.payload.get("comment") or {}
        user = comment.get("user") or {}
        login = user.get("login") or ""

        if self.is_bot(user):
            logger.debug("Ignoring comment from bot account %s", login)
            return

        body = comment.get("body") or ""
        if not self._mention_pattern.search(body):
            return

        repo = event.repo
        pr_number = self.pull_request_number(event)
        if pr_number is None:
            logger.info("Ignoring mention on %s: comment is not on a pull request", repo)
            return

        logger.info("Mentioned by %s on %s#%d: %s", login, repo, pr_number, comment.get("html_url", ""))

        if not self.rate_limiter.allow(login):
            logger.info("Rate limit: %s must wait %.0fs", login, self.rate_limiter.remaining(login) + 0.5)
            return

        try:
            await self._run(self._command(body, login), CommandContext(repo=repo, pr_number=pr_number))
        except Exception as e:
            logger.exception("Error handling comment on %s#%d", repo, pr_number)
            await self._report_error(repo, pr_number, str(e))

    def _command(self, body: str, login: str) -> Command:
        command = parse(body, self.mention, user_id=login, surface=Surface.COMMENT)
        if command is None or command.kind not in COMMENT_COMMANDS:
            return Command(CommandKind.HELP, "", login, Surface.COMMENT)
        return command

    async def _run(self, command: Command, context: CommandContext) -> None:
        repo, pr_number = context.repo, context.pr_number
        if command.kind not in LONG_RUNNING:
            result = await self.registry.execute(command, context)
            await self.backend.create_comment(repo, pr_number, result.text)
            return

        placeholder = await self.backend.create_comment(repo, pr_number, messages.PLACEHOLDERS[command.kind.value])
        result = await self.registry.execute(command, context)
        await self._finalize(repo, pr_number, placeholder.id, result.text)

    async def _finalize(self, repo: str, pr_number: int, comment_id: int, body: str) -> None:
        """Edit the placeholder; if it is gone, edit the latest bot comment or post anew."""
        try:
            await self.backend.update_comment(repo, pr_number, comment_id, body)
            return
        except NotFound:
            logger.warning("Placeholder comment %s on %s#%d disappeared", comment_id, repo, pr_number)

        comments = await self.backend.list_comments(repo, pr_number)
        own = [c for c in comments if c.author.lower() in self.bot_identities]
        if own:
            await self.backend.update_comment(repo, pr_number, own[-1].id, body)
        else:
            await self.backend.create_comment(repo, pr_number, body)

    async def _report_error(self, repo: str, pr_number: int, message: str) -> None:
        try:
            await self.backend.create_comment(repo, pr_number, messages.error_block(message))
        except Exception:
            logger.exception("Could not report error on %s#%d", repo, pr_number)
