"""Shared command vocabulary, parser and registry.

Both surfaces (PR comments and Slack) parse text into the same Command and
run it through the same CommandRegistry, so a command behaves identically
whichever transport carried it in. The adapters only extract the command
line and deliver the CommandResult back.

Command names are a closed enum; the registry maps every kind to exactly
one handler method. Argument splitting is per command because each has its
own shape (``create pr <from> <to> <title...>`` vs ``analyze <repo> <pr#>``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from robinrelay_backend.errors import BackendError
from robinrelay_core import messages
from robinrelay_core.analysis import AnalysisTarget, CheckKind

if TYPE_CHECKING:
    from robinrelay_backend.base import BaseBackend
    from robinrelay_core.analysis import BaseAnalyzer

logger = logging.getLogger(__name__)


class CommandKind(str, Enum):
    HELP = "help"
    HELLO = "hello"
    ANALYZE = "analyze"
    REVIEW = "review"
    STATUS = "status"
    TEST = "test"
    LINT = "lint"
    SECURITY = "security"
    DEPENDENCIES = "dependencies"
    LIST_BRANCHES = "list-branches"
    CREATE_PR = "create-pr"
    EDIT_FILE = "edit-file"


class Surface(str, Enum):
    COMMENT = "comment"
    CHAT = "chat"


# Longest alias wins, so "create pr" is matched before "create".
_ALIASES: dict[tuple[str, ...], CommandKind] = {
    ("help",): CommandKind.HELP,
    ("hello",): CommandKind.HELLO,
    ("hi",): CommandKind.HELLO,
    ("analyze",): CommandKind.ANALYZE,
    ("review",): CommandKind.REVIEW,
    ("status",): CommandKind.STATUS,
    ("test",): CommandKind.TEST,
    ("lint",): CommandKind.LINT,
    ("security",): CommandKind.SECURITY,
    ("dependencies",): CommandKind.DEPENDENCIES,
    ("list", "branches"): CommandKind.LIST_BRANCHES,
    ("branches",): CommandKind.LIST_BRANCHES,
    ("list-branches",): CommandKind.LIST_BRANCHES,
    ("create", "pr"): CommandKind.CREATE_PR,
    ("create-pr",): CommandKind.CREATE_PR,
    ("edit",): CommandKind.EDIT_FILE,
    ("edit-file",): CommandKind.EDIT_FILE,
}
_MAX_ALIAS_WORDS = max(len(words) for words in _ALIASES)

COMMENT_COMMANDS = frozenset(
    {
        CommandKind.HELP,
        CommandKind.ANALYZE,
        CommandKind.REVIEW,
        CommandKind.STATUS,
        CommandKind.TEST,
        CommandKind.LINT,
        CommandKind.SECURITY,
        CommandKind.DEPENDENCIES,
    }
)

# Commands that post a placeholder first and edit it with the result.
LONG_RUNNING = frozenset(
    {
        CommandKind.ANALYZE,
        CommandKind.REVIEW,
        CommandKind.TEST,
        CommandKind.LINT,
        CommandKind.SECURITY,
        CommandKind.DEPENDENCIES,
    }
)

_FAILURE_LABELS = {
    CommandKind.HELP: "Help",
    CommandKind.HELLO: "Greeting",
    CommandKind.ANALYZE: "Analysis",
    CommandKind.REVIEW: "Review",
    CommandKind.STATUS: "Status Check",
    CommandKind.TEST: "Tests",
    CommandKind.LINT: "Linting",
    CommandKind.SECURITY: "Security Scan",
    CommandKind.DEPENDENCIES: "Dependency Check",
    CommandKind.LIST_BRANCHES: "Branch Listing",
    CommandKind.CREATE_PR: "Pull Request Creation",
    CommandKind.EDIT_FILE: "File Edit",
}


class ValidationError(ValueError):
    """The command's arguments are malformed; raised before any backend call."""


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    raw_args: str = ""
    user_id: str = ""
    surface: Surface = Surface.CHAT

    @property
    def args(self) -> list[str]:
        return self.raw_args.split()


@dataclass(frozen=True)
class CommandContext:
    """Where a command was issued. Comment commands carry their pull request."""

    repo: str | None = None
    pr_number: int | None = None


@dataclass(frozen=True)
class CommandResult:
    text: str
    is_error: bool = False


def mention_pattern(mention: str) -> re.Pattern:
    """Match ``mention`` as a whole handle, so @bot does not match @bot-ci."""
    return re.compile(rf"{re.escape(mention)}(?![\w-])", re.IGNORECASE)


def _command_line(text: str, mention: str | None) -> str | None:
    if mention is None:
        return text.strip()
    pattern = mention_pattern(mention)
    for line in text.splitlines():
        match = pattern.search(line)
        if match:
            return line[match.end() :].strip()
    return None


def parse(
    text: str,
    mention: str | None = None,
    *,
    user_id: str = "",
    surface: Surface = Surface.CHAT,
) -> Command | None:
    """Parse free-form text into a Command.

    With ``mention`` the command follows the mention on the first line that
    contains it; without, the whole text is the command line. Returns None
    when the mention is absent or the command name is unknown. An empty
    command line is ``help``. Names match case-insensitively; arguments keep
    their case.
    """
    line = _command_line(text or "", mention)
    if line is None:
        return None

    words = line.split()
    if not words:
        return Command(CommandKind.HELP, "", user_id, surface)

    lowered = [w.lower() for w in words[:_MAX_ALIAS_WORDS]]
    for size in range(len(lowered), 0, -1):
        kind = _ALIASES.get(tuple(lowered[:size]))
        if kind is not None:
            rest = line.split(None, size)
            raw_args = rest[size].strip() if len(rest) > size else ""
            return Command(kind, raw_args, user_id, surface)
    return None


def command_name(text: str) -> str:
    """The first word of a command line, lower-cased (for unknown-command replies)."""
    words = (text or "").split()
    return words[0].lower() if words else ""


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class CommandRegistry:
    """Executes commands against the backend and the analysis collaborator."""

    def __init__(
        self,
        backend: BaseBackend,
        analyzer: BaseAnalyzer,
        bot_name: str = "robin-relay-bot",
        default_repo: str | None = None,
        slash_command: str = "/robin-relay",
    ):
        self.backend = backend
        self.analyzer = analyzer
        self.bot_name = bot_name
        self.default_repo = default_repo
        self.slash_command = slash_command
        self._handlers = {
            CommandKind.HELP: self._help,
            CommandKind.HELLO: self._hello,
            CommandKind.ANALYZE: self._analyze,
            CommandKind.REVIEW: self._analyze,
            CommandKind.STATUS: self._status,
            CommandKind.TEST: self._check,
            CommandKind.LINT: self._check,
            CommandKind.SECURITY: self._check,
            CommandKind.DEPENDENCIES: self._check,
            CommandKind.LIST_BRANCHES: self._list_branches,
            CommandKind.CREATE_PR: self._create_pr,
            CommandKind.EDIT_FILE: self._edit_file,
        }

    def handles(self, kind: CommandKind) -> bool:
        return kind in self._handlers

    async def execute(self, command: Command, context: CommandContext | None = None) -> CommandResult:
        """Run a command. Never raises: every failure becomes an error result."""
        context = context or CommandContext()
        logger.info(
            "Executing %s from %s via %s (args=%r)",
            command.kind.value,
            command.user_id or "unknown",
            command.surface.value,
            command.raw_args,
        )
        label = _FAILURE_LABELS[command.kind]
        try:
            text = await self._handlers[command.kind](command, context)
        except ValidationError as e:
            return CommandResult(f"❌ {e}", is_error=True)
        except BackendError as e:
            logger.warning("%s failed: %s", label, e)
            return CommandResult(f"❌ **{label} Failed**\n\nError: {e}", is_error=True)
        except Exception as e:
            logger.exception("%s failed unexpectedly", label)
            return CommandResult(f"❌ **{label} Failed**\n\nError: {e}", is_error=True)
        return CommandResult(text)

    # ------------------------------------------------------------------ #
    # Argument helpers                                                    #
    # ------------------------------------------------------------------ #

    def _qualify(self, repo: str) -> str:
        if "/" in repo:
            return repo
        if self.default_repo and "/" in self.default_repo:
            owner = self.default_repo.split("/", 1)[0]
            return f"{owner}/{repo}"
        raise ValidationError(f"Please use the `owner/name` form for `{repo}`.")

    def _repo_from(self, command: Command, context: CommandContext) -> str:
        if command.args:
            return self._qualify(command.args[0])
        if context.repo:
            return context.repo
        if self.default_repo:
            return self.default_repo
        raise ValidationError("Please specify a repository. Example: `status owner/repo`")

    def _pull_request_from(self, command: Command, context: CommandContext) -> tuple[str, int]:
        if context.repo and context.pr_number is not None:
            return context.repo, context.pr_number
        example = f"Example: `{command.kind.value} my-repo 123`"
        args = command.args
        if len(args) < 2:
            raise ValidationError(f"Please provide both repository name and PR number. {example}")
        try:
            number = int(args[1].lstrip("#"))
        except ValueError:
            raise ValidationError(f"`{args[1]}` is not a pull request number. {example}")
        return self._qualify(args[0]), number

    async def _target(self, repo: str, number: int) -> AnalysisTarget:
        pr = await self.backend.get_pull_request(repo, number)
        files = await self.backend.list_changed_files(repo, number)
        return AnalysisTarget(repo=repo, pull_request=pr, files=files)

    # ------------------------------------------------------------------ #
    # Handlers                                                            #
    # ------------------------------------------------------------------ #

    async def _help(self, command: Command, context: CommandContext) -> str:
        if command.surface is Surface.COMMENT:
            return messages.comment_help(self.bot_name)
        return messages.chat_help(self.bot_name, self.slash_command)

    async def _hello(self, command: Command, context: CommandContext) -> str:
        return messages.hello(command.user_id)

    async def _analyze(self, command: Command, context: CommandContext) -> str:
        repo, number = self._pull_request_from(command, context)
        target = await self._target(repo, number)
        report = await self.analyzer.run_check(CheckKind(command.kind.value), target)
        return f"✅ **{report.title}**\n\n{report.summary}\n\n{messages.FOOTER}"

    async def _check(self, command: Command, context: CommandContext) -> str:
        if context.repo and context.pr_number is not None:
            target = await self._target(context.repo, context.pr_number)
        else:
            repo = self._repo_from(command, context)
            target = AnalysisTarget(repo=repo, entries=await self.backend.list_directory(repo))
        report = await self.analyzer.run_check(CheckKind(command.kind.value), target)
        icon = "✅" if report.passed else "⚠️"
        return f"{icon} **{report.title}**\n\n{report.summary}\n\n{messages.FOOTER}"

    async def _status(self, command: Command, context: CommandContext) -> str:
        if context.repo and context.pr_number is not None:
            return await self._pull_request_status(context.repo, context.pr_number)

        repo = self._repo_from(command, context)
        summary = await self.backend.get_repository_summary(repo)
        return (
            f"📈 *Status for {summary.full_name}*\n\n"
            f"• **Description:** {summary.description or 'No description'}\n"
            f"• **Language:** {summary.language or 'Not specified'}\n"
            f"• **Stars:** ⭐ {summary.stars}\n"
            f"• **Forks:** 🔀 {summary.forks}\n"
            f"• **Open Issues:** 🐛 {summary.open_issues}\n"
            f"• **Open PRs:** 🔄 {summary.open_pull_requests}\n"
            f"• **Last Updated:** {summary.updated_at[:10] or 'unknown'}"
        )

    async def _pull_request_status(self, repo: str, number: int) -> str:
        pr = await self.backend.get_pull_request(repo, number)
        checks = await self.backend.list_checks_for_ref(repo, pr.head_sha)
        check_lines = "\n".join(f"- {c.name}: {c.conclusion or c.status}" for c in checks)
        mergeable = "✅ Yes" if pr.mergeable else "❌ No"
        return (
            "📊 **PR Status Report**\n\n"
            f"**📝 Pull Request:** #{pr.number} - {pr.title}\n"
            f"**👤 Author:** {pr.author}\n"
            f"**📅 Created:** {pr.created_at[:10] or 'unknown'}\n"
            f"**🔄 State:** {pr.state}\n"
            f"**🔀 Mergeable:** {mergeable}\n"
            f"**👀 Requested Reviewers:** {pr.requested_reviewers}\n\n"
            f"**🔍 Status Checks:** {len(checks)} total\n"
            f"{check_lines}\n\n"
            "**📈 PR Stats:**\n"
            f"- **Commits:** {pr.commits}\n"
            f"- **Files Changed:** {pr.changed_files}\n"
            f"- **Additions:** +{pr.additions}\n"
            f"- **Deletions:** -{pr.deletions}\n\n"
            f"{messages.FOOTER}"
        )

    async def _list_branches(self, command: Command, context: CommandContext) -> str:
        repo = self._repo_from(command, context)
        branches = await self.backend.list_branches(repo)
        if not branches:
            return f"🌿 *Branches in {repo}*\n\nNo branches found."
        lines = "\n".join(f"• `{b.name}` ({b.sha[:7]})" for b in branches)
        return f"🌿 *Branches in {repo}*\n\n{lines}"

    async def _create_pr(self, command: Command, context: CommandContext) -> str:
        parts = command.raw_args.split(None, 2)
        if len(parts) < 3:
            raise ValidationError(
                'Please provide source branch, target branch, and title. Example: `create pr dev main "New feature"`'
            )
        head, base, title = parts[0], parts[1], _unquote(parts[2])
        repo = context.repo or self.default_repo
        if not repo:
            raise ValidationError("No default repository configured. Set `default_repo` in .robinrelay.yml.")
        body = f"Pull request created via RobinRelay Bot\n\nFrom: `{head}`\nTo: `{base}`"
        pr = await self.backend.create_pull_request(repo, head=head, base=base, title=title, body=body)
        return (
            "✅ *Pull Request Created!*\n\n"
            f"• Title: {title}\n"
            f"• From: `{head}` → `{base}`\n"
            f"• URL: {pr.html_url}"
        )

    async def _edit_file(self, command: Command, context: CommandContext) -> str:
        parts = command.raw_args.split(None, 1)
        if len(parts) < 2:
            raise ValidationError(
                'Please provide file name and content. Example: `edit README.md "New introduction"`'
            )
        path, content = parts[0], _unquote(parts[1])
        repo = context.repo or self.default_repo
        if not repo:
            raise ValidationError("No default repository configured. Set `default_repo` in .robinrelay.yml.")
        result = await self.backend.write_file(repo, path, content, message=f"Update {path} via RobinRelay Bot")
        status = "created" if result.created else "updated"
        return f"✏️ *File Updated!*\n\n• File: `{path}`\n• Status: {status}\n• Commit: {result.commit_sha[:7]}"
