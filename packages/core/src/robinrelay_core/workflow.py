"""Per-pull-request review status workflow.

Drives one pull request through a fixed sequence of visible side effects:

    Started → Reacted → CommentPosted → CheckCreated → Analyzing
            → {CheckCompleted | Failed} → CommentFinalized

The reaction is best effort. The progress comment and the check run are
prerequisites for everything after them, so failing to create either ends
the session in Failed. Once the check run exists it is always moved to
``completed``: an analysis failure changes the conclusion to ``failure``
instead of leaving the run ``in_progress`` on the pull request forever.

Sessions live in memory for one invocation. A process restart between
steps 3 and 5 leaves an orphaned in-progress check run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from robinrelay_backend.models import PullRequest
from robinrelay_core import messages
from robinrelay_core.analysis import AnalysisTarget, CheckKind

if TYPE_CHECKING:
    from robinrelay_backend.base import BaseBackend
    from robinrelay_core.analysis import BaseAnalyzer
    from robinrelay_core.events import WebhookEvent

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    STARTED = "started"
    REACTED = "reacted"
    COMMENT_POSTED = "comment_posted"
    CHECK_CREATED = "check_created"
    ANALYZING = "analyzing"
    CHECK_COMPLETED = "check_completed"
    FAILED = "failed"
    COMMENT_FINALIZED = "comment_finalized"


@dataclass
class ReviewSession:
    repo: str
    pr_number: int
    head_sha: str
    reaction_posted: bool = False
    progress_comment_id: int | None = None
    check_run_id: int | None = None
    state: SessionState = SessionState.STARTED
    conclusion: str | None = None
    error: str | None = None


def _pull_request_from_payload(payload: dict) -> PullRequest:
    pr = payload["pull_request"]
    return PullRequest(
        number=pr["number"],
        title=pr.get("title") or "",
        author=(pr.get("user") or {}).get("login", ""),
        state=pr.get("state", "open"),
        head_sha=pr["head"]["sha"],
        head_ref=pr["head"].get("ref", ""),
        base_ref=(pr.get("base") or {}).get("ref", ""),
        html_url=pr.get("html_url") or "",
    )


class StatusWorkflow:
    """Runs the review status sequence for pull request lifecycle events."""

    def __init__(self, backend: BaseBackend, analyzer: BaseAnalyzer, check_name: str = "🛠️ PR Review Bot"):
        self.backend = backend
        self.analyzer = analyzer
        self.check_name = check_name

    async def run(self, event: WebhookEvent) -> ReviewSession:
        """Process one pull_request event. Never raises; the outcome is on the session."""
        repo = event.repo
        pr = _pull_request_from_payload(event.payload)
        session = ReviewSession(repo=repo, pr_number=pr.number, head_sha=pr.head_sha)

        logger.info(
            "Processing pull request %s#%d %r by %s (%s)", repo, pr.number, pr.title, pr.author, event.type
        )

        await self._react(session)

        try:
            comment = await self.backend.create_comment(repo, pr.number, messages.REVIEW_IN_PROGRESS)
            session.progress_comment_id = comment.id
            session.state = SessionState.COMMENT_POSTED

            check = await self.backend.create_check_run(repo, self.check_name, pr.head_sha)
            session.check_run_id = check.id
            session.state = SessionState.CHECK_CREATED
        except Exception as e:
            session.state = SessionState.FAILED
            session.error = str(e)
            logger.exception("Review session for %s#%d aborted before analysis", repo, pr.number)
            return session

        title, summary = await self._analyze(session, pr)
        await self._complete_check(session, title, summary)
        await self._finalize_comment(session, summary)
        return session

    async def _react(self, session: ReviewSession) -> None:
        try:
            await self.backend.add_reaction(session.repo, session.pr_number, "eyes")
            session.reaction_posted = True
            session.state = SessionState.REACTED
        except Exception as e:
            logger.warning("Could not react to %s#%d: %s", session.repo, session.pr_number, e)

    async def _analyze(self, session: ReviewSession, pr: PullRequest) -> tuple[str, str]:
        session.state = SessionState.ANALYZING
        try:
            files = await self.backend.list_changed_files(session.repo, session.pr_number)
            report = await self.analyzer.run_check(
                CheckKind.REVIEW, AnalysisTarget(repo=session.repo, pull_request=pr, files=files)
            )
        except Exception as e:
            logger.exception("Analysis failed for %s#%d", session.repo, session.pr_number)
            session.conclusion = "failure"
            session.error = str(e)
            return "Review failed", f"Analysis could not be completed: {e}"

        session.conclusion = "success" if report.passed else "failure"
        return report.title, report.summary

    async def _complete_check(self, session: ReviewSession, title: str, summary: str) -> None:
        try:
            await self.backend.update_check_run(
                session.repo,
                session.check_run_id,
                status="completed",
                conclusion=session.conclusion,
                title=title,
                summary=summary,
            )
        except Exception as e:
            session.error = session.error or str(e)
            session.state = SessionState.FAILED
            logger.exception("Could not complete check run %s on %s", session.check_run_id, session.repo)
            return
        session.state = SessionState.CHECK_COMPLETED if session.conclusion == "success" else SessionState.FAILED

    async def _finalize_comment(self, session: ReviewSession, summary: str) -> None:
        body = messages.review_complete(summary) if session.conclusion == "success" else messages.review_failed(summary)
        try:
            await self.backend.update_comment(session.repo, session.pr_number, session.progress_comment_id, body)
        except Exception:
            logger.exception("Could not update progress comment %s on %s", session.progress_comment_id, session.repo)
            return
        session.state = SessionState.COMMENT_FINALIZED
        logger.info("Review session for %s#%d finished: %s", session.repo, session.pr_number, session.conclusion)
