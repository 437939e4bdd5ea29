"""Abstract backend interface.

Everything above this layer (status workflow, command registry, surface
adapters) depends on BaseBackend, never on PyGithub, so the code host
transport can be swapped for the in-memory backend in tests or for another
host entirely.

Every operation maps to one code host API call and raises a typed
BackendError on failure. All operations take the repository as
"owner/name" first.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from robinrelay_backend.errors import NotFound

if TYPE_CHECKING:
    from robinrelay_backend.models import (
        Branch,
        ChangedFile,
        CheckRun,
        Comment,
        DirectoryEntry,
        FileContent,
        PullRequest,
        RepositorySummary,
        WriteResult,
    )

logger = logging.getLogger(__name__)


class BaseBackend(ABC):
    """Repository and pull request operations used by the bot."""

    # ------------------------------------------------------------------ #
    # Pull requests                                                       #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def get_pull_request(self, repo: str, number: int) -> PullRequest:
        """Return a pull request or raise NotFound."""

    @abstractmethod
    async def list_changed_files(self, repo: str, number: int) -> list[ChangedFile]:
        """Return the files changed by a pull request."""

    @abstractmethod
    async def create_pull_request(self, repo: str, head: str, base: str, title: str, body: str = "") -> PullRequest:
        """Open a pull request from ``head`` into ``base``."""

    # ------------------------------------------------------------------ #
    # Comments and reactions                                              #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def create_comment(self, repo: str, issue_number: int, body: str) -> Comment:
        """Post a new comment on an issue or pull request conversation."""

    @abstractmethod
    async def list_comments(self, repo: str, issue_number: int) -> list[Comment]:
        """Return the conversation comments, oldest first."""

    @abstractmethod
    async def update_comment(self, repo: str, issue_number: int, comment_id: int, body: str) -> Comment:
        """Replace the body of an existing comment."""

    @abstractmethod
    async def add_reaction(self, repo: str, issue_number: int, content: str = "eyes") -> None:
        """React to the issue or pull request itself."""

    # ------------------------------------------------------------------ #
    # Check runs                                                          #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def create_check_run(self, repo: str, name: str, head_sha: str) -> CheckRun:
        """Create a check run in ``in_progress`` status on ``head_sha``."""

    @abstractmethod
    async def update_check_run(
        self,
        repo: str,
        check_run_id: int,
        status: str,
        conclusion: str | None = None,
        title: str = "",
        summary: str = "",
    ) -> CheckRun:
        """Update a check run. ``completed`` requires a conclusion."""

    @abstractmethod
    async def list_checks_for_ref(self, repo: str, ref: str) -> list[CheckRun]:
        """Return the check runs attached to a commit sha or branch."""

    # ------------------------------------------------------------------ #
    # Repository                                                          #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def list_branches(self, repo: str) -> list[Branch]:
        """Return every branch with its head sha."""

    @abstractmethod
    async def get_repository_summary(self, repo: str) -> RepositorySummary:
        """Return headline repository metadata and the open PR count."""

    @abstractmethod
    async def list_directory(self, repo: str, path: str = "", ref: str | None = None) -> list[DirectoryEntry]:
        """Return the entries directly under ``path`` (the root by default).

        Raises NotFound when the repository or the path does not exist.
        """

    @abstractmethod
    async def read_file(self, repo: str, path: str, ref: str | None = None) -> FileContent:
        """Return a file's decoded text and revision sha, or raise NotFound."""

    @abstractmethod
    async def _put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None,
        branch: str | None,
    ) -> WriteResult:
        """Create (``sha`` is None) or replace a file at revision ``sha``."""

    async def file_sha(self, repo: str, path: str, ref: str | None = None) -> str:
        """Revision sha of a file, or NotFound. Backends may skip decoding the content."""
        return (await self.read_file(repo, path, ref=ref)).sha

    async def write_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str | None = None,
    ) -> WriteResult:
        """Create or update a file as a compare-and-swap on its revision.

        The current revision is read first so the host rejects the write if
        the file changed in between. A missing file is not an error: the
        write proceeds with no prior revision and creates it.
        """
        sha: str | None = None
        try:
            sha = await self.file_sha(repo, path, ref=branch)
        except NotFound:
            logger.debug("%s does not exist in %s; creating it", path, repo)
        return await self._put_file(repo, path, content, message, sha, branch)

    def close(self) -> None:
        """Release any resources held by the backend.

        Default is a no-op.
        """
