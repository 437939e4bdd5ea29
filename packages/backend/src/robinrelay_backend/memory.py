"""In-memory backend for deterministic tests and offline runs.

Records every operation in ``calls`` so tests can assert exactly which
code host calls happened (or that none did). Failures are injected per
operation name through ``fail_on``.
"""

from __future__ import annotations

import hashlib
import itertools
from typing import Any

from robinrelay_backend.base import BaseBackend
from robinrelay_backend.errors import BackendError, NotFound, Transient
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


def _blob_sha(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


class InMemoryBackend(BaseBackend):
    """Keeps pull requests, comments, check runs, branches and files in dicts."""

    def __init__(self, author: str = "robin-relay-bot[bot]"):
        self.author = author
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_on: dict[str, BackendError] = {}
        self.pull_requests: dict[tuple[str, int], PullRequest] = {}
        self.files: dict[tuple[str, int], list[ChangedFile]] = {}
        self.comments: dict[tuple[str, int], list[Comment]] = {}
        self.reactions: list[tuple[str, int, str]] = []
        self.check_runs: dict[int, CheckRun] = {}
        self.check_refs: dict[tuple[str, str], list[int]] = {}
        self.branches: dict[str, list[Branch]] = {}
        self.contents: dict[tuple[str, str], str] = {}
        self.repositories: dict[str, RepositorySummary] = {}
        self._ids = itertools.count(1)

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        failure = self.fail_on.get(operation)
        if failure is not None:
            raise failure

    def operations(self) -> list[str]:
        """Names of the operations called so far, in order."""
        return [name for name, _ in self.calls]

    # ------------------------------------------------------------------ #
    # Fixtures                                                            #
    # ------------------------------------------------------------------ #

    def add_pull_request(self, repo: str, pr: PullRequest, files: list[ChangedFile] | None = None) -> None:
        self.pull_requests[(repo, pr.number)] = pr
        self.files[(repo, pr.number)] = list(files or [])

    # ------------------------------------------------------------------ #
    # Pull requests                                                       #
    # ------------------------------------------------------------------ #

    async def get_pull_request(self, repo: str, number: int) -> PullRequest:
        self._record("get_pull_request", repo, number)
        try:
            return self.pull_requests[(repo, number)]
        except KeyError:
            raise NotFound(f"get pull request {repo}#{number}: Not Found", status=404)

    async def list_changed_files(self, repo: str, number: int) -> list[ChangedFile]:
        self._record("list_changed_files", repo, number)
        if (repo, number) not in self.pull_requests:
            raise NotFound(f"list files of {repo}#{number}: Not Found", status=404)
        return list(self.files.get((repo, number), []))

    async def create_pull_request(self, repo: str, head: str, base: str, title: str, body: str = "") -> PullRequest:
        self._record("create_pull_request", repo, head, base, title, body)
        number = max([n for r, n in self.pull_requests if r == repo], default=0) + 1
        pr = PullRequest(
            number=number,
            title=title,
            author=self.author,
            state="open",
            head_sha=_blob_sha(head),
            head_ref=head,
            base_ref=base,
            html_url=f"https://github.com/{repo}/pull/{number}",
        )
        self.add_pull_request(repo, pr)
        return pr

    # ------------------------------------------------------------------ #
    # Comments and reactions                                              #
    # ------------------------------------------------------------------ #

    async def create_comment(self, repo: str, issue_number: int, body: str) -> Comment:
        self._record("create_comment", repo, issue_number, body)
        comment_id = next(self._ids)
        comment = Comment(
            id=comment_id,
            body=body,
            author=self.author,
            html_url=f"https://github.com/{repo}/issues/{issue_number}#issuecomment-{comment_id}",
        )
        self.comments.setdefault((repo, issue_number), []).append(comment)
        return comment

    async def list_comments(self, repo: str, issue_number: int) -> list[Comment]:
        self._record("list_comments", repo, issue_number)
        return list(self.comments.get((repo, issue_number), []))

    async def update_comment(self, repo: str, issue_number: int, comment_id: int, body: str) -> Comment:
        self._record("update_comment", repo, issue_number, comment_id, body)
        for comment in self.comments.get((repo, issue_number), []):
            if comment.id == comment_id:
                comment.body = body
                return comment
        raise NotFound(f"update comment {comment_id} in {repo}: Not Found", status=404)

    async def add_reaction(self, repo: str, issue_number: int, content: str = "eyes") -> None:
        self._record("add_reaction", repo, issue_number, content)
        self.reactions.append((repo, issue_number, content))

    # ------------------------------------------------------------------ #
    # Check runs                                                          #
    # ------------------------------------------------------------------ #

    async def create_check_run(self, repo: str, name: str, head_sha: str) -> CheckRun:
        self._record("create_check_run", repo, name, head_sha)
        check = CheckRun(id=next(self._ids), name=name, status="in_progress")
        self.check_runs[check.id] = check
        self.check_refs.setdefault((repo, head_sha), []).append(check.id)
        return check

    async def update_check_run(
        self,
        repo: str,
        check_run_id: int,
        status: str,
        conclusion: str | None = None,
        title: str = "",
        summary: str = "",
    ) -> CheckRun:
        self._record("update_check_run", repo, check_run_id, status, conclusion)
        check = self.check_runs.get(check_run_id)
        if check is None:
            raise NotFound(f"update check run {check_run_id} in {repo}: Not Found", status=404)
        check.status = status
        check.conclusion = conclusion
        check.title = title
        check.summary = summary
        return check

    async def list_checks_for_ref(self, repo: str, ref: str) -> list[CheckRun]:
        self._record("list_checks_for_ref", repo, ref)
        return [self.check_runs[i] for i in self.check_refs.get((repo, ref), [])]

    # ------------------------------------------------------------------ #
    # Repository                                                          #
    # ------------------------------------------------------------------ #

    async def list_branches(self, repo: str) -> list[Branch]:
        self._record("list_branches", repo)
        if repo not in self.branches:
            raise NotFound(f"list branches of {repo}: Not Found", status=404)
        return list(self.branches[repo])

    async def get_repository_summary(self, repo: str) -> RepositorySummary:
        self._record("get_repository_summary", repo)
        try:
            summary = self.repositories[repo]
        except KeyError:
            raise NotFound(f"get repository {repo}: Not Found", status=404)
        summary.open_pull_requests = sum(
            1 for (r, _), pr in self.pull_requests.items() if r == repo and pr.state == "open"
        )
        return summary

    def _known(self, repo: str) -> bool:
        return (
            repo in self.repositories
            or repo in self.branches
            or any(r == repo for r, _ in self.contents)
            or any(r == repo for r, _ in self.pull_requests)
        )

    async def list_directory(self, repo: str, path: str = "", ref: str | None = None) -> list[DirectoryEntry]:
        self._record("list_directory", repo, path, ref)
        if not self._known(repo):
            raise NotFound(f"list {path or '/'} in {repo}: Not Found", status=404)
        prefix = f"{path.strip('/')}/" if path.strip("/") else ""
        entries: dict[str, DirectoryEntry] = {}
        for r, file_path in sorted(self.contents):
            if r != repo or not file_path.startswith(prefix):
                continue
            name, _, rest = file_path[len(prefix) :].partition("/")
            entries.setdefault(name, DirectoryEntry(name=name, path=prefix + name, type="dir" if rest else "file"))
        if prefix and not entries:
            raise NotFound(f"list {path} in {repo}: Not Found", status=404)
        return list(entries.values())

    async def read_file(self, repo: str, path: str, ref: str | None = None) -> FileContent:
        self._record("read_file", repo, path, ref)
        try:
            content = self.contents[(repo, path)]
        except KeyError:
            raise NotFound(f"read {path} in {repo}: Not Found", status=404)
        return FileContent(path=path, content=content, sha=_blob_sha(content))

    async def _put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None,
        branch: str | None,
    ) -> WriteResult:
        self._record("put_file", repo, path, sha, branch)
        existing = self.contents.get((repo, path))
        current_sha = _blob_sha(existing) if existing is not None else None
        if current_sha != sha:
            raise Transient(f"write {path} in {repo}: revision changed ({sha} != {current_sha})", status=409)
        self.contents[(repo, path)] = content
        return WriteResult(
            path=path,
            commit_sha=_blob_sha(f"{message}\n{content}"),
            created=sha is None,
            html_url=f"https://github.com/{repo}/blob/{branch or 'main'}/{path}",
        )
