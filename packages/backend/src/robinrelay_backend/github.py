"""GitHubBackend: BaseBackend over the GitHub REST API via PyGithub.

PyGithub is synchronous, so every call runs in a worker thread through
asyncio.to_thread. That keeps the event loop free to dispatch other
webhook deliveries and chat messages while one request is in flight.

Clients come from a factory keyed by repository so GitHub App
installations (one token per installation) and a single personal access
token share the same code path.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable

import requests
from github import Auth, Github, GithubException, RateLimitExceededException

from robinrelay_backend.base import BaseBackend
from robinrelay_backend.errors import BackendError, NotFound, PermissionDenied, RateLimited, Transient
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


def _error_message(exc: GithubException) -> str:
    data = exc.data if isinstance(exc.data, dict) else {}
    return data.get("message") or str(exc)


@contextmanager
def translate_errors(operation: str):
    """Re-raise PyGithub and requests failures as typed BackendErrors."""
    try:
        yield
    except RateLimitExceededException as e:
        raise RateLimited(f"{operation}: {_error_message(e)}", status=e.status) from e
    except GithubException as e:
        message = f"{operation}: {_error_message(e)}"
        if e.status == 404:
            raise NotFound(message, status=e.status) from e
        if e.status == 429:
            raise RateLimited(message, status=e.status) from e
        if e.status in (401, 403):
            raise PermissionDenied(message, status=e.status) from e
        if e.status == 409 or (e.status is not None and e.status >= 500):
            raise Transient(message, status=e.status) from e
        raise BackendError(message, status=e.status) from e
    except requests.exceptions.RequestException as e:
        raise Transient(f"{operation}: {e}") from e


def _iso(value) -> str:
    return value.isoformat() if isinstance(value, datetime) else (value or "")


def _to_pull_request(pr) -> PullRequest:
    return PullRequest(
        number=pr.number,
        title=pr.title or "",
        author=pr.user.login if pr.user else "",
        state=pr.state,
        head_sha=pr.head.sha,
        head_ref=pr.head.ref,
        base_ref=pr.base.ref,
        html_url=pr.html_url or "",
        mergeable=pr.mergeable,
        commits=pr.commits or 0,
        changed_files=pr.changed_files or 0,
        additions=pr.additions or 0,
        deletions=pr.deletions or 0,
        created_at=_iso(pr.created_at),
        requested_reviewers=len(pr.requested_reviewers or []),
    )


def _to_comment(comment) -> Comment:
    return Comment(
        id=comment.id,
        body=comment.body or "",
        author=comment.user.login if comment.user else "",
        html_url=comment.html_url or "",
    )


def _to_check_run(check) -> CheckRun:
    output = getattr(check, "output", None)
    return CheckRun(
        id=check.id,
        name=check.name,
        status=check.status,
        conclusion=check.conclusion,
        title=(output.title or "") if output else "",
        summary=(output.summary or "") if output else "",
    )


class GitHubBackend(BaseBackend):
    """Backend that talks to github.com (or GitHub Enterprise) through PyGithub.

    Pass either a token, or a ``client_factory`` returning an authenticated
    Github client for a given "owner/name" (see robinrelay_cli.auth).
    """

    def __init__(
        self,
        token: str | None = None,
        client_factory: Callable[[str], Github] | None = None,
        base_url: str | None = None,
    ):
        if client_factory is None:
            if not token:
                raise ValueError("GitHubBackend needs a token or a client_factory.")
            kwargs = {"auth": Auth.Token(token)}
            if base_url:
                kwargs["base_url"] = base_url
            client = Github(**kwargs)
            client_factory = lambda _repo: client  # noqa: E731
            self._owned_client = client
        else:
            self._owned_client = None
        self._client_factory = client_factory

    def _repo(self, repo: str):
        return self._client_factory(repo).get_repo(repo)

    async def _call(self, operation: str, fn, *args):
        def run():
            with translate_errors(operation):
                return fn(*args)

        return await asyncio.to_thread(run)

    # ------------------------------------------------------------------ #
    # Pull requests                                                       #
    # ------------------------------------------------------------------ #

    async def get_pull_request(self, repo: str, number: int) -> PullRequest:
        def fetch():
            return _to_pull_request(self._repo(repo).get_pull(number))

        return await self._call(f"get pull request {repo}#{number}", fetch)

    async def list_changed_files(self, repo: str, number: int) -> list[ChangedFile]:
        def fetch():
            files = self._repo(repo).get_pull(number).get_files()
            return [
                ChangedFile(filename=f.filename, status=f.status, additions=f.additions, deletions=f.deletions)
                for f in files
            ]

        return await self._call(f"list files of {repo}#{number}", fetch)

    async def create_pull_request(self, repo: str, head: str, base: str, title: str, body: str = "") -> PullRequest:
        def create():
            pr = self._repo(repo).create_pull(base=base, head=head, title=title, body=body)
            return _to_pull_request(pr)

        return await self._call(f"create pull request {head} -> {base} in {repo}", create)

    # ------------------------------------------------------------------ #
    # Comments and reactions                                              #
    # ------------------------------------------------------------------ #

    async def create_comment(self, repo: str, issue_number: int, body: str) -> Comment:
        def create():
            return _to_comment(self._repo(repo).get_issue(issue_number).create_comment(body))

        return await self._call(f"comment on {repo}#{issue_number}", create)

    async def list_comments(self, repo: str, issue_number: int) -> list[Comment]:
        def fetch():
            return [_to_comment(c) for c in self._repo(repo).get_issue(issue_number).get_comments()]

        return await self._call(f"list comments of {repo}#{issue_number}", fetch)

    async def update_comment(self, repo: str, issue_number: int, comment_id: int, body: str) -> Comment:
        def update():
            comment = self._repo(repo).get_issue(issue_number).get_comment(comment_id)
            comment.edit(body)
            return _to_comment(comment)

        return await self._call(f"update comment {comment_id} in {repo}", update)

    async def add_reaction(self, repo: str, issue_number: int, content: str = "eyes") -> None:
        def react():
            self._repo(repo).get_issue(issue_number).create_reaction(content)

        await self._call(f"react to {repo}#{issue_number}", react)

    # ------------------------------------------------------------------ #
    # Check runs                                                          #
    # ------------------------------------------------------------------ #

    async def create_check_run(self, repo: str, name: str, head_sha: str) -> CheckRun:
        def create():
            check = self._repo(repo).create_check_run(
                name=name,
                head_sha=head_sha,
                status="in_progress",
                started_at=datetime.now(timezone.utc),
            )
            return _to_check_run(check)

        return await self._call(f"create check run on {repo}@{head_sha[:7]}", create)

    async def update_check_run(
        self,
        repo: str,
        check_run_id: int,
        status: str,
        conclusion: str | None = None,
        title: str = "",
        summary: str = "",
    ) -> CheckRun:
        def update():
            check = self._repo(repo).get_check_run(check_run_id)
            kwargs: dict = {"status": status}
            if conclusion is not None:
                kwargs["conclusion"] = conclusion
            if status == "completed":
                kwargs["completed_at"] = datetime.now(timezone.utc)
            if title or summary:
                kwargs["output"] = {"title": title, "summary": summary}
            check.edit(**kwargs)
            return _to_check_run(check)

        return await self._call(f"update check run {check_run_id} in {repo}", update)

    async def list_checks_for_ref(self, repo: str, ref: str) -> list[CheckRun]:
        def fetch():
            return [_to_check_run(c) for c in self._repo(repo).get_commit(ref).get_check_runs()]

        return await self._call(f"list checks for {repo}@{ref}", fetch)

    # ------------------------------------------------------------------ #
    # Repository                                                          #
    # ------------------------------------------------------------------ #

    async def list_branches(self, repo: str) -> list[Branch]:
        def fetch():
            return [Branch(name=b.name, sha=b.commit.sha) for b in self._repo(repo).get_branches()]

        return await self._call(f"list branches of {repo}", fetch)

    async def get_repository_summary(self, repo: str) -> RepositorySummary:
        def fetch():
            r = self._repo(repo)
            return RepositorySummary(
                full_name=r.full_name,
                description=r.description or "",
                language=r.language or "",
                stars=r.stargazers_count,
                forks=r.forks_count,
                open_issues=r.open_issues_count,
                open_pull_requests=r.get_pulls(state="open").totalCount,
                updated_at=_iso(r.updated_at),
            )

        return await self._call(f"get repository {repo}", fetch)

    def _file(self, repo: str, path: str, ref: str | None):
        kwargs = {"ref": ref} if ref else {}
        contents = self._repo(repo).get_contents(path, **kwargs)
        if isinstance(contents, list):
            raise NotFound(f"read {path} in {repo}: path is a directory")
        return contents

    async def list_directory(self, repo: str, path: str = "", ref: str | None = None) -> list[DirectoryEntry]:
        def fetch():
            kwargs = {"ref": ref} if ref else {}
            contents = self._repo(repo).get_contents(path, **kwargs)
            if not isinstance(contents, list):
                contents = [contents]
            return [DirectoryEntry(name=c.name, path=c.path, type=c.type) for c in contents]

        return await self._call(f"list {path or '/'} in {repo}", fetch)

    async def read_file(self, repo: str, path: str, ref: str | None = None) -> FileContent:
        def fetch():
            contents = self._file(repo, path, ref)
            try:
                text = contents.decoded_content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise BackendError(f"read {path} in {repo}: not a UTF-8 text file") from e
            return FileContent(path=contents.path, content=text, sha=contents.sha)

        return await self._call(f"read {path} in {repo}", fetch)

    async def file_sha(self, repo: str, path: str, ref: str | None = None) -> str:
        def fetch():
            return self._file(repo, path, ref).sha

        return await self._call(f"read {path} in {repo}", fetch)

    async def _put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None,
        branch: str | None,
    ) -> WriteResult:
        def put():
            r = self._repo(repo)
            kwargs = {"branch": branch} if branch else {}
            if sha is None:
                result = r.create_file(path, message, content, **kwargs)
            else:
                result = r.update_file(path, message, content, sha, **kwargs)
            written = result["content"]
            return WriteResult(
                path=path,
                commit_sha=result["commit"].sha,
                created=sha is None,
                html_url=getattr(written, "html_url", "") or "",
            )

        return await self._call(f"write {path} in {repo}", put)

    def close(self) -> None:
        """Close the HTTP session of a client built from a token.

        Clients handed in through ``client_factory`` belong to the caller.
        """
        if self._owned_client is not None:
            self._owned_client.close()
