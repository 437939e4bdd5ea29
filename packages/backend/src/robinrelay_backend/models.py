"""Backend data models.

Decoupled from PyGithub so the command layer and its tests never touch
library objects. Each backend maps its native responses to these.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PullRequest:
    number: int
    title: str
    author: str
    state: str
    head_sha: str
    head_ref: str = ""
    base_ref: str = ""
    html_url: str = ""
    mergeable: bool | None = None
    commits: int = 0
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    created_at: str = ""  # ISO-8601 UTC timestamp
    requested_reviewers: int = 0


@dataclass
class ChangedFile:
    filename: str
    status: str  # "added" | "modified" | "removed" | "renamed"
    additions: int = 0
    deletions: int = 0


@dataclass
class Comment:
    id: int
    body: str
    author: str
    html_url: str = ""


@dataclass
class CheckRun:
    id: int
    name: str
    status: str  # "queued" | "in_progress" | "completed"
    conclusion: str | None = None
    title: str = ""
    summary: str = ""


@dataclass
class Branch:
    name: str
    sha: str


@dataclass
class FileContent:
    path: str
    content: str
    sha: str


@dataclass
class WriteResult:
    path: str
    commit_sha: str
    created: bool
    html_url: str = ""


@dataclass
class RepositorySummary:
    full_name: str
    description: str = ""
    language: str = ""
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    open_pull_requests: int = 0
    updated_at: str = ""


@dataclass
class DirectoryEntry:
    name: str
    path: str
    type: str  # "file" | "dir" | "symlink" | "submodule"
