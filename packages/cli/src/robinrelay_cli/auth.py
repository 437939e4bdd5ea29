"""GitHub credential resolution.

Two ways to authenticate the backend:

* GitHub App (``GITHUB_APP_ID`` + ``GITHUB_PRIVATE_KEY_PATH``): the normal
  deployment. Check runs can only be created by an App, and each
  repository's installation gets its own short-lived token.
* A plain token: ``GITHUB_TOKEN``, falling back to ``gh auth token`` so
  local runs work for anyone already logged in with the GitHub CLI.
  Everything except check runs works with a token.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Callable

from github import Auth, Github, GithubIntegration

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises. Callers should check for None and emit a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh missing or timed out.
        pass

    return None


def app_client_factory(app_id: str, private_key_path: str) -> Callable[[str], Github]:
    """Return a factory mapping "owner/name" to a client for that repo's installation.

    Clients are cached per repository; PyGithub refreshes installation tokens
    on its own when they expire.
    """
    app_auth = Auth.AppAuth(int(app_id), Path(private_key_path).read_text())
    integration = GithubIntegration(auth=app_auth)
    clients: dict[str, Github] = {}
    lock = threading.Lock()

    def factory(repo: str) -> Github:
        with lock:
            client = clients.get(repo)
            if client is None:
                owner, name = repo.split("/", 1)
                installation = integration.get_repo_installation(owner, name)
                client = Github(auth=app_auth.get_installation_auth(installation.id))
                clients[repo] = client
                logger.debug("Authenticated as installation %s for %s", installation.id, repo)
            return client

    return factory


def build_backend(config: dict):
    """Create the GitHubBackend from resolved credentials, or return None if there are none."""
    from robinrelay_backend.github import GitHubBackend

    if config.get("github_app_id") and config.get("github_private_key_path"):
        return GitHubBackend(
            client_factory=app_client_factory(config["github_app_id"], config["github_private_key_path"])
        )
    token = config.get("github_token") or resolve_github_token()
    if not token:
        return None
    return GitHubBackend(token=token)
