"""Typed backend failures.

Every backend operation raises one of these instead of returning None, so
callers above the backend can tell a missing pull request from a revoked
token or a flaky network without inspecting HTTP status codes.
"""

from __future__ import annotations


class BackendError(Exception):
    """Base class for every failure raised by a backend operation."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NotFound(BackendError):
    """The repository, pull request, comment, check run or file does not exist."""


class PermissionDenied(BackendError):
    """The credentials are missing, invalid or lack the required scope."""


class RateLimited(BackendError):
    """The code host refused the call because an API quota is exhausted."""


class Transient(BackendError):
    """A retryable failure: network errors, 5xx responses, revision conflicts."""
