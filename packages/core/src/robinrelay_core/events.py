"""Webhook event routing.

The router fans one inbound delivery out to every handler subscribed to its
type. Each handler runs in its own supervised asyncio task: a failure is
logged together with the event that caused it and never reaches sibling
handlers or the HTTP transport. Delivery to handlers is at-most-once; the
router never retries (GitHub's redelivery is the transport's concern).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:
    from robinrelay_core.comments import CommentAdapter
    from robinrelay_core.workflow import StatusWorkflow

logger = logging.getLogger(__name__)

EventHandler = Callable[["WebhookEvent"], Awaitable[Any]]

PULL_REQUEST_EVENTS = ["pull_request.opened", "pull_request.synchronize", "pull_request.reopened"]
COMMENT_EVENTS = ["issue_comment.created", "pull_request_review_comment.created"]
INSTALLATION_EVENTS = ["installation.created", "installation.deleted"]


@dataclass(frozen=True)
class WebhookEvent:
    """One webhook delivery: ``type`` is "<event>.<action>" (e.g. "pull_request.opened")."""

    type: str
    payload: dict = field(default_factory=dict)
    delivery_id: str = ""

    @classmethod
    def from_delivery(cls, event_name: str, payload: dict, delivery_id: str = "") -> WebhookEvent:
        action = payload.get("action")
        event_type = f"{event_name}.{action}" if action else event_name
        return cls(type=event_type, payload=payload, delivery_id=delivery_id)

    @property
    def name(self) -> str:
        return self.type.split(".", 1)[0]

    @property
    def repo(self) -> str:
        return (self.payload.get("repository") or {}).get("full_name", "")


@dataclass
class _Subscription:
    name: str
    handler: EventHandler


class EventRouter:
    """Maps event types to async handlers and dispatches deliveries to them."""

    def __init__(self):
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._pending: set[asyncio.Task] = set()

    def register(self, event_types: list[str], handler: EventHandler, name: str | None = None) -> None:
        """Subscribe ``handler`` to each type.

        A bare event name ("pull_request") matches every action of that event.
        """
        subscription = _Subscription(name=name or getattr(handler, "__qualname__", repr(handler)), handler=handler)
        for event_type in event_types:
            self._subscriptions.setdefault(event_type, []).append(subscription)
        logger.info("Registered %s for: %s", subscription.name, ", ".join(event_types))

    def handlers_for(self, event_type: str) -> list[_Subscription]:
        matched = list(self._subscriptions.get(event_type, []))
        if "." in event_type:
            matched.extend(self._subscriptions.get(event_type.split(".", 1)[0], []))
        return matched

    def dispatch(self, event: WebhookEvent) -> list[asyncio.Task]:
        """Schedule every matching handler and return their tasks without waiting.

        Must be called from a running event loop.
        """
        subscriptions = self.handlers_for(event.type)
        if not subscriptions:
            logger.debug("No handler for %s (delivery %s)", event.type, event.delivery_id)
            return []

        tasks = []
        for subscription in subscriptions:
            task = asyncio.create_task(
                self._supervise(subscription, event),
                name=f"{subscription.name}:{event.type}:{event.delivery_id}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def drain(self) -> None:
        """Wait for every handler task scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _supervise(self, subscription: _Subscription, event: WebhookEvent) -> None:
        try:
            await subscription.handler(event)
        except Exception:
            logger.exception(
                "Handler %s failed for %s (delivery %s, repo %s)",
                subscription.name,
                event.type,
                event.delivery_id or "-",
                event.repo or "-",
                extra={
                    "event_type": event.type,
                    "delivery_id": event.delivery_id,
                    "handler": subscription.name,
                },
            )


async def log_installation(event: WebhookEvent) -> None:
    account = ((event.payload.get("installation") or {}).get("account") or {}).get("login", "unknown")
    if event.type == "installation.created":
        logger.info("GitHub App installed on %s", account)
    else:
        logger.info("GitHub App uninstalled from %s", account)


def build_router(workflow: StatusWorkflow, comment_adapter: CommentAdapter) -> EventRouter:
    """Wire the bot's subscriptions: PR lifecycle, comment creation, installation logging."""
    router = EventRouter()
    router.register(PULL_REQUEST_EVENTS, workflow.run, name="status-workflow")
    router.register(COMMENT_EVENTS, comment_adapter.on_comment, name="comment-commands")
    router.register(INSTALLATION_EVENTS, log_installation, name="installation-log")
    return router
