"""Webhook HTTP endpoint.

POST /webhooks/github  → verify the HMAC signature, wrap the delivery in a
                         WebhookEvent, hand it to the router and return 202
                         without waiting for the handlers.
GET  /health           → liveness probe.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI, Header, HTTPException, Request

from robinrelay_core.events import WebhookEvent

if TYPE_CHECKING:
    from robinrelay_core.events import EventRouter

logger = logging.getLogger(__name__)


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    if not secret or not signature:
        return False
    if not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def create_app(router: EventRouter, webhook_secret: str | None) -> FastAPI:
    app = FastAPI(title="RobinRelay Bot")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/webhooks/github", status_code=202)
    async def github_webhook(
        request: Request,
        x_hub_signature_256: str = Header(None, alias="x-hub-signature-256"),
        x_github_event: str = Header(None, alias="x-github-event"),
        x_github_delivery: str = Header(None, alias="x-github-delivery"),
    ):
        raw_body = await request.body()

        if not webhook_secret:
            raise HTTPException(status_code=500, detail="webhook secret not configured")

        if not verify_signature(raw_body, x_hub_signature_256 or "", webhook_secret):
            raise HTTPException(status_code=401, detail="invalid signature")

        if not x_github_event or not x_github_delivery:
            raise HTTPException(status_code=400, detail="missing required GitHub headers")

        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="body is not valid JSON")

        event = WebhookEvent.from_delivery(x_github_event, body, delivery_id=x_github_delivery)
        tasks = router.dispatch(event)
        logger.info("Delivery %s (%s) dispatched to %d handler(s)", x_github_delivery, event.type, len(tasks))
        return {"ok": True, "delivery_id": x_github_delivery, "event": event.type, "handlers": len(tasks)}

    return app
