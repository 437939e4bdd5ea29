"""Tests for the webhook HTTP endpoint."""

from __future__ import annotations

import hashlib
import hmac
import json

from fastapi.testclient import TestClient

from robinrelay_cli.server import create_app, verify_signature

SECRET = "hook-secret"


class FakeRouter:
    def __init__(self, handlers=1):
        self.events = []
        self.handlers = handlers

    def dispatch(self, event):
        self.events.append(event)
        return [object()] * self.handlers


def _sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def _post(client, payload, event="pull_request", signature=None, delivery="d-1"):
    body = json.dumps(payload).encode()
    headers = {
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": delivery,
        "X-Hub-Signature-256": signature if signature is not None else _sign(body),
        "Content-Type": "application/json",
    }
    return client.post("/webhooks/github", content=body, headers=headers)


class TestVerifySignature:
    def test_valid(self):
        assert verify_signature(b"{}", _sign(b"{}"), SECRET) is True

    def test_wrong_secret(self):
        assert verify_signature(b"{}", _sign(b"{}", "other"), SECRET) is False

    def test_missing_prefix(self):
        digest = hmac.new(SECRET.encode(), b"{}", hashlib.sha256).hexdigest()
        assert verify_signature(b"{}", digest, SECRET) is False

    def test_empty_secret_or_signature(self):
        assert verify_signature(b"{}", "", SECRET) is False
        assert verify_signature(b"{}", _sign(b"{}"), "") is False


class TestWebhookEndpoint:
    def test_valid_delivery_dispatched(self):
        router = FakeRouter(handlers=2)
        client = TestClient(create_app(router, SECRET))

        response = _post(client, {"action": "opened", "repository": {"full_name": "o/r"}})

        assert response.status_code == 202
        assert response.json() == {"ok": True, "delivery_id": "d-1", "event": "pull_request.opened", "handlers": 2}
        assert len(router.events) == 1
        assert router.events[0].repo == "o/r"
        assert router.events[0].delivery_id == "d-1"

    def test_bad_signature_rejected(self):
        router = FakeRouter()
        client = TestClient(create_app(router, SECRET))

        response = _post(client, {"action": "opened"}, signature="sha256=deadbeef")

        assert response.status_code == 401
        assert router.events == []

    def test_missing_secret_rejects_everything(self):
        router = FakeRouter()
        client = TestClient(create_app(router, None))

        response = _post(client, {"action": "opened"})

        assert response.status_code == 500
        assert router.events == []

    def test_missing_event_header(self):
        router = FakeRouter()
        client = TestClient(create_app(router, SECRET))
        body = b"{}"

        response = client.post(
            "/webhooks/github",
            content=body,
            headers={"X-Hub-Signature-256": _sign(body), "X-GitHub-Delivery": "d-1"},
        )

        assert response.status_code == 400
        assert router.events == []

    def test_invalid_json(self):
        router = FakeRouter()
        client = TestClient(create_app(router, SECRET))
        body = b"not json"

        response = client.post(
            "/webhooks/github",
            content=body,
            headers={"X-Hub-Signature-256": _sign(body), "X-GitHub-Event": "ping", "X-GitHub-Delivery": "d-1"},
        )

        assert response.status_code == 400

    def test_health(self):
        client = TestClient(create_app(FakeRouter(), SECRET))
        assert client.get("/health").json() == {"status": "ok"}
