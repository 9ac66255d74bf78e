#!/usr/bin/env python3
"""
Tests for the FastAPI webhook and health endpoints.
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from rag_webhook.apimain import create_app
from rag_webhook.models.data_models import TurnReply
from rag_webhook.services.dependencies import get_turn_controller


@pytest.fixture
def controller():
    return MagicMock()


@pytest.fixture
def client(controller):
    app = create_app()
    app.dependency_overrides[get_turn_controller] = lambda: controller
    return TestClient(app)


def test_health_check(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "API is running"}


@pytest.mark.parametrize("path", ["/", "/api/v1/webhook"])
def test_webhook_passes_headers_and_raw_body(client, controller, path):
    controller.handle.return_value = TurnReply(body="Pods are groups of containers.")

    response = client.post(path, content="What is a Kubernetes Pod?".encode("utf-8"), headers={"x-conversation-name": "user@42"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert response.text == "Pods are groups of containers."
    headers, body = controller.handle.call_args.args
    assert headers["X-Conversation-Name"] == "user@42"
    assert body == b"What is a Kubernetes Pod?"


def test_webhook_empty_reply_for_control_message(client, controller):
    controller.handle.return_value = TurnReply(body="")
    response = client.post("/", content=b"/new", headers={"x-conversation-name": "user@42"})
    assert response.status_code == 200
    assert response.text == ""


@pytest.fixture
def unwired_client(monkeypatch):
    """App wired through the real dependency getter, with no OpenAI key configured."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr("rag_webhook.services.embedding_service.OPENAI_API_KEY", "")
    monkeypatch.setattr("rag_webhook.services.hypothetical_answer.OPENAI_API_KEY", "")
    get_turn_controller.cache_clear()
    yield TestClient(create_app())
    get_turn_controller.cache_clear()


def test_webhook_wiring_without_openai_key_still_replies_200(unwired_client):
    response = unwired_client.post("/", content=b"/new", headers={"x-conversation-name": "u"})
    assert response.status_code == 200
    assert response.text == ""
