"""
HTTP endpoint tests.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from api.main import app, get_checker, watch_disconnect
from copyright_core.gate import SlidingWindowGate
from copyright_core.service import CopyrightChecker


@pytest.fixture
def client(checker):
    app.dependency_overrides[get_checker] = lambda: checker
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check_sync():
    """Test health check endpoint synchronously."""
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_health_check_async():
    """Test health check endpoint asynchronously using TestClient."""
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_check_endpoint(client):
    response = client.post("/check", json={"prompt": "Mickey Mouse riding a bicycle", "include_positions": True})

    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] is True
    assert body["has_blocking"] is True
    assert body["violations"][0]["pattern"] == "Mickey Mouse"
    assert body["violations"][0]["position"] == {"start": 0, "end": 12}
    assert body["revised_prompt"] == "a cheerful cartoon mouse riding a bicycle"
    assert body["revision_method"] == "rule-based"


def test_check_endpoint_reports_invalid_input_in_body(client):
    response = client.post("/check", json={"prompt": ""})

    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] is False
    assert body["status"] == "invalid_input"
    assert body["message"] == "Prompt cannot be empty"


def test_check_endpoint_keys_rate_limit_by_forwarded_ip(catalog, fixed_clock):
    checker = CopyrightChecker(catalog=catalog, gate=SlidingWindowGate(limit=1), clock=fixed_clock)
    app.dependency_overrides[get_checker] = lambda: checker
    try:
        client = TestClient(app)
        first = client.post("/check", json={"prompt": "a lake"}, headers={"x-forwarded-for": "203.0.113.7"})
        second = client.post("/check", json={"prompt": "a lake"}, headers={"x-forwarded-for": "203.0.113.7"})
        other = client.post("/check", json={"prompt": "a lake"}, headers={"x-forwarded-for": "198.51.100.2"})
    finally:
        app.dependency_overrides.clear()

    assert first.json()["succeeded"] is True
    assert second.json()["status"] == "rate_limited"
    assert other.json()["succeeded"] is True


@pytest.mark.asyncio
async def test_watch_disconnect_sets_cancel_event():
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=[False, False, True])
    cancel_event = asyncio.Event()

    await asyncio.wait_for(watch_disconnect(request, cancel_event, interval=0), timeout=1)

    assert cancel_event.is_set()
    assert request.is_disconnected.await_count == 3


def test_client_disconnect_abandons_generative_rewrite(catalog, fixed_clock):
    async def never_finishes(prompt, violations):
        await asyncio.sleep(10)
        return "unused"

    strategy = MagicMock()
    strategy.rewrite = AsyncMock(side_effect=never_finishes)
    checker = CopyrightChecker(catalog=catalog, strategy=strategy, clock=fixed_clock)
    app.dependency_overrides[get_checker] = lambda: checker
    try:
        with patch.object(Request, "is_disconnected", AsyncMock(return_value=True)):
            response = TestClient(app).post("/check", json={"prompt": "Mickey Mouse riding a bicycle"})
    finally:
        app.dependency_overrides.clear()

    body = response.json()
    assert body["succeeded"] is True
    assert body["revision_method"] == "rule-based"
    assert body["revised_prompt"] == "a cheerful cartoon mouse riding a bicycle"
