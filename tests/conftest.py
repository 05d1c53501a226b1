"""Shared fixtures for the themehook test suite."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from themehook.config import Settings
from themehook.events import ThemeEventBroadcaster
from themehook.serve import create_app
from themehook.store import ThemeStore
from themehook.webhooks.receiver import ThemeWebhookReceiver

PURPLE_PAYLOAD: dict[str, Any] = {
    "theme": {
        "colors": {
            "primary": "#8b5cf6",
            "secondary": "#64748b",
            "accent": "#f59e0b",
            "neutral": "#6b7280",
            "info": "#3b82f6",
            "success": "#10b981",
            "warning": "#f59e0b",
            "error": "#ef4444",
        },
        "radius": {"box": 12, "field": 8, "selector": 6},
        "effects": {"depth": True, "noise": False},
    },
    "themeId": "t1",
    "themeName": "Purple",
}


@pytest.fixture
def payload() -> dict[str, Any]:
    """A fresh copy of a valid theme envelope (wire form)."""
    return copy.deepcopy(PURPLE_PAYLOAD)


@pytest.fixture
def raw_body(payload) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "state" / "webhook-data.json"


@pytest.fixture
def make_settings(data_file: Path) -> Callable[..., Settings]:
    """Factory for Settings isolated from the process environment."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "webhook_secret": "",
            "environment": "development",
            "skip_signature_verification": False,
            "data_file": str(data_file),
            "sse_keepalive_seconds": 0.05,
            "subscriber_queue_size": 10,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def store(data_file: Path) -> ThemeStore:
    return ThemeStore(data_file)


@pytest.fixture
def broadcaster() -> ThemeEventBroadcaster:
    return ThemeEventBroadcaster(queue_size=10)


@pytest.fixture
def make_receiver(store, broadcaster, make_settings) -> Callable[..., ThemeWebhookReceiver]:
    def _make(**overrides: Any) -> ThemeWebhookReceiver:
        return ThemeWebhookReceiver(store, broadcaster, make_settings(**overrides))

    return _make


@pytest.fixture
def make_client(make_settings) -> Callable[..., TestClient]:
    """Factory for a TestClient over a freshly built app."""
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:
        client = TestClient(create_app(make_settings(**overrides)), raise_server_exceptions=False)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client) -> TestClient:
    """Client for an app with no secret configured."""
    return make_client()
