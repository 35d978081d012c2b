"""Shared fixtures for the QR Intent Hub test suite.

Provides a ScanEvent factory pinned to a fixed clock, a JSON-file history
store under tmp_path, and a FastAPI test client wired to that store.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from backend.history.store import JsonFileStore
from backend.models import IntentType, ScanEvent
from backend.qr_scanner.classifier import classify

NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


@pytest.fixture
def now_ms() -> int:
    return NOW_MS


@pytest.fixture
def make_event() -> Callable[..., ScanEvent]:
    """Build ScanEvents with unique ids; type defaults to the classifier's verdict."""
    counter = itertools.count()

    def _make(
        data: str,
        timestamp: int = NOW_MS,
        type: IntentType | None = None,
        format: str = "QR_CODE",
    ) -> ScanEvent:
        return ScanEvent(
            id=f"scan_{timestamp}_{next(counter):09d}",
            data=data,
            timestamp=timestamp,
            type=type or classify(data),
            format=format,
        )

    return _make


@pytest.fixture
def json_store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "history.json")


@pytest.fixture
def client(json_store: JsonFileStore, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from backend import config
    from backend.main import app, get_store

    monkeypatch.setattr(config, "REDIS_URL", None)
    monkeypatch.setattr(config, "TIMEZONE_NAME", "UTC")
    app.dependency_overrides[get_store] = lambda: json_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
