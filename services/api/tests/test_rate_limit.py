from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from services.api.app.rate_limit import FixedWindowRateLimiter


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limiter_blocks_after_max_requests_until_window_resets() -> None:
    clock = _Clock()
    limiter = FixedWindowRateLimiter(2, window_seconds=60, clock=clock)

    assert limiter.hit("1.2.3.4:/v1/payments/capture-order") is None
    assert limiter.hit("1.2.3.4:/v1/payments/capture-order") is None
    clock.now += 15
    assert limiter.hit("1.2.3.4:/v1/payments/capture-order") == 45

    clock.now += 45
    assert limiter.hit("1.2.3.4:/v1/payments/capture-order") is None


def test_limiter_counts_keys_independently() -> None:
    limiter = FixedWindowRateLimiter(1, clock=_Clock())
    assert limiter.hit("a:/x") is None
    assert limiter.hit("b:/x") is None
    assert limiter.hit("a:/y") is None
    assert limiter.hit("a:/x") is not None


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "ceviche_rate_limit.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("CEVICHE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("CEVICHE_PAYMENT_GATEWAY", "mock")
    monkeypatch.setenv("CEVICHE_RATE_LIMIT_PER_MINUTE", "2")

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


def _cart() -> dict:
    return {
        "items": [{"product": "Ceviche de pescado", "quantity": 2, "price": 5000}],
        "total": 10000,
        "deliveryMethod": "pickup",
        "scheduledDate": "2026-10-24",
        "personalInfo": {"name": "Ana Mora", "phone": "+50688887777"},
    }


def test_payment_endpoint_returns_429_past_the_limit(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "203.0.113.7"}
    for _ in range(2):
        assert client.post("/v1/payments/create-order", json=_cart(), headers=headers).status_code == 200

    response = client.post("/v1/payments/create-order", json=_cart(), headers=headers)
    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests. Please try again later."
    assert int(response.headers["Retry-After"]) >= 1

    # Other clients and non-payment routes are unaffected.
    other = client.post(
        "/v1/payments/create-order", json=_cart(), headers={"X-Forwarded-For": "198.51.100.2"}
    )
    assert other.status_code == 200
    assert client.get("/health").status_code == 200


def test_rate_limit_zero_disables_throttling(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'unlimited.db'}")
    monkeypatch.setenv("CEVICHE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("CEVICHE_PAYMENT_GATEWAY", "mock")
    monkeypatch.setenv("CEVICHE_RATE_LIMIT_PER_MINUTE", "0")

    from services.api.app.main import app

    with TestClient(app) as c:
        for _ in range(5):
            assert c.post("/v1/payments/create-order", json=_cart()).status_code == 200
