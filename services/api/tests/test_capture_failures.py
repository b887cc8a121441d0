from __future__ import annotations

import json
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from services.api.app.services.gateway_base import (
    CaptureResult,
    GatewayAuthError,
    GatewayRequestError,
)
from services.api.app.services.mailer_base import OrderSummary
from services.api.app.services.mailer_mock import MockMailer
from services.api.app.services.order_store import PersistenceError


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "ceviche_capture_failures.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("CEVICHE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("CEVICHE_SETTLEMENT_RATE", "505")

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


class _Gateway:
    vendor = "PAYPAL_FAKE"

    def __init__(self, *, token_exc: Exception | None = None, capture_exc: Exception | None = None) -> None:
        self._token_exc = token_exc
        self._capture_exc = capture_exc

    def exchange_token(self) -> str:
        if self._token_exc:
            raise self._token_exc
        return "tok"

    def create_order(self, access_token: str, **kwargs: object) -> str:
        return "FAKE-ORDER-1"

    def capture_order(self, access_token: str, gateway_order_id: str) -> CaptureResult:
        if self._capture_exc:
            raise self._capture_exc
        return CaptureResult(
            status="COMPLETED", transaction_id="TX-9", captured_amount=Decimal("19.80"), currency="USD"
        )


class _AdminMailDown(MockMailer):
    def send_new_order_notification(self, summary: OrderSummary) -> None:
        raise RuntimeError("smtp relay down")


class _CustomerMailDown(MockMailer):
    def send_order_confirmation(self, to: str, summary: OrderSummary) -> None:
        raise RuntimeError("mailbox full")


class _NotifierDown:
    def notify_new_order(self, *, order_id: str, title: str, message: str) -> str:
        raise RuntimeError("notifications table locked")


def _patch(monkeypatch: pytest.MonkeyPatch, *, gateway: object, mailer: object | None = None) -> None:
    import services.api.app.routers.payments as payments_router

    monkeypatch.setattr(payments_router, "get_payment_gateway", lambda settings: gateway)
    if mailer is not None:
        monkeypatch.setattr(payments_router, "get_mailer", lambda settings: mailer)


def _capture(client: TestClient):
    cart = {
        "items": [{"product": "Ceviche mixto", "quantity": 1, "price": 10000}],
        "total": 10000,
        "deliveryMethod": "pickup",
        "scheduledDate": "2026-10-24",
        "personalInfo": {"name": "Luis Soto", "phone": "+50677776666", "email": "luis@example.com"},
    }
    return client.post(
        "/v1/payments/capture-order",
        json={"gatewayOrderId": "FAKE-ORDER-1", "cartPayload": cart},
    )


def _order_count() -> int:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import Order

    db = db_session()
    try:
        return db.query(Order).count()
    finally:
        db.close()


def test_admin_email_failure_does_not_fail_capture(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    mailer = _AdminMailDown()
    _patch(monkeypatch, gateway=_Gateway(), mailer=mailer)

    response = _capture(client)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert _order_count() == 1
    # The customer email is independent of the failed admin email.
    assert [m.kind for m in mailer.outbox] == ["ORDER_CONFIRMATION"]

    order_id = response.json()["orderId"]
    assert client.get(f"/v1/orders/{order_id}").status_code == 200


def test_customer_email_failure_does_not_block_admin_email(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    mailer = _CustomerMailDown()
    _patch(monkeypatch, gateway=_Gateway(), mailer=mailer)

    response = _capture(client)
    assert response.status_code == 200
    assert [m.kind for m in mailer.outbox] == ["NEW_ORDER_ALERT"]


def test_notifier_failure_does_not_fail_capture(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    import services.api.app.routers.payments as payments_router

    mailer = MockMailer()
    _patch(monkeypatch, gateway=_Gateway(), mailer=mailer)
    monkeypatch.setattr(payments_router, "get_notifier", lambda: _NotifierDown())

    response = _capture(client)
    assert response.status_code == 200
    assert _order_count() == 1
    assert len(mailer.outbox) == 2


@pytest.mark.parametrize(
    "gateway",
    [
        _Gateway(token_exc=GatewayAuthError("Failed to authenticate with PayPal")),
        _Gateway(capture_exc=GatewayRequestError("capture_order", 503, "upstream unavailable")),
    ],
)
def test_gateway_failures_are_500_and_persist_nothing(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, gateway: object
) -> None:
    _patch(monkeypatch, gateway=gateway, mailer=MockMailer())

    response = _capture(client)
    assert response.status_code == 500
    assert "upstream" not in response.json()["detail"]
    assert _order_count() == 0


def test_persistence_failure_after_capture_is_500(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    import services.api.app.services.checkout as checkout

    mailer = MockMailer()
    _patch(monkeypatch, gateway=_Gateway(), mailer=mailer)

    def _boom(db: object, order: object, events: object) -> object:
        raise PersistenceError("disk full")

    monkeypatch.setattr(checkout, "insert_confirmed_order", _boom)

    response = _capture(client)
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal Server Error"
    # No side effects fire when the durable write did not happen.
    assert mailer.outbox == []


def test_misconfigured_mailer_still_records_the_order(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    import services.api.app.routers.payments as payments_router

    # Resend selected without an API key: the mailer cannot be built.
    settings = replace(client.app.state.settings, mailer="resend", resend_api_key="")
    monkeypatch.setattr(client.app.state, "settings", settings)
    monkeypatch.setattr(payments_router, "get_payment_gateway", lambda settings: _Gateway())

    response = _capture(client)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert _order_count() == 1

    order_id = response.json()["orderId"]
    events = client.get(f"/v1/orders/{order_id}").json()["events"]
    assert "NOTIFICATION_CREATED" in {e["event_type"] for e in events}


def test_non_finite_total_is_rejected_before_capture(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    gateway = _Gateway(capture_exc=AssertionError("capture must not run"))
    _patch(monkeypatch, gateway=gateway, mailer=MockMailer())

    cart = {
        "items": [{"product": "Ceviche mixto", "quantity": 1, "price": 10000}],
        "total": float("inf"),
        "deliveryMethod": "pickup",
        "scheduledDate": "2026-10-24",
        "personalInfo": {"name": "Luis Soto", "phone": "+50677776666"},
    }
    response = client.post(
        "/v1/payments/capture-order",
        content=json.dumps({"gatewayOrderId": "FAKE-ORDER-1", "cartPayload": cart}),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("cartPayload.total")
    assert _order_count() == 0
