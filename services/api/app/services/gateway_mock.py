from __future__ import annotations

import threading
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from services.api.app.services.gateway_base import (
    CAPTURE_COMPLETED,
    CaptureResult,
    GatewayRequestError,
)


@dataclass
class _MockOrder:
    amount: Decimal
    currency: str
    captured: bool = False


class _MockLedger:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: dict[str, _MockOrder] = {}

    def create(self, amount: Decimal, currency: str) -> str:
        gateway_order_id = f"MOCK-{uuid4().hex[:17].upper()}"
        with self._lock:
            self._orders[gateway_order_id] = _MockOrder(amount=amount, currency=currency)
        return gateway_order_id

    def capture(self, gateway_order_id: str) -> _MockOrder:
        with self._lock:
            order = self._orders.get(gateway_order_id)
            if order is None:
                raise GatewayRequestError(
                    "capture_order", 404, '{"name":"RESOURCE_NOT_FOUND"}'
                )
            if order.captured:
                raise GatewayRequestError(
                    "capture_order",
                    422,
                    '{"name":"UNPROCESSABLE_ENTITY","details":[{"issue":"ORDER_ALREADY_CAPTURED"}]}',
                )
            order.captured = True
            return order


_ledger = _MockLedger()


class MockPaymentGateway:
    """In-process gateway for local dev and tests. Orders live for the process lifetime."""

    vendor = "PAYPAL_MOCK"

    def exchange_token(self) -> str:
        return f"mock-token-{uuid4().hex[:8]}"

    def create_order(
        self,
        access_token: str,
        *,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> str:
        del access_token, description
        return _ledger.create(amount, currency)

    def capture_order(self, access_token: str, gateway_order_id: str) -> CaptureResult:
        del access_token
        order = _ledger.capture(gateway_order_id)
        return CaptureResult(
            status=CAPTURE_COMPLETED,
            transaction_id=f"MOCKTX-{uuid4().hex[:12].upper()}",
            captured_amount=order.amount,
            currency=order.currency,
        )
