from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

CAPTURE_COMPLETED = "COMPLETED"


class GatewayError(Exception):
    """Base class for payment gateway errors."""


class GatewayAuthError(GatewayError):
    """Credentials are missing or the client-credentials exchange was rejected."""


class GatewayRequestError(GatewayError):
    def __init__(self, operation: str, status_code: int | None, body: str) -> None:
        super().__init__(f"Gateway {operation} failed: status={status_code}")
        self.operation = operation
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True, slots=True)
class CaptureResult:
    status: str
    transaction_id: str | None
    captured_amount: Decimal
    currency: str | None = None

    @property
    def completed(self) -> bool:
        return self.status == CAPTURE_COMPLETED


class PaymentGateway(Protocol):
    vendor: str

    def exchange_token(self) -> str: ...

    def create_order(
        self,
        access_token: str,
        *,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> str: ...

    def capture_order(self, access_token: str, gateway_order_id: str) -> CaptureResult: ...
