from __future__ import annotations

import base64
import json
import urllib.error
import urllib.parse
import urllib.request
from decimal import Decimal, InvalidOperation

import structlog
from services.api.app.config import Settings
from services.api.app.services.gateway_base import (
    CaptureResult,
    GatewayAuthError,
    GatewayRequestError,
)

logger = structlog.get_logger(__name__)

_TIMEOUT_SECONDS = 30


class PayPalGateway:
    """PayPal Orders v2 client.

    Every operation takes an access token from exchange_token(); tokens are not cached,
    so each request performs its own client-credentials exchange.
    """

    vendor = "PAYPAL"

    def __init__(
        self,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        brand_name: str,
        return_url: str,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._brand_name = brand_name
        self._return_url = return_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalGateway":
        return cls(
            base_url=settings.paypal_base_url,
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            brand_name=settings.brand_name,
            return_url=f"{settings.app_url}/checkout",
        )

    def exchange_token(self) -> str:
        if not self._client_id or not self._client_secret:
            raise GatewayAuthError("PayPal credentials not configured")

        basic = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode()).decode()
        req = urllib.request.Request(f"{self._base_url}/v1/oauth2/token", method="POST")
        req.add_header("Authorization", f"Basic {basic}")
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        body = urllib.parse.urlencode({"grant_type": "client_credentials"}).encode("utf-8")

        try:
            payload = _send(req, body)
        except GatewayRequestError as e:
            logger.error(
                "paypal_auth_failed",
                status_code=e.status_code,
                base_url=self._base_url,
                body=e.body,
            )
            raise GatewayAuthError("Failed to authenticate with PayPal") from e

        token = payload.get("access_token")
        if not token:
            raise GatewayAuthError("PayPal token response did not include an access_token")
        return token

    def create_order(
        self,
        access_token: str,
        *,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> str:
        order = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": currency, "value": f"{amount:.2f}"},
                    "description": description,
                }
            ],
            "application_context": {
                "brand_name": self._brand_name,
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "return_url": self._return_url,
                "cancel_url": self._return_url,
            },
        }

        req = _json_request(f"{self._base_url}/v2/checkout/orders", access_token)
        try:
            payload = _send(req, json.dumps(order).encode("utf-8"), operation="create_order")
        except GatewayRequestError as e:
            logger.error(
                "paypal_create_order_failed",
                status_code=e.status_code,
                body=e.body,
                amount=str(amount),
                currency=currency,
            )
            raise

        gateway_order_id = payload.get("id")
        if not gateway_order_id:
            raise GatewayRequestError("create_order", None, json.dumps(payload))
        return gateway_order_id

    def capture_order(self, access_token: str, gateway_order_id: str) -> CaptureResult:
        order_path = urllib.parse.quote(gateway_order_id, safe="")
        req = _json_request(
            f"{self._base_url}/v2/checkout/orders/{order_path}/capture", access_token
        )
        try:
            payload = _send(req, b"{}", operation="capture_order")
        except GatewayRequestError as e:
            logger.error(
                "paypal_capture_failed",
                gateway_order_id=gateway_order_id,
                status_code=e.status_code,
                body=e.body,
            )
            raise

        return parse_capture(payload)


def parse_capture(payload: dict) -> CaptureResult:
    """Read status, transaction id and amount from an Orders v2 capture response."""

    status = str(payload.get("status") or "")
    try:
        capture = payload["purchase_units"][0]["payments"]["captures"][0]
    except (KeyError, IndexError, TypeError):
        capture = {}

    amount = capture.get("amount") or {}
    try:
        captured_amount = Decimal(str(amount.get("value", "0")))
    except InvalidOperation:
        captured_amount = Decimal("0")

    return CaptureResult(
        status=status,
        transaction_id=capture.get("id"),
        captured_amount=captured_amount,
        currency=amount.get("currency_code"),
    )


def _json_request(url: str, access_token: str) -> urllib.request.Request:
    req = urllib.request.Request(url, method="POST")
    req.add_header("Authorization", f"Bearer {access_token}")
    req.add_header("Content-Type", "application/json")
    return req


def _send(req: urllib.request.Request, data: bytes, operation: str = "token") -> dict:
    try:
        with urllib.request.urlopen(req, data=data, timeout=_TIMEOUT_SECONDS) as resp:
            raw = resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        raise GatewayRequestError(operation, e.code, e.read().decode("utf-8", errors="replace")) from e
    except (urllib.error.URLError, TimeoutError) as e:
        raise GatewayRequestError(operation, None, str(getattr(e, "reason", e))) from e

    try:
        return json.loads(raw) if raw else {}
    except json.JSONDecodeError as e:
        raise GatewayRequestError(operation, None, raw) from e
