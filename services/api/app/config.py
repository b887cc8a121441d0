from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from fastapi import Request

_PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide, read-only configuration.

    Built once at startup (see main._startup) and passed explicitly into the payment
    operations. Nothing in the request path reads payment config from the environment.
    """

    payment_gateway: str
    paypal_client_id: str
    paypal_client_secret: str
    paypal_mode: str
    paypal_base_url: str

    settlement_rate: Decimal
    settlement_currency: str
    reconciliation_tolerance: Decimal

    app_url: str
    brand_name: str
    jwt_secret: str

    mailer: str
    resend_api_key: str
    from_email: str
    sales_email: str

    log_level: str
    rate_limit_per_minute: int

    @classmethod
    def from_env(cls) -> "Settings":
        mode = os.getenv("PAYPAL_MODE", "sandbox").strip().lower()
        if mode not in _PAYPAL_BASE_URLS:
            raise ValueError(f"Unknown PAYPAL_MODE={mode!r}. Expected sandbox or live.")

        raw_rate = os.getenv("CEVICHE_SETTLEMENT_RATE", "505").strip()
        try:
            rate = Decimal(raw_rate)
        except InvalidOperation as e:
            raise ValueError(f"CEVICHE_SETTLEMENT_RATE must be a number, got {raw_rate!r}") from e
        if rate <= 0:
            raise ValueError("CEVICHE_SETTLEMENT_RATE must be positive")

        return cls(
            payment_gateway=os.getenv("CEVICHE_PAYMENT_GATEWAY", "mock").strip().lower(),
            paypal_client_id=os.getenv("PAYPAL_CLIENT_ID", "").strip(),
            paypal_client_secret=os.getenv("PAYPAL_CLIENT_SECRET", "").strip(),
            paypal_mode=mode,
            paypal_base_url=_PAYPAL_BASE_URLS[mode],
            settlement_rate=rate,
            settlement_currency="USD",
            # Fixed: widening this increases underpayment risk.
            reconciliation_tolerance=Decimal("0.02"),
            app_url=os.getenv("CEVICHE_APP_URL", "http://localhost:3000").rstrip("/"),
            brand_name=os.getenv("CEVICHE_BRAND_NAME", "Ceviche Manager"),
            jwt_secret=os.getenv("CEVICHE_JWT_SECRET", ""),
            mailer=os.getenv("CEVICHE_MAILER", "mock").strip().lower(),
            resend_api_key=os.getenv("RESEND_API_KEY", "").strip(),
            from_email=os.getenv("CEVICHE_FROM_EMAIL", "noreply@cevichedemitata.app"),
            sales_email=os.getenv("CEVICHE_SALES_EMAIL", "ventas@cevichedemitata.app"),
            log_level=os.getenv("CEVICHE_LOG_LEVEL", "INFO").strip().upper(),
            rate_limit_per_minute=_int_env("CEVICHE_RATE_LIMIT_PER_MINUTE", 10),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
