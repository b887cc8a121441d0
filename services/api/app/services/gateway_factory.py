from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.services.gateway_base import PaymentGateway
from services.api.app.services.gateway_mock import MockPaymentGateway


def get_payment_gateway(settings: Settings) -> PaymentGateway:
    """Select a gateway client from settings.

    Defaults to the mock gateway so tests and local dev never reach PayPal unless
    CEVICHE_PAYMENT_GATEWAY=paypal is set explicitly.
    """

    if settings.payment_gateway == "mock":
        return MockPaymentGateway()

    if settings.payment_gateway == "paypal":
        from services.api.app.services.gateway_paypal import PayPalGateway

        return PayPalGateway.from_settings(settings)

    raise ValueError(
        f"Unknown CEVICHE_PAYMENT_GATEWAY={settings.payment_gateway!r}. Expected mock or paypal."
    )
