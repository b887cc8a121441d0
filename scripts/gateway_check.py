from __future__ import annotations

import argparse
import sys
from decimal import Decimal

from services.api.app.config import Settings
from services.api.app.services.currency import to_settlement_amount
from services.api.app.services.gateway_base import GatewayError
from services.api.app.services.gateway_factory import get_payment_gateway


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Check payment gateway credentials (token exchange, optional order create)"
    )
    parser.add_argument(
        "--total",
        type=Decimal,
        default=None,
        help="Business-currency total; when set, also creates a gateway order for it",
    )
    parser.add_argument("--description", default="Ceviche order - gateway check")
    args = parser.parse_args()

    settings = Settings.from_env()
    gateway = get_payment_gateway(settings)
    print(f"gateway={gateway.vendor} mode={settings.paypal_mode} rate={settings.settlement_rate}")

    try:
        token = gateway.exchange_token()
        print("token exchange: ok")

        if args.total is not None:
            amount = to_settlement_amount(args.total, settings.settlement_rate)
            gateway_order_id = gateway.create_order(
                token,
                amount=amount,
                currency=settings.settlement_currency,
                description=args.description,
            )
            print(f"created gateway order {gateway_order_id} for {amount} {settings.settlement_currency}")
    except GatewayError as e:
        print(f"gateway check failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
