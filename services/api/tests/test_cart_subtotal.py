from __future__ import annotations

from decimal import Decimal

from packages.shared.schemas.checkout_v1 import CartPayloadV1
from services.api.app.services.checkout import items_subtotal


def _cart(items: list[dict], total: float) -> CartPayloadV1:
    return CartPayloadV1.model_validate(
        {
            "items": items,
            "total": total,
            "deliveryMethod": "courier",
            "scheduledDate": "2026-10-24T18:30:00",
            "personalInfo": {"name": "Ana Mora", "phone": "+50688887777"},
        }
    )


def test_subtotal_is_exact_in_decimal() -> None:
    # 0.1 * 3 is 0.30000000000000004 in binary floating point.
    cart = _cart([{"product": "Limón extra", "quantity": 3, "price": 0.1}], total=0.3)
    assert items_subtotal(cart) == Decimal("0.3")


def test_subtotal_sums_every_line() -> None:
    cart = _cart(
        [
            {"product": "Ceviche de pescado", "quantity": 2, "price": 5000},
            {"product": "Ceviche mixto", "quantity": 1, "price": 6500.5},
        ],
        total=16500.5,
    )
    assert items_subtotal(cart) == Decimal("16500.5")
