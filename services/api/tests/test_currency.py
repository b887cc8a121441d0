from decimal import Decimal

import pytest
from services.api.app.services.currency import to_settlement_amount, within_tolerance


def test_example_cart_converts_to_expected_settlement_amount() -> None:
    # 10000 / 505 = 19.8019...
    assert to_settlement_amount(10000, 505) == Decimal("19.80")


def test_settlement_amount_is_deterministic() -> None:
    first = to_settlement_amount(12345.0, Decimal("505"))
    second = to_settlement_amount(12345.0, Decimal("505"))
    assert first == second
    assert to_settlement_amount(first * 505, 505) == to_settlement_amount(first * 505, 505)


def test_settlement_amount_rounds_half_up() -> None:
    # 1.005 would round to 1.00 under banker's rounding.
    assert to_settlement_amount(Decimal("1.005"), 1) == Decimal("1.01")
    assert to_settlement_amount(Decimal("1.015"), 1) == Decimal("1.02")


def test_settlement_amount_rejects_non_positive_rate() -> None:
    with pytest.raises(ValueError):
        to_settlement_amount(1000, 0)


@pytest.mark.parametrize(
    ("captured", "expected", "accepted"),
    [
        ("19.80", "19.80", True),
        ("19.82", "19.80", True),
        ("19.78", "19.80", True),
        ("19.76", "19.80", False),
        ("19.8201", "19.80", False),
    ],
)
def test_within_tolerance(captured: str, expected: str, accepted: bool) -> None:
    assert within_tolerance(Decimal(captured), Decimal(expected)) is accepted


def test_tolerance_boundary_is_inclusive() -> None:
    assert within_tolerance(Decimal("0.02"), Decimal("0")) is True
    assert within_tolerance(Decimal("0.0201"), Decimal("0")) is False


def test_within_tolerance_accepts_floats_without_binary_noise() -> None:
    assert within_tolerance(19.82, 19.80) is True
