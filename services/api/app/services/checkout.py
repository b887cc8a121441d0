"""Two-phase gateway checkout: payment intent creation and capture reconciliation.

create_payment_intent writes nothing locally; the client replays the same cart payload to
capture_payment, which is the only place an Order row is created.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

import structlog
from packages.shared.schemas.checkout_v1 import CartPayloadV1
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.config import Settings
from services.api.app.db.models import EventLog, Order
from services.api.app.services.currency import as_decimal, to_settlement_amount, within_tolerance
from services.api.app.services.gateway_base import PaymentGateway
from services.api.app.services.mailer_base import DELIVERY_METHOD_LABELS, Mailer, OrderSummary
from services.api.app.services.notifier import Notifier
from services.api.app.services.order_store import (
    DuplicateOrderError,
    PersistenceError,
    find_by_gateway_order_id,
    insert_confirmed_order,
)
from services.api.app.services.principal import JwtPrincipalVerifier
from services.api.app.services.side_effects import dispatch_order_side_effects
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)

ORDER_STATUS_CONFIRMED = "confirmed"
PAYMENT_METHOD = "paypal"

_CENT = Decimal("0.01")


class CheckoutError(Exception):
    """Base class for user-visible, non-retryable capture failures."""


class PaymentNotCompletedError(CheckoutError):
    def __init__(self, gateway_order_id: str, status: str) -> None:
        super().__init__("Payment was not completed")
        self.gateway_order_id = gateway_order_id
        self.status = status


class AmountMismatchError(CheckoutError):
    def __init__(self, gateway_order_id: str, captured: Decimal, expected: Decimal) -> None:
        super().__init__("Captured amount does not match the order total")
        self.gateway_order_id = gateway_order_id
        self.captured = captured
        self.expected = expected


@dataclass(frozen=True, slots=True)
class PaymentIntent:
    gateway_order_id: str
    settlement_amount: Decimal


@dataclass(frozen=True, slots=True)
class CaptureOutcome:
    order_id: str
    status: str
    transaction_id: str | None
    replayed: bool = False


def create_payment_intent(
    cart: CartPayloadV1,
    *,
    settings: Settings,
    gateway: PaymentGateway,
) -> PaymentIntent:
    _warn_on_total_drift(cart)

    amount = to_settlement_amount(cart.total, settings.settlement_rate)
    access_token = gateway.exchange_token()
    gateway_order_id = gateway.create_order(
        access_token,
        amount=amount,
        currency=settings.settlement_currency,
        description=f"Ceviche order - {len(cart.items)} item(s)",
    )

    logger.info(
        "payment_intent_created",
        gateway=gateway.vendor,
        gateway_order_id=gateway_order_id,
        settlement_amount=str(amount),
    )
    return PaymentIntent(gateway_order_id=gateway_order_id, settlement_amount=amount)


def capture_payment(
    db: Session,
    *,
    gateway_order_id: str,
    cart: CartPayloadV1,
    authorization: str | None,
    settings: Settings,
    gateway: PaymentGateway,
    verifier: JwtPrincipalVerifier,
    notifier: Notifier,
    mailer: Mailer | None,
) -> CaptureOutcome:
    log = logger.bind(gateway_order_id=gateway_order_id)

    existing = find_by_gateway_order_id(db, gateway_order_id)
    if existing is not None:
        log.info("capture_replayed", order_id=existing.id)
        return _outcome(existing, replayed=True)

    _warn_on_total_drift(cart)
    access_token = gateway.exchange_token()
    capture = gateway.capture_order(access_token, gateway_order_id)
    if not capture.completed:
        log.warning("capture_not_completed", status=capture.status)
        raise PaymentNotCompletedError(gateway_order_id, capture.status)

    expected = to_settlement_amount(cart.total, settings.settlement_rate)
    if not within_tolerance(capture.captured_amount, expected, settings.reconciliation_tolerance):
        # Funds are already captured; this needs a manual refund or reconciliation.
        log.error(
            "capture_amount_mismatch",
            captured=str(capture.captured_amount),
            expected=str(expected),
            transaction_id=capture.transaction_id,
        )
        raise AmountMismatchError(gateway_order_id, capture.captured_amount, expected)

    user_id = verifier.resolve(authorization)
    order = _build_order(
        cart,
        user_id=user_id,
        gateway_order_id=gateway_order_id,
        transaction_id=capture.transaction_id,
        captured_amount=capture.captured_amount,
        settlement_currency=capture.currency or settings.settlement_currency,
    )
    event = EventLog(
        id=uuid4().hex,
        user_id=user_id,
        entity_type=EntityTypeV1.ORDER.value,
        entity_id=order.id,
        event_type=EventTypeV1.ORDER_CONFIRMED.value,
        event_payload_json={
            "gateway": gateway.vendor,
            "gateway_order_id": gateway_order_id,
            "transaction_id": capture.transaction_id,
            "captured_amount": str(capture.captured_amount),
            "expected_amount": str(expected),
            "guest": user_id is None,
        },
    )

    try:
        order = insert_confirmed_order(db, order, [event])
    except DuplicateOrderError as e:
        log.info("capture_duplicate_persist", order_id=e.existing.id)
        return _outcome(e.existing, replayed=True)
    except PersistenceError:
        log.critical(
            "order_persistence_failed_after_capture",
            transaction_id=capture.transaction_id,
            captured_amount=str(capture.captured_amount),
            exc_info=True,
        )
        raise

    log.info(
        "order_confirmed",
        order_id=order.id,
        transaction_id=capture.transaction_id,
        guest=user_id is None,
    )

    dispatch_order_side_effects(
        _summary(order, cart),
        captured_amount=f"{capture.captured_amount:.2f}",
        notifier=notifier,
        mailer=mailer,
    )
    return _outcome(order)


def _build_order(
    cart: CartPayloadV1,
    *,
    user_id: str | None,
    gateway_order_id: str,
    transaction_id: str | None,
    captured_amount: Decimal,
    settlement_currency: str,
) -> Order:
    info = cart.personal_info
    # A verified principal owns the order; client-supplied contact fields are ignored.
    guest = user_id is None

    return Order(
        id=uuid4().hex,
        user_id=user_id,
        guest_name=info.name if guest else None,
        guest_phone=info.phone if guest else None,
        guest_email=info.email if guest else None,
        items_json=[item.model_dump() for item in cart.items],
        total=cart.total,
        captured_amount=captured_amount,
        settlement_currency=settlement_currency,
        delivery_method=cart.delivery_method.value,
        scheduled_at=cart.scheduled_at(),
        notes=cart.notes,
        payment_method=PAYMENT_METHOD,
        gateway_order_id=gateway_order_id,
        gateway_transaction_id=transaction_id,
        status=ORDER_STATUS_CONFIRMED,
    )


def _summary(order: Order, cart: CartPayloadV1) -> OrderSummary:
    info = cart.personal_info
    return OrderSummary(
        order_id=order.id,
        customer_name=info.name,
        customer_phone=info.phone,
        customer_email=info.email,
        items=[item.model_dump() for item in cart.items],
        total=cart.total,
        delivery_method=DELIVERY_METHOD_LABELS[cart.delivery_method.value],
        scheduled_date=cart.scheduled_date,
        notes=cart.notes,
        payment_reference=f"PayPal - Transaction ID: {order.gateway_transaction_id}",
    )


def _outcome(order: Order, *, replayed: bool = False) -> CaptureOutcome:
    return CaptureOutcome(
        order_id=order.id,
        status=order.status,
        transaction_id=order.gateway_transaction_id,
        replayed=replayed,
    )


def items_subtotal(cart: CartPayloadV1) -> Decimal:
    return sum((as_decimal(item.price) * item.quantity for item in cart.items), Decimal("0"))


def _warn_on_total_drift(cart: CartPayloadV1) -> None:
    # The client total is trusted as-is; drift is only surfaced for investigation.
    subtotal = items_subtotal(cart).quantize(_CENT, rounding=ROUND_HALF_UP)
    total = as_decimal(cart.total).quantize(_CENT, rounding=ROUND_HALF_UP)
    if subtotal != total:
        logger.warning("cart_total_mismatch", total=str(total), items_subtotal=str(subtotal))
