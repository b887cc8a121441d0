from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from packages.shared.schemas.checkout_v1 import (
    CaptureOrderRequestV1,
    CaptureOrderResponseV1,
    CartPayloadV1,
    CreateOrderResponseV1,
)
from services.api.app.config import Settings, get_settings
from services.api.app.db.deps import get_db
from services.api.app.rate_limit import enforce_payment_rate_limit
from services.api.app.services.checkout import (
    AmountMismatchError,
    PaymentNotCompletedError,
    capture_payment,
    create_payment_intent,
)
from services.api.app.services.gateway_base import GatewayError
from services.api.app.services.gateway_factory import get_payment_gateway
from services.api.app.services.mailer_base import Mailer
from services.api.app.services.mailer_factory import get_mailer
from services.api.app.services.notifier import get_notifier
from services.api.app.services.order_store import PersistenceError
from services.api.app.services.principal import JwtPrincipalVerifier
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(enforce_payment_rate_limit)])

_GATEWAY_FAILURE_DETAIL = "Payment gateway error. Please try again."


def _raise_checkout_http_error(e: Exception) -> None:
    if isinstance(e, PaymentNotCompletedError):
        raise HTTPException(status_code=400, detail="Payment was not completed") from e

    if isinstance(e, AmountMismatchError):
        raise HTTPException(status_code=400, detail="Payment amount does not match") from e

    # Gateway diagnostics are logged by the gateway client; clients get a generic message.
    if isinstance(e, GatewayError):
        logger.error("gateway_failure", error_type=type(e).__name__, error=str(e))
        raise HTTPException(status_code=500, detail=_GATEWAY_FAILURE_DETAIL) from e

    if isinstance(e, PersistenceError):
        # Already logged at critical by the checkout service.
        raise HTTPException(status_code=500, detail="Internal Server Error") from e

    logger.exception("checkout_unexpected_error", error=str(e))
    raise HTTPException(status_code=500, detail="Internal Server Error") from e


@router.post("/v1/payments/create-order", response_model=CreateOrderResponseV1)
def create_payment_order(
    payload: CartPayloadV1,
    settings: Settings = Depends(get_settings),
) -> CreateOrderResponseV1:
    try:
        gateway = get_payment_gateway(settings)
    except ValueError as e:
        logger.error("gateway_misconfigured", error=str(e))
        raise HTTPException(status_code=500, detail="Internal Server Error") from e

    try:
        intent = create_payment_intent(payload, settings=settings, gateway=gateway)
    except Exception as e:
        _raise_checkout_http_error(e)

    return CreateOrderResponseV1(
        id=intent.gateway_order_id,
        settlement_amount=float(intent.settlement_amount),
        cart_payload=payload,
    )


@router.post("/v1/payments/capture-order", response_model=CaptureOrderResponseV1)
def capture_payment_order(
    payload: CaptureOrderRequestV1,
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> CaptureOrderResponseV1:
    try:
        gateway = get_payment_gateway(settings)
    except ValueError as e:
        logger.error("gateway_misconfigured", error=str(e))
        raise HTTPException(status_code=500, detail="Internal Server Error") from e

    # A mailer that cannot be built fails the email side effects, not the capture.
    mailer: Mailer | None
    try:
        mailer = get_mailer(settings)
    except ValueError as e:
        logger.error("mailer_misconfigured", error=str(e))
        mailer = None

    try:
        outcome = capture_payment(
            db,
            gateway_order_id=payload.gateway_order_id,
            cart=payload.cart_payload,
            authorization=authorization,
            settings=settings,
            gateway=gateway,
            verifier=JwtPrincipalVerifier(settings.jwt_secret),
            notifier=get_notifier(),
            mailer=mailer,
        )
    except Exception as e:
        _raise_checkout_http_error(e)

    return CaptureOrderResponseV1(
        order_id=outcome.order_id,
        status=outcome.status,
        transaction_id=outcome.transaction_id,
    )
