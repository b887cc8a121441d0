from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.events import EventV1
from services.api.app.db.deps import get_db
from services.api.app.db.models import EventLog, Order
from services.api.app.models.order import GuestContactOut, OrderDetail, OrderItemOut
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/orders/{order_id}", response_model=OrderDetail)
def get_order(order_id: str, db: Session = Depends(get_db)) -> OrderDetail:
    order = db.get(Order, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    events = (
        db.query(EventLog)
        .filter(EventLog.entity_id == order.id)
        .order_by(EventLog.created_at.asc())
        .all()
    )

    guest = None
    if order.user_id is None and order.guest_name is not None:
        guest = GuestContactOut(
            name=order.guest_name,
            phone=order.guest_phone or "",
            email=order.guest_email,
        )

    return OrderDetail(
        order_id=order.id,
        status=order.status,
        user_id=order.user_id,
        guest=guest,
        items=[OrderItemOut.model_validate(item) for item in order.items_json],
        total=order.total,
        captured_amount=f"{order.captured_amount:.2f}",
        settlement_currency=order.settlement_currency,
        delivery_method=order.delivery_method,
        scheduled_at=order.scheduled_at.isoformat(),
        notes=order.notes,
        payment_method=order.payment_method,
        gateway_order_id=order.gateway_order_id,
        gateway_transaction_id=order.gateway_transaction_id,
        created_at=order.created_at.isoformat(),
        updated_at=order.updated_at.isoformat(),
        events=[
            EventV1(
                id=e.id,
                user_id=e.user_id,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                event_type=e.event_type,
                payload=e.event_payload_json,
                created_at=e.created_at.isoformat(),
            )
            for e in events
        ],
    )
