from __future__ import annotations

from packages.shared.schemas.events import EventV1
from pydantic import BaseModel, Field


class GuestContactOut(BaseModel):
    name: str
    phone: str
    email: str | None = None


class OrderItemOut(BaseModel):
    product: str
    quantity: int
    price: float


class OrderDetail(BaseModel):
    order_id: str
    status: str

    user_id: str | None = None
    guest: GuestContactOut | None = None

    items: list[OrderItemOut] = Field(default_factory=list)
    total: float
    captured_amount: str
    settlement_currency: str

    delivery_method: str
    scheduled_at: str
    notes: str | None = None

    payment_method: str
    gateway_order_id: str
    gateway_transaction_id: str | None = None

    created_at: str
    updated_at: str

    events: list[EventV1] = Field(default_factory=list)
