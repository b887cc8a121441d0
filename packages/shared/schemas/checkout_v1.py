"""Shared checkout payload schema (v1).

The storefront sends the same cart payload to create-order and capture-order, so both
phases validate it with these models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # Money fields must be finite; JSON parsers accept the Infinity and NaN literals.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class DeliveryMethodV1(str, Enum):
    PICKUP = "pickup"
    COURIER = "courier"


class CartItemV1(CamelModel):
    product: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=100)
    price: float = Field(..., gt=0)


class PersonalInfoV1(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=8)
    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_absent(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CartPayloadV1(CamelModel):
    items: list[CartItemV1] = Field(..., min_length=1, max_length=100)
    total: float = Field(..., gt=0)
    delivery_method: DeliveryMethodV1
    scheduled_date: str = Field(..., min_length=1)
    notes: str | None = Field(default=None, max_length=500)
    personal_info: PersonalInfoV1

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_date_parses(cls, v: str) -> str:
        try:
            datetime.fromisoformat(v)
        except ValueError as e:
            raise ValueError("scheduledDate must be an ISO-8601 date") from e
        return v

    def scheduled_at(self) -> datetime:
        return datetime.fromisoformat(self.scheduled_date)


class CreateOrderResponseV1(CamelModel):
    # Storefront SDKs expect the gateway order id under `id`.
    id: str
    settlement_amount: float
    cart_payload: CartPayloadV1


class CaptureOrderRequestV1(CamelModel):
    gateway_order_id: str = Field(..., min_length=1)
    cart_payload: CartPayloadV1


class CaptureOrderResponseV1(CamelModel):
    order_id: str
    status: str
    transaction_id: str | None = None
