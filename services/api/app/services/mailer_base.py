from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

DELIVERY_METHOD_LABELS = {
    "pickup": "Store pickup",
    "courier": "Courier",
}


class MailerError(Exception):
    """Base class for mail provider errors."""


@dataclass(frozen=True, slots=True)
class OrderSummary:
    order_id: str
    customer_name: str
    customer_phone: str
    customer_email: str | None
    items: list[dict] = field(default_factory=list)
    total: float = 0.0
    delivery_method: str = ""
    scheduled_date: str = ""
    notes: str | None = None
    payment_reference: str | None = None

    @property
    def short_id(self) -> str:
        return self.order_id[-8:]

    @property
    def item_count(self) -> int:
        return sum(int(item.get("quantity", 0)) for item in self.items)


def format_crc(amount: float) -> str:
    return f"₡{amount:,.0f}"


def render_items(summary: OrderSummary) -> str:
    lines = [
        f"- {item['quantity']} x {item['product']} ({format_crc(item['price'])})"
        for item in summary.items
    ]
    return "\n".join(lines)


class Mailer(Protocol):
    vendor: str

    def send_order_confirmation(self, to: str, summary: OrderSummary) -> None: ...

    def send_new_order_notification(self, summary: OrderSummary) -> None: ...
