from __future__ import annotations

from dataclasses import dataclass

from services.api.app.services.mailer_base import OrderSummary


@dataclass(frozen=True, slots=True)
class SentMail:
    kind: str
    to: str
    summary: OrderSummary


class MockMailer:
    """Records mail instead of sending it."""

    vendor = "MAIL_MOCK"

    def __init__(self, admin_email: str = "admin@localhost") -> None:
        self.admin_email = admin_email
        self.outbox: list[SentMail] = []

    def send_order_confirmation(self, to: str, summary: OrderSummary) -> None:
        self.outbox.append(SentMail(kind="ORDER_CONFIRMATION", to=to, summary=summary))

    def send_new_order_notification(self, summary: OrderSummary) -> None:
        self.outbox.append(SentMail(kind="NEW_ORDER_ALERT", to=self.admin_email, summary=summary))
