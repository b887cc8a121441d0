from __future__ import annotations

import json
import urllib.error
import urllib.request

from services.api.app.config import Settings
from services.api.app.services.mailer_base import (
    MailerError,
    OrderSummary,
    format_crc,
    render_items,
)

_RESEND_URL = "https://api.resend.com/emails"


class ResendMailer:
    """Plain-text order mail through the Resend HTTP API."""

    vendor = "RESEND"

    def __init__(self, *, api_key: str, from_email: str, admin_email: str) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._admin_email = admin_email

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendMailer":
        if not settings.resend_api_key:
            raise ValueError("RESEND_API_KEY is required when CEVICHE_MAILER=resend")
        return cls(
            api_key=settings.resend_api_key,
            from_email=settings.from_email,
            admin_email=settings.sales_email,
        )

    def send_order_confirmation(self, to: str, summary: OrderSummary) -> None:
        body = "\n".join(
            [
                f"Hi {summary.customer_name},",
                "",
                f"We received your order #{summary.short_id}.",
                "",
                render_items(summary),
                "",
                f"Total: {format_crc(summary.total)}",
                f"Delivery: {summary.delivery_method}",
                f"Scheduled for: {summary.scheduled_date}",
                *([f"Notes: {summary.notes}"] if summary.notes else []),
            ]
        )
        self._send(to=to, subject=f"Order received #{summary.short_id}", text=body)

    def send_new_order_notification(self, summary: OrderSummary) -> None:
        body = "\n".join(
            [
                f"New order #{summary.short_id}",
                "",
                f"Customer: {summary.customer_name}",
                f"Phone: {summary.customer_phone}",
                f"Email: {summary.customer_email or '-'}",
                "",
                render_items(summary),
                "",
                f"Total: {format_crc(summary.total)}",
                f"Delivery: {summary.delivery_method}",
                f"Scheduled for: {summary.scheduled_date}",
                f"Notes: {summary.notes or '-'}",
                f"Payment: {summary.payment_reference or '-'}",
            ]
        )
        subject = (
            f"New order #{summary.short_id} - {summary.item_count} item(s) - "
            f"{format_crc(summary.total)}"
        )
        self._send(to=self._admin_email, subject=subject, text=body)

    def _send(self, *, to: str, subject: str, text: str) -> None:
        message = {"from": self._from_email, "to": [to], "subject": subject, "text": text}

        req = urllib.request.Request(_RESEND_URL, method="POST")
        req.add_header("Authorization", f"Bearer {self._api_key}")
        req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(
                req, data=json.dumps(message).encode("utf-8"), timeout=15
            ) as resp:
                resp.read()
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            raise MailerError(f"Resend HTTP {e.code}: {raw}") from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise MailerError(f"Resend unreachable: {e}") from e
