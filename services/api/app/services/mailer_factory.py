from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.services.mailer_base import Mailer
from services.api.app.services.mailer_mock import MockMailer


def get_mailer(settings: Settings) -> Mailer:
    if settings.mailer == "mock":
        return MockMailer(admin_email=settings.sales_email)

    if settings.mailer == "resend":
        from services.api.app.services.mailer_resend import ResendMailer

        return ResendMailer.from_settings(settings)

    raise ValueError(f"Unknown CEVICHE_MAILER={settings.mailer!r}. Expected mock or resend.")
