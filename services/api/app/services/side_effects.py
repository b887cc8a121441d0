from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog
from services.api.app.services.mailer_base import Mailer, MailerError, OrderSummary
from services.api.app.services.notifier import Notifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SideEffectResult:
    name: str
    status: str  # "ok" | "skipped" | "failed"
    error: str | None = None


def _guarded(name: str, order_id: str, fn: Callable[[], object]) -> SideEffectResult:
    try:
        fn()
    except Exception as e:
        logger.error("side_effect_failed", side_effect=name, order_id=order_id, error=str(e))
        return SideEffectResult(name=name, status="failed", error=str(e))
    return SideEffectResult(name=name, status="ok")


def _mailer_unavailable() -> None:
    raise MailerError("mailer is not configured")


def dispatch_order_side_effects(
    summary: OrderSummary,
    *,
    captured_amount: str,
    notifier: Notifier,
    mailer: Mailer | None,
) -> list[SideEffectResult]:
    """Fire the post-commit side effects of a confirmed order.

    Must only be called after the order row is committed. Each effect has its own error
    boundary; results are for logging only and never change the HTTP response. A missing
    mailer fails both email effects without touching the others.
    """

    tasks: list[tuple[str, Callable[[], object]]] = [
        (
            "admin_notification",
            lambda: notifier.notify_new_order(
                order_id=summary.order_id,
                title="New order (PayPal)",
                message=f"{summary.customer_name} paid ${captured_amount} USD with PayPal",
            ),
        ),
        (
            "admin_email",
            (lambda: mailer.send_new_order_notification(summary))
            if mailer is not None
            else _mailer_unavailable,
        ),
    ]

    results: list[SideEffectResult] = []
    if summary.customer_email:
        tasks.append(
            (
                "customer_email",
                (lambda: mailer.send_order_confirmation(summary.customer_email, summary))
                if mailer is not None
                else _mailer_unavailable,
            )
        )
    else:
        results.append(SideEffectResult(name="customer_email", status="skipped"))

    with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="order-fanout") as pool:
        futures = [pool.submit(_guarded, name, summary.order_id, fn) for name, fn in tasks]
        results.extend(f.result() for f in futures)

    logger.info(
        "side_effects_dispatched",
        order_id=summary.order_id,
        results={r.name: r.status for r in results},
    )
    return results
