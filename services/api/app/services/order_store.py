from __future__ import annotations

import structlog
from services.api.app.db.models import EventLog, Order
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)


class PersistenceError(Exception):
    """The order could not be written. Funds may already be captured."""


class DuplicateOrderError(Exception):
    """Another request already persisted an order for this gateway order id."""

    def __init__(self, existing: Order) -> None:
        super().__init__(f"Order already exists for gateway order {existing.gateway_order_id}")
        self.existing = existing


def find_by_gateway_order_id(db: Session, gateway_order_id: str) -> Order | None:
    return db.query(Order).filter(Order.gateway_order_id == gateway_order_id).one_or_none()


def insert_confirmed_order(db: Session, order: Order, events: list[EventLog]) -> Order:
    """Insert the order and its audit events in one commit.

    The UNIQUE constraint on gateway_order_id is what makes capture idempotent under
    concurrency: the losing writer gets DuplicateOrderError carrying the winner's row.
    """

    db.add(order)
    for event in events:
        db.add(event)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        existing = find_by_gateway_order_id(db, order.gateway_order_id)
        if existing is not None:
            raise DuplicateOrderError(existing) from e
        raise PersistenceError(f"Order insert violated a constraint: {e.orig}") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Order insert failed: {e}") from e

    db.refresh(order)
    return order
