"""Shared event schema (v1).

The backend stores an append-only event log next to each persisted order. Support tooling
reads these events to reconcile captures against the gateway.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    ORDER = "Order"
    NOTIFICATION = "Notification"


class EventTypeV1(str, Enum):
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    NOTIFICATION_CREATED = "NOTIFICATION_CREATED"


class EventV1(BaseModel):
    id: str
    user_id: str | None = None

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
