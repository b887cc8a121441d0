from __future__ import annotations

import os
from pathlib import Path

from services.api.app.db.database import database_url, get_engine
from services.api.app.db.models import Base
from sqlalchemy.engine import make_url


def _auto_create_enabled() -> bool:
    return os.getenv("CEVICHE_DB_AUTO_CREATE", "true").strip().lower() in {"1", "true", "yes", "y"}


def init_db() -> None:
    """Create the orders, notifications and event_log tables if they are missing.

    The UNIQUE constraint on orders.gateway_order_id is created here; deployments that
    disable auto-create must carry it in their own migrations.
    """

    if not _auto_create_enabled():
        return

    url = make_url(database_url())
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=get_engine())
