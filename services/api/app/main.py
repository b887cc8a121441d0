"""Ceviche orders API service entrypoint."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from services.api.app.config import Settings
from services.api.app.db.init_db import init_db
from services.api.app.logging_config import setup_logging
from services.api.app.rate_limit import FixedWindowRateLimiter
from services.api.app.routers.orders import router as orders_router
from services.api.app.routers.payments import router as payments_router

app = FastAPI(title="Ceviche Orders API")

app.include_router(payments_router)
app.include_router(orders_router)


@app.on_event("startup")
def _startup() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    app.state.settings = settings
    # 0 disables throttling.
    app.state.rate_limiter = (
        FixedWindowRateLimiter(settings.rate_limit_per_minute) if settings.rate_limit_per_minute else None
    )
    init_db()


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{loc}: {message}" if loc else message
    return JSONResponse(status_code=400, content={"detail": detail})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
