import logging
import os
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from fastapi.middleware.cors import CORSMiddleware

from app.api import bookings, schedule, specialists, telegram
from app.core.config import settings
from app.core.env import background_jobs_enabled
from app.core.errors import PersistenceError, SchedulingError
from app.services.notifications import TelegramNotifier
from app.services.reminders import ReminderScheduler
from app.services.telegram_bot import TelegramUpdatePoller
import database
from database import Base, engine
import models  # noqa: F401
from seed import seed_demo_data

logger = logging.getLogger(__name__)

default_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]
cors_origins = os.getenv("CORS_ORIGINS")
env_origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()] if cors_origins else []
origins = list({*default_origins, *env_origins})

app = FastAPI(title="Slotbook API", version="0.1.0")

app.state.notifier = TelegramNotifier.from_settings(settings)
app.state.scheduler = ReminderScheduler(
    app.state.notifier,
    interval_seconds=settings.reminder_interval_seconds,
    summary_hour=settings.daily_summary_hour,
)
app.state.link_poller = TelegramUpdatePoller(
    app.state.notifier,
    poll_timeout=settings.telegram_poll_timeout_seconds,
)


def _should_create_all() -> bool:
    env = (os.getenv("APP_ENV") or "").lower()
    enable_flag = os.getenv("ENABLE_CREATE_ALL", "").lower() in {"1", "true", "yes"}
    if engine.url.get_backend_name() == "sqlite":
        return True
    if env in {"local", "dev", "development"} or enable_flag:
        return True
    return False


@app.on_event("startup")
def on_startup() -> None:
    if _should_create_all():
        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as exc:
            logger.warning("Base.metadata.create_all failed; continuing without fatal error: %s", exc)
    else:
        logger.info(
            "Skipping Base.metadata.create_all on %s (APP_ENV=%s); run migrations or create tables separately.",
            engine.url.get_backend_name(),
            os.getenv("APP_ENV"),
        )
    seed_demo_data()

    app.state.notifier.start()
    if settings.reminders_enabled and background_jobs_enabled():
        app.state.scheduler.start()
    else:
        logger.info("Reminder scheduler disabled")
    if app.state.notifier.enabled and settings.telegram_polling_enabled and background_jobs_enabled():
        app.state.link_poller.start()


@app.on_event("shutdown")
def on_shutdown() -> None:
    app.state.link_poller.stop()
    app.state.scheduler.stop()
    app.state.notifier.stop()


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input gets the same 400 ``{"detail": str}`` shape as a missing field."""
    logger.info("Validation error for %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": describe_validation_error(exc.errors())})


def describe_validation_error(errors) -> str:
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in {"body", "query", "path"})
        if field:
            return f"Invalid {field}"
    return "Invalid request"


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(specialists.router, prefix="/api", tags=["specialists"])
app.include_router(schedule.router, prefix="/api", tags=["schedule"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])
app.include_router(telegram.router, prefix="/api", tags=["telegram"])


@app.get("/health")
def health() -> JSONResponse:
    try:
        with database.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database connection error: %s", exc)
        return JSONResponse(status_code=500, content={"status": "error", "message": "Database connection failed"})
    return JSONResponse(content={"status": "ok"})
