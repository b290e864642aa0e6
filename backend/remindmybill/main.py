import logging
import traceback
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from remindmybill.config import settings
from remindmybill.db import Base, async_session, engine
from remindmybill.exceptions import InvalidDateError, InvalidShareCountError, UnknownCurrencyError
from remindmybill.routers import analytics, cancellation_logs, data_export, profile, subscriptions
from remindmybill.services.scheduler import (
    process_scheduled_cancellations,
    reconcile_all_locks,
    reset_alert_counters,
    roll_forward_renewal_dates,
    send_renewal_reminders,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_daily_tasks() -> None:
    async with async_session() as db:
        await roll_forward_renewal_dates(db)
        await process_scheduled_cancellations(db, settings.NOTIFY_WEBHOOK_URL)
        await reconcile_all_locks(db)
        await send_renewal_reminders(db, settings.NOTIFY_WEBHOOK_URL)


async def run_monthly_tasks() -> None:
    async with async_session() as db:
        await reset_alert_counters(db)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    scheduler.add_job(run_daily_tasks, "cron", hour=9, minute=0)
    scheduler.add_job(run_monthly_tasks, "cron", day=1, hour=0, minute=0)
    scheduler.start()

    yield

    scheduler.shutdown()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(profile.router, prefix="/api/v1")
app.include_router(subscriptions.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(cancellation_logs.router, prefix="/api/v1")
app.include_router(data_export.router, prefix="/api/v1")


@app.exception_handler(InvalidDateError)
@app.exception_handler(UnknownCurrencyError)
@app.exception_handler(InvalidShareCountError)
async def invalid_input_handler(request: Request, exc: ValueError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {exc}\n{traceback.format_exc()}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
