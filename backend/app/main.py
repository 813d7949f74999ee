"""
FastAPI app entrypoint.

Project push notifications: Contentful publish webhook + quarter-hourly scheduled push.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.routes import cron, webhooks
from app.config import settings
from app.core.constants import SCHEDULED_PUSH_JOB_ID
from app.scheduler.scheduled_push_job import run_scheduled_push_job

logger = logging.getLogger(__name__)


def _slot_minutes(interval: int) -> str:
    """Cron minute field for every `interval` minutes starting at :00 (e.g. 15 -> '0,15,30,45')."""
    interval = max(1, min(60, interval))
    return ",".join(str(m) for m in range(0, 60, interval))


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if settings.scheduled_dispatch_enabled:
        # Scheduler: scheduled push on slot boundaries, in the same timezone as user preferences
        scheduler = BackgroundScheduler(timezone=settings.notification_timezone)
        scheduler.add_job(
            run_scheduled_push_job,
            "cron",
            minute=_slot_minutes(settings.scheduled_dispatch_interval_minutes),
            id=SCHEDULED_PUSH_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info(
            "Scheduled push every %s min (%s)",
            settings.scheduled_dispatch_interval_minutes, settings.notification_timezone,
        )
    else:
        logger.info("In-process scheduled push disabled; expecting external cron on /cron/send-scheduled-notifications")
    app.state.scheduler = scheduler
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


def create_app() -> FastAPI:
    app = FastAPI(title="Project Notify", version="0.1.0", lifespan=lifespan)

    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(cron.router, prefix="/cron", tags=["cron"])

    @app.get("/", include_in_schema=False)
    def root():
        """Root: point to API docs and health."""
        return {"message": "Project Notify API", "docs": "/docs", "health": "/health"}

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
