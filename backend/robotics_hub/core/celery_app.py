from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "robotics_hub",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={"robotics_hub.services.batch.run_daily_batch": {"queue": "etl"}},
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("robotics_hub.services.batch",),
    beat_schedule={
        # Seed -> ingest -> enrich -> snapshot, once a day
        "robotics-daily-batch": {
            "task": "robotics_hub.services.batch.run_daily_batch",
            "schedule": crontab(
                hour=settings.BATCH_CRON_HOUR,
                minute=settings.BATCH_CRON_MINUTE,
            ),
        },
    },
)
