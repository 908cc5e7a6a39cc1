"""Celery worker configuration.

Background work handled here:
- Transactional email delivery
- Re-dispatching booking finalization events with undelivered consumers
"""

from celery import Celery
from celery.schedules import crontab

from daiyet.config import settings

# Create Celery app
celery_app = Celery(
    "daiyet_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["daiyet.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Africa/Lagos",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # Soft limit at 4 minutes

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Retry settings
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Finish finalizations interrupted by room/email/database failures
        "redispatch-outbox-events": {
            "task": "daiyet.tasks.redispatch_outbox_events",
            "schedule": crontab(minute="*/5"),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
