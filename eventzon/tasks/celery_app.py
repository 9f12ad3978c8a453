"""
Celery application configuration for background tasks.
"""

from celery import Celery
from ..config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "eventzon",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "eventzon.tasks.notification_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.event_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    task_always_eager=settings.celery_task_always_eager,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Periodic tasks configuration
celery_app.conf.beat_schedule = {
    "queue-24h-reminders": {
        "task": "queue_due_reminders_task",
        "schedule": 3600.0,  # Run every hour
        "args": ("24h",),
    },
    "queue-2h-reminders": {
        "task": "queue_due_reminders_task",
        "schedule": 3600.0,  # Run every hour
        "args": ("2h",),
    },
}
