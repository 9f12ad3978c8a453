"""
Celery tasks for notification delivery.

Booking changes are committed before a task is queued, so a failed or
delayed e-mail never affects the booking itself. Delivery errors are
retried with exponential backoff.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Dict
from uuid import UUID

from .celery_app import celery_app
from ..config import get_settings
from ..database import standalone_session
from ..services.notification_service import NotificationService, ReminderLeadTime
from ..utils.exceptions import DeliveryError, NotFoundError

logger = logging.getLogger(__name__)

settings = get_settings()


def _run(work: Callable[[NotificationService], Awaitable[dict]]) -> dict:
    """Run ``work`` with a notification service on a fresh event loop."""

    async def _with_service():
        async with standalone_session() as session:
            return await work(NotificationService(session))

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return _run_in_new_loop(_with_service)

    # Eager execution from a request handler: the caller's loop is busy
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(_run_in_new_loop, _with_service).result()


def _run_in_new_loop(factory: Callable[[], Awaitable[dict]]) -> dict:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(factory())
    finally:
        asyncio.set_event_loop(None)
        loop.close()


def _deliver(task, kind: str, booking_id: str, work: Callable[[NotificationService], Awaitable]) -> dict:
    async def _work(service: NotificationService) -> dict:
        message = await work(service)
        if message is None:
            logger.info(f"{kind} for booking {booking_id} no longer applies")
            return {"booking_id": booking_id, "status": "skipped"}
        return {"booking_id": booking_id, "status": "sent"}

    try:
        return _run(_work)
    except NotFoundError:
        logger.warning(f"{kind} skipped, booking {booking_id} not found")
        return {"booking_id": booking_id, "status": "not_found"}
    except DeliveryError as exc:
        retries = task.request.retries
        logger.warning(f"{kind} for booking {booking_id} failed (attempt {retries + 1}): {exc.message}")
        raise task.retry(exc=exc, countdown=2 ** retries)


@celery_app.task(
    bind=True,
    name="send_booking_confirmation_task",
    max_retries=settings.notification_max_retries
)
def send_booking_confirmation_task(self, booking_id: str):
    """
    Task to send the booking confirmation with the ticket attached.

    Args:
        booking_id: ID of the confirmed booking
    """
    logger.info(f"Sending booking confirmation for {booking_id}")
    return _deliver(
        self,
        "booking_confirmation",
        booking_id,
        lambda service: service.deliver_booking_confirmation(UUID(booking_id))
    )


@celery_app.task(
    bind=True,
    name="send_booking_cancellation_task",
    max_retries=settings.notification_max_retries
)
def send_booking_cancellation_task(self, booking_id: str):
    """
    Task to send booking cancellation notification.

    Args:
        booking_id: ID of the cancelled booking
    """
    logger.info(f"Sending booking cancellation for {booking_id}")
    return _deliver(
        self,
        "booking_cancellation",
        booking_id,
        lambda service: service.deliver_booking_cancellation(UUID(booking_id))
    )


@celery_app.task(
    bind=True,
    name="send_event_reminder_task",
    max_retries=settings.notification_max_retries
)
def send_event_reminder_task(self, booking_id: str, lead_time: str):
    """
    Task to send a reminder ahead of the event.

    Args:
        booking_id: ID of the booking to remind
        lead_time: "24h" or "2h"
    """
    lead = ReminderLeadTime(lead_time)
    logger.info(f"Sending {lead.value} reminder for {booking_id}")
    return _deliver(
        self,
        f"event_reminder_{lead.value}",
        booking_id,
        lambda service: service.deliver_event_reminder(UUID(booking_id), lead)
    )


@celery_app.task(name="queue_due_reminders_task")
def queue_due_reminders_task(lead_time: str):
    """
    Periodic task queueing one reminder per booking whose event starts
    within the next window for ``lead_time``.
    """
    lead = ReminderLeadTime(lead_time)

    async def _collect(service: NotificationService) -> dict:
        bookings = await service.get_bookings_due_for_reminder(lead)
        return {"booking_ids": [str(booking.id) for booking in bookings]}

    booking_ids = _run(_collect)["booking_ids"]
    for booking_id in booking_ids:
        send_event_reminder_task.delay(booking_id, lead.value)

    logger.info(f"Queued {len(booking_ids)} {lead.value} reminder(s)")
    return {"lead_time": lead.value, "queued_count": len(booking_ids)}


NOTIFICATION_TASKS: Dict[str, object] = {
    "booking_confirmation": send_booking_confirmation_task,
    "booking_cancellation": send_booking_cancellation_task,
}


def queue_notification(kind: str, booking_id: str) -> None:
    """
    Queue the task for a notification kind. Unknown kinds raise ValueError.

    In eager mode the task has already run when ``delay`` returns; its
    failure is raised here.
    """
    task = NOTIFICATION_TASKS.get(kind)
    if task is None:
        raise ValueError(f"Unknown notification kind: {kind}")

    result = task.delay(booking_id)
    if celery_app.conf.task_always_eager and result.failed():
        raise result.result
