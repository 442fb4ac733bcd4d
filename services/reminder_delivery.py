"""
services/reminder_delivery.py
-----------------------------
Backends that actually deliver payment reminders.

The scheduler only decides *when* to remind; a delivery backend turns each
request into a pending notification and hands back an opaque handle that
can later be used to cancel it.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from telegram.ext import ContextTypes, JobQueue

from models.errors import DeliveryFailure, PermissionDenied
from utils.logger import get_logger

logger = get_logger(__name__)

JOB_PREFIX = "reminder"


@dataclass(frozen=True)
class ReminderRequest:
    """
    One reminder to deliver.

    Attributes:
        fire_at: When the reminder should be shown.
        title: Short headline.
        body: Message text.
        correlation_id: Id of the subscription the reminder belongs to.
    """
    fire_at: datetime
    title: str
    body: str
    correlation_id: str


class ReminderDelivery:
    """
    Interface of a reminder delivery backend. All calls are coroutines.

    Implementations raise PermissionDenied from `ensure_permission` and
    DeliveryFailure from `schedule` / `cancel` / `cancel_all`.
    """

    async def ensure_permission(self) -> None:
        raise NotImplementedError

    async def schedule(self, request: ReminderRequest) -> str:
        raise NotImplementedError

    async def cancel(self, handle: str) -> None:
        raise NotImplementedError

    async def cancel_all(self) -> None:
        raise NotImplementedError


async def send_reminder(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Job callback: post a due reminder to the owner chat."""
    job = context.job
    request: ReminderRequest = job.data
    await context.bot.send_message(
        chat_id=job.chat_id,
        text=f"*{request.title}*\n{request.body}",
        parse_mode="Markdown",
    )
    logger.info(f"Delivered reminder {job.name} for subscription {request.correlation_id}")


class TelegramReminderDelivery(ReminderDelivery):
    """
    Delivers reminders as Telegram messages through the bot's JobQueue.

    Each reminder is a one-shot job; the job name is the handle.
    """

    def __init__(self, job_queue: JobQueue, chat_id: int | None, tz: ZoneInfo):
        self.job_queue = job_queue
        self.chat_id = chat_id
        self.tz = tz

    async def ensure_permission(self) -> None:
        """
        Raises:
            PermissionDenied: No owner chat configured, or the job queue is unavailable.
        """
        if self.chat_id is None:
            raise PermissionDenied("OWNER_CHAT_ID is not set; reminders cannot be delivered.")
        if self.job_queue is None:
            raise PermissionDenied(
                "The job queue is unavailable; install python-telegram-bot[job-queue]."
            )

    async def schedule(self, request: ReminderRequest) -> str:
        fire_at = request.fire_at
        if fire_at.tzinfo is None:
            fire_at = fire_at.replace(tzinfo=self.tz)

        handle = f"{JOB_PREFIX}:{request.correlation_id}:{uuid.uuid4().hex[:12]}"
        try:
            self.job_queue.run_once(
                send_reminder,
                when=fire_at,
                data=request,
                name=handle,
                chat_id=self.chat_id,
            )
        except Exception as e:
            raise DeliveryFailure(f"Could not schedule {handle}: {e}") from e
        return handle

    async def cancel(self, handle: str) -> None:
        try:
            jobs = self.job_queue.get_jobs_by_name(handle)
            for job in jobs:
                job.schedule_removal()
        except Exception as e:
            raise DeliveryFailure(f"Could not cancel {handle}: {e}") from e
        if not jobs:
            logger.debug(f"Reminder {handle} was already gone")

    async def cancel_all(self) -> None:
        try:
            for job in self.job_queue.jobs():
                if job.name and job.name.startswith(f"{JOB_PREFIX}:"):
                    job.schedule_removal()
        except Exception as e:
            raise DeliveryFailure(f"Could not cancel scheduled reminders: {e}") from e
