"""
Deadline reminders.

Every new task gets one in-memory APScheduler job that emails its owner an hour
before the deadline. Jobs are strictly one-shot and live only as long as the
process: a restart drops every pending reminder, and deleting or editing a task
leaves its reminder in place (there is no cancel operation).
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from taskminder.exceptions import NotifierError
from taskminder.models.tasks import Task
from taskminder.services.notifier import Notifier

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class ReminderPayload:
    recipient: str
    title: str
    description: str | None
    deadline: datetime

    @property
    def subject(self) -> str:
        return f'Reminder: Task "{self.title}" is due soon'

    @property
    def body(self) -> str:
        lines = [
            f'This is a reminder that your task "{self.title}" is due in one hour.',
            f"Deadline: {self.deadline:%Y-%m-%d %H:%M} UTC",
        ]
        if self.description:
            lines.append(f"Description: {self.description}")
        lines.append("")
        lines.append("Please complete it on time.")
        return "\n".join(lines)


@dataclass
class Reminder:
    job_id: str
    fire_time: datetime
    payload: ReminderPayload
    state: ReminderState = ReminderState.PENDING


def compute_fire_time(deadline: datetime, now: datetime) -> datetime:
    """One hour before the deadline, or now if that moment has already gone."""
    return max(deadline - REMINDER_LEAD, now)


class ReminderScheduler:
    def __init__(self, notifier: Notifier, clock: Callable[[], datetime] = utcnow):
        self.notifier = notifier
        self.clock = clock
        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._reminders: dict[str, Reminder] = {}

    def start(self):
        """Must be called from inside the running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self):
        discarded = 0
        for reminder in self._reminders.values():
            if reminder.state is ReminderState.PENDING:
                reminder.state = ReminderState.DISCARDED
                discarded += 1
        self._reminders.clear()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Reminder scheduler stopped, %d pending reminder(s) discarded", discarded)

    def schedule(self, task: Task) -> Reminder:
        payload = ReminderPayload(
            recipient=task.user_email,
            title=task.title,
            description=task.description,
            deadline=task.deadline,
        )
        fire_time = compute_fire_time(task.deadline, self.clock())
        reminder = Reminder(job_id=uuid.uuid4().hex, fire_time=fire_time, payload=payload)
        self._reminders[reminder.job_id] = reminder

        # misfire_grace_time=None: a late job still runs instead of being skipped
        self._scheduler.add_job(
            self.fire,
            trigger=DateTrigger(run_date=fire_time, timezone=timezone.utc),
            args=[reminder.job_id],
            id=reminder.job_id,
            misfire_grace_time=None,
        )
        logger.info("Reminder for task %s scheduled at %s", task.task_id, fire_time.isoformat())
        return reminder

    async def fire(self, job_id: str):
        reminder = self._reminders.pop(job_id, None)
        if reminder is None or reminder.state is not ReminderState.PENDING:
            return
        reminder.state = ReminderState.FIRED

        payload = reminder.payload
        try:
            await self.notifier.send(payload.recipient, payload.subject, payload.body)
        except NotifierError as e:
            logger.error("Reminder %s for %s not delivered: %s", job_id, payload.recipient, e)

    def pending(self) -> list[Reminder]:
        return [r for r in self._reminders.values() if r.state is ReminderState.PENDING]
