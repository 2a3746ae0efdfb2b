import logging
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskminder.exceptions import NotFound, ValidationError
from taskminder.models.tasks import Task
from taskminder.schemas.task import TaskCreate, TaskUpdate
from taskminder.services.scheduler import REMINDER_LEAD
from taskminder.services.users import get_user

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Title, deadline, and user information are required fields"


def parse_deadline(value: str | datetime) -> datetime:
    """ISO 8601 date/time; naive values are taken as UTC."""
    if isinstance(value, datetime):
        deadline = value
    else:
        try:
            deadline = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ValidationError("Invalid deadline date")

    if deadline.tzinfo is None:
        return deadline.replace(tzinfo=timezone.utc)
    try:
        return deadline.astimezone(timezone.utc)
    except OverflowError:
        # e.g. 9999-12-31T23:00-05:00 lands past datetime.max in UTC
        raise ValidationError("Invalid deadline date")


def validate_deadline(value: str | datetime, now: datetime) -> datetime:
    deadline = parse_deadline(value)
    if deadline <= now:
        raise ValidationError("Deadline cannot be in the past")
    if deadline <= now + REMINDER_LEAD:
        raise ValidationError("Deadline must be at least one hour ahead")
    return deadline


async def create_task(db: AsyncSession, task_data: TaskCreate, now: datetime) -> Task:
    if not task_data.title or not task_data.deadline or task_data.user_id is None:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    deadline = validate_deadline(task_data.deadline, now)

    user = await get_user(db, task_data.user_id)
    if not user:
        raise NotFound("User not found")

    new_task = Task(
        title=task_data.title,
        description=task_data.description or None,
        deadline=deadline,
        user_id=user.user_id,
        user_email=user.email,
    )
    db.add(new_task)
    await db.flush()
    return new_task


async def list_tasks_for_user(db: AsyncSession, user_id: int, now: datetime) -> list[Task]:
    """
    All tasks owned by ``user_id``, in no particular order.

    Reading the list is also what expires tasks: anything whose deadline is at
    or before ``now`` is deleted before the select runs. The two statements are
    not atomic, so a task created concurrently with an elapsed deadline can
    slip between them.
    """
    result = await db.execute(
        delete(Task).where(Task.user_id == user_id, Task.deadline <= now)
    )
    if result.rowcount:
        logger.info("Expired %d task(s) for user %s", result.rowcount, user_id)
    await db.commit()

    result = await db.execute(select(Task).filter(Task.user_id == user_id))
    return list(result.scalars().all())


async def get_task(db: AsyncSession, task_id: int, owner_id: int | None = None) -> Task:
    query = select(Task).filter(Task.task_id == task_id)
    if owner_id is not None:
        query = query.filter(Task.user_id == owner_id)
    result = await db.execute(query)
    task = result.scalars().first()
    if not task:
        raise NotFound("Task not found")
    return task


async def update_task(
    db: AsyncSession,
    task_id: int,
    update_data: TaskUpdate,
    now: datetime,
    owner_id: int | None = None,
) -> Task:
    """Apply an edit. The reminder scheduled at creation keeps its original fire time."""
    task = await get_task(db, task_id, owner_id)
    changes = update_data.model_dump(exclude_unset=True)

    if "title" in changes:
        if not changes["title"]:
            raise ValidationError("Title cannot be empty")
        task.title = changes["title"]
    if "description" in changes:
        task.description = changes["description"] or None
    if "deadline" in changes:
        if not changes["deadline"]:
            raise ValidationError("Deadline cannot be empty")
        task.deadline = validate_deadline(changes["deadline"], now)

    await db.flush()
    return task


async def delete_task(db: AsyncSession, task_id: int, owner_id: int | None = None) -> None:
    """
    Remove a task; a missing id is not an error.

    Any reminder already scheduled for it still fires with the payload captured
    at creation.
    """
    stmt = delete(Task).where(Task.task_id == task_id)
    if owner_id is not None:
        stmt = stmt.where(Task.user_id == owner_id)
    await db.execute(stmt)
