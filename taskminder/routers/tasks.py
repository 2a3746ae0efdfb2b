from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taskminder.context import AppContext
from taskminder.dependencies import get_context, get_current_user_id, get_db
from taskminder.exceptions import ValidationError
from taskminder.models.tasks import Task
from taskminder.schemas.task import TITLE_MAX_LENGTH, Task as TaskSchema, TaskCreate, TaskUpdate
from taskminder.services import tasks as task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])

EDITABLE_FIELDS = ["title", "description", "deadline"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _invalid_fields(e: PydanticValidationError) -> ValidationError:
    errors = e.errors()
    unknown = [str(err["loc"][0]) for err in errors if err["type"] == "extra_forbidden"]
    if unknown:
        return ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
    if any(err["loc"] and err["loc"][0] == "title" and err["type"] == "string_too_long" for err in errors):
        return ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return ValidationError("Invalid task fields")


async def new_task_fields(
    title: str | None = Form(None),
    description: str | None = Form(None),
    deadline: str | None = Form(None),
    userId: int | None = Form(None),
    current_user_id: int = Depends(get_current_user_id),
) -> TaskCreate:
    try:
        return TaskCreate(
            title=title,
            description=description,
            deadline=deadline,
            user_id=userId if userId is not None else current_user_id,
        )
    except PydanticValidationError as e:
        raise _invalid_fields(e)


async def _create_and_schedule(db: AsyncSession, context: AppContext, task_data: TaskCreate) -> Task:
    task = await task_service.create_task(db, task_data, _now())
    await db.commit()

    # Only once the task is committed
    context.reminders.schedule(task)
    return task


@router.get("", response_model=list[TaskSchema])
async def list_tasks(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await task_service.list_tasks_for_user(db, user_id, _now())


@router.post("")
async def create_task_and_show(
    task_data: TaskCreate = Depends(new_task_fields),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    """Same as ``POST /tasks/new`` but lands on the new task instead of the list."""
    task = await _create_and_schedule(db, context, task_data)
    return RedirectResponse(f"/tasks/{task.task_id}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/new")
async def new_task_form(user_id: int = Depends(get_current_user_id)):
    return {
        "form": "new_task",
        "action": "/tasks/new",
        "fields": ["title", "description", "deadline", "userId"],
        "userId": user_id,
    }


@router.post("/new")
async def create_task(
    task_data: TaskCreate = Depends(new_task_fields),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    await _create_and_schedule(db, context, task_data)
    return RedirectResponse("/tasks", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/{task_id}", response_model=TaskSchema)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await task_service.get_task(db, task_id, owner_id=user_id)


@router.get("/{task_id}/edit")
async def edit_task_form(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    task = await task_service.get_task(db, task_id, owner_id=user_id)
    return {
        "form": "edit_task",
        "action": f"/tasks/{task_id}/edit",
        "fields": EDITABLE_FIELDS,
        "task": TaskSchema.model_validate(task),
    }


@router.put("/{task_id}/edit")
async def update_task(
    task_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    form = await request.form()
    try:
        update_data = TaskUpdate.model_validate(dict(form))
    except PydanticValidationError as e:
        raise _invalid_fields(e)

    await task_service.update_task(db, task_id, update_data, _now(), owner_id=user_id)
    await db.commit()
    return RedirectResponse(f"/tasks/{task_id}", status_code=status.HTTP_303_SEE_OTHER)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    await task_service.delete_task(db, task_id, owner_id=user_id)
    await db.commit()
    return RedirectResponse("/tasks", status_code=status.HTTP_303_SEE_OTHER)
