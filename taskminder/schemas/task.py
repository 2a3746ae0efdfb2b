from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from taskminder.utils.sanitization import sanitize_string

TITLE_MAX_LENGTH = 200


class TaskCreate(BaseModel):
    """Raw "new task" form. Presence and deadline rules are checked by the task service."""
    title: str | None = Field(None, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    deadline: str | datetime | None = None
    user_id: int | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskUpdate(BaseModel):
    """The only fields an edit may touch."""
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    deadline: str | datetime | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class Task(BaseModel):
    task_id: int
    title: str
    description: str | None = None
    deadline: datetime
    user_id: int
    user_email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
