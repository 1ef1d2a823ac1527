from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ems.core.enums import TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    deadline: date
    assigned_to_id: int


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskResponse(BaseModel):
    id: int
    title: str
    description: str
    deadline: date
    status: TaskStatus
    accepted: bool
    assigned_to_id: int
    assigned_by_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskStats(BaseModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
