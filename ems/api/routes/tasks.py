"""Task endpoints: managers assign, employees accept and report progress."""

from fastapi import APIRouter, Depends, status

from ems.api import deps
from ems.db.models.task import Task
from ems.db.models.user import User
from ems.schemas.task import TaskCreate, TaskResponse, TaskStats, TaskStatusUpdate
from ems.services.tasks import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskResponse])
async def team_tasks(
    manager: User = Depends(deps.require_manager),
    service: TaskService = Depends(deps.get_task_service),
) -> list[Task]:
    return await service.list_for_manager(manager)


@router.get("/my-tasks", response_model=list[TaskResponse])
async def my_tasks(
    user: User = Depends(deps.get_current_user),
    service: TaskService = Depends(deps.get_task_service),
) -> list[Task]:
    return await service.list_for_user(user)


@router.get("/stats", response_model=TaskStats)
async def task_stats(
    user: User = Depends(deps.get_current_user),
    service: TaskService = Depends(deps.get_task_service),
) -> TaskStats:
    return TaskStats(**await service.stats(user))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    manager: User = Depends(deps.require_manager),
    service: TaskService = Depends(deps.get_task_service),
) -> Task:
    return await service.create(manager, payload)


@router.put("/{task_id}/accept", response_model=TaskResponse)
async def accept_task(
    task_id: int,
    user: User = Depends(deps.get_current_user),
    service: TaskService = Depends(deps.get_task_service),
) -> Task:
    return await service.accept(user, task_id)


@router.put("/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: int,
    payload: TaskStatusUpdate,
    user: User = Depends(deps.get_current_user),
    service: TaskService = Depends(deps.get_task_service),
) -> Task:
    """Report progress as the assignee, or set any status as their manager."""

    return await service.update_status(user, task_id, payload.status)
