"""Task assignment from managers to their employees."""

import logging

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.enums import Role, TaskStatus
from ems.core.exceptions import InvalidRequest, NotFoundError, PermissionDenied
from ems.db.models.task import Task
from ems.db.models.user import User
from ems.schemas.task import TaskCreate

logger = logging.getLogger(__name__)

# Statuses an assignee may move their own task to.
ASSIGNEE_STATUSES = frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED})


class TaskService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self, task_id: int) -> Task:
        task = await self.session.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    async def _manages(self, manager: User, user_id: int) -> bool:
        if manager.role != Role.MANAGER:
            return False
        employee = await self.session.get(User, user_id)
        return employee is not None and employee.role == Role.EMPLOYEE and employee.manager_id == manager.id

    async def create(self, manager: User, payload: TaskCreate) -> Task:
        if not await self._manages(manager, payload.assigned_to_id):
            raise PermissionDenied("Tasks can only be assigned to your own employees.")

        task = Task(
            title=payload.title.strip(),
            description=payload.description,
            deadline=payload.deadline,
            assigned_to_id=payload.assigned_to_id,
            assigned_by_id=manager.id,
            status=TaskStatus.PENDING.value,
            accepted=False,
        )
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)
        logger.info("Manager %s assigned task %d to user %d", manager.employee_id, task.id, task.assigned_to_id)
        return task

    async def list_for_user(self, user: User) -> list[Task]:
        result = await self.session.scalars(
            select(Task).where(Task.assigned_to_id == user.id).order_by(Task.deadline, Task.id)
        )
        return list(result)

    async def list_for_manager(self, manager: User) -> list[Task]:
        result = await self.session.scalars(
            select(Task)
            .join(User, User.id == Task.assigned_to_id)
            .where(User.manager_id == manager.id)
            .order_by(Task.deadline, Task.id)
        )
        return list(result)

    async def accept(self, user: User, task_id: int) -> Task:
        task = await self._get(task_id)
        if task.assigned_to_id != user.id:
            raise PermissionDenied("Only the assignee can accept this task.")

        task.accepted = True
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def update_status(self, user: User, task_id: int, status: TaskStatus) -> Task:
        """Move a task along `pending -> in-progress -> completed`.

        The assignee may only pick in-progress or completed; the assignee's
        manager may set any status. Completion requires prior acceptance.
        """
        task = await self._get(task_id)
        is_assignee = task.assigned_to_id == user.id
        is_manager = await self._manages(user, task.assigned_to_id)

        if not (is_assignee or is_manager):
            raise PermissionDenied("You are not allowed to update this task.")
        if is_assignee and status not in ASSIGNEE_STATUSES:
            raise PermissionDenied("Employees can only mark tasks in progress or completed.")
        if status is TaskStatus.COMPLETED and not task.accepted:
            raise InvalidRequest("Task must be accepted before completion.")

        task.status = status.value
        await self.session.commit()
        await self.session.refresh(task)
        logger.info("Task %d moved to %s by %s", task.id, status.value, user.employee_id)
        return task

    async def stats(self, user: User) -> dict[str, int]:
        def _count(status: TaskStatus):
            return func.coalesce(func.sum(case((Task.status == status.value, 1), else_=0)), 0)

        total, completed, in_progress = (
            await self.session.execute(
                select(
                    func.count(Task.id),
                    _count(TaskStatus.COMPLETED),
                    _count(TaskStatus.IN_PROGRESS),
                ).where(Task.assigned_to_id == user.id)
            )
        ).one()
        return {"total_tasks": total, "completed_tasks": completed, "in_progress_tasks": in_progress}
