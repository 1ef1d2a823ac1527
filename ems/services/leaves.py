"""Leave requests and the leave-balance arithmetic."""

import logging
from datetime import date, datetime, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.enums import LeaveStatus, Role
from ems.core.exceptions import InvalidRequest, NotFoundError, PermissionDenied
from ems.db.models.leave import LeaveRequest
from ems.db.models.user import User
from ems.schemas.leave import LeaveCreate

logger = logging.getLogger(__name__)


def count_leave_days(from_date: date, to_date: date) -> int:
    """Calendar days covered by a request, both ends inclusive."""
    if to_date < from_date:
        raise InvalidRequest("End date must be on or after the start date.")
    return (to_date - from_date).days + 1


def remaining_balance(leaves_left: int, days: int) -> int:
    return max(0, leaves_left - days)


class LeaveService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User, payload: LeaveCreate) -> LeaveRequest:
        count_leave_days(payload.from_date, payload.to_date)
        leave = LeaveRequest(
            user_id=user.id,
            leave_type=payload.leave_type,
            from_date=payload.from_date,
            to_date=payload.to_date,
            reason=payload.reason,
            status=LeaveStatus.PENDING.value,
        )
        self.session.add(leave)
        await self.session.commit()
        await self.session.refresh(leave)
        return leave

    async def list_for_user(self, user: User) -> list[LeaveRequest]:
        result = await self.session.scalars(
            select(LeaveRequest)
            .where(LeaveRequest.user_id == user.id)
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        )
        return list(result)

    async def list_for_manager(self, manager: User) -> list[LeaveRequest]:
        result = await self.session.scalars(
            select(LeaveRequest)
            .join(User, User.id == LeaveRequest.user_id)
            .where(User.manager_id == manager.id)
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        )
        return list(result)

    async def decide(self, manager: User, leave_id: int, decision: LeaveStatus) -> LeaveRequest:
        """Approve or reject a pending request from one of the manager's employees.

        Approval deducts the inclusive day count from the employee's balance,
        floored at zero.
        """
        if decision is LeaveStatus.PENDING:
            raise InvalidRequest("A decision must be either approved or rejected.")

        leave = await self.session.get(LeaveRequest, leave_id)
        if leave is None:
            raise NotFoundError("Leave request not found.")

        employee = await self.session.get(User, leave.user_id)
        if employee is None or employee.role != Role.EMPLOYEE or employee.manager_id != manager.id:
            raise PermissionDenied("This leave request belongs to another manager's employee.")
        if leave.status != LeaveStatus.PENDING:
            raise InvalidRequest("Leave request has already been reviewed.")

        leave.status = decision.value
        leave.reviewed_by_id = manager.id
        leave.reviewed_at = datetime.now(timezone.utc)

        if decision is LeaveStatus.APPROVED:
            days = count_leave_days(leave.from_date, leave.to_date)
            employee.leaves_left = remaining_balance(employee.leaves_left, days)

        await self.session.commit()
        await self.session.refresh(leave)
        logger.info(
            "Manager %s %s leave %d for %s",
            manager.employee_id,
            decision.value,
            leave.id,
            employee.employee_id,
        )
        return leave

    async def stats(self, user: User) -> dict[str, int]:
        def _count(status: LeaveStatus):
            return func.coalesce(func.sum(case((LeaveRequest.status == status.value, 1), else_=0)), 0)

        row = (
            await self.session.execute(
                select(
                    func.count(LeaveRequest.id),
                    _count(LeaveStatus.APPROVED),
                    _count(LeaveStatus.PENDING),
                    _count(LeaveStatus.REJECTED),
                ).where(LeaveRequest.user_id == user.id)
            )
        ).one()
        total, approved, pending, rejected = row
        return {
            "total_requests": total,
            "approved": approved,
            "pending": pending,
            "rejected": rejected,
        }
