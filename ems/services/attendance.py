"""Attendance marking and monthly summaries.

A day covered by an approved leave request is always recorded as `leave`,
whatever status the manager submitted.
"""

import calendar
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.enums import AttendanceStatus, LeaveStatus, Role
from ems.core.exceptions import InvalidRequest, NotFoundError, PermissionDenied
from ems.db.models.attendance import AttendanceRecord
from ems.db.models.leave import LeaveRequest
from ems.db.models.user import User
from ems.schemas.attendance import AttendanceMark

logger = logging.getLogger(__name__)

DEFAULT_TIME_IN = "09:00"
DEFAULT_TIME_OUT = "18:00"
ON_LEAVE_NOTE = "On Leave"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of `month`."""
    if not 1 <= month <= 12:
        raise InvalidRequest("Month must be between 1 and 12.")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class AttendanceService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _employee_of(self, manager: User, user_id: int) -> User:
        employee = await self.session.get(User, user_id)
        if employee is None or employee.role != Role.EMPLOYEE:
            raise NotFoundError("Employee not found.")
        if employee.manager_id != manager.id:
            raise PermissionDenied("This employee reports to another manager.")
        return employee

    async def _on_approved_leave(self, user_id: int, day: date) -> bool:
        leave_id = await self.session.scalar(
            select(LeaveRequest.id)
            .where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.from_date <= day,
                LeaveRequest.to_date >= day,
            )
            .limit(1)
        )
        return leave_id is not None

    async def mark(self, manager: User, payload: AttendanceMark) -> tuple[AttendanceRecord, bool]:
        """Create or overwrite the record for one employee and day.

        Returns the record and whether the submitted status was replaced by
        `leave` because of an approved leave request.
        """
        employee = await self._employee_of(manager, payload.user_id)

        status = payload.status
        notes = payload.notes.strip()
        overridden = False
        if await self._on_approved_leave(employee.id, payload.work_date):
            overridden = status is not AttendanceStatus.LEAVE
            status = AttendanceStatus.LEAVE
            notes = f"{notes} ({ON_LEAVE_NOTE})" if notes else ON_LEAVE_NOTE

        present = status is AttendanceStatus.PRESENT
        values = {
            "status": status.value,
            "time_in": (payload.time_in or DEFAULT_TIME_IN) if present else "",
            "time_out": (payload.time_out or DEFAULT_TIME_OUT) if present else "",
            "notes": notes,
            "marked_by_id": manager.id,
        }

        # A lost insert race rolls the session back and expires both users.
        manager_label, employee_label = manager.employee_id, employee.employee_id
        record = await self._upsert(employee.id, payload.work_date, values)
        logger.info(
            "Manager %s marked %s as %s on %s",
            manager_label,
            employee_label,
            status.value,
            payload.work_date.isoformat(),
        )
        return record, overridden

    async def _upsert(self, user_id: int, day: date, values: dict) -> AttendanceRecord:
        # Two writes for the same (user, day) can race; the loser updates the winner's row.
        for _ in range(2):
            record = await self.session.scalar(
                select(AttendanceRecord).where(AttendanceRecord.user_id == user_id, AttendanceRecord.work_date == day)
            )
            if record is None:
                record = AttendanceRecord(user_id=user_id, work_date=day)
                self.session.add(record)
            for field, value in values.items():
                setattr(record, field, value)
            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                continue
            await self.session.refresh(record)
            return record
        raise InvalidRequest("Attendance for this day is being updated concurrently. Please retry.")

    async def records(
        self,
        viewer: User,
        *,
        year: int | None = None,
        month: int | None = None,
        user_id: int | None = None,
    ) -> list[AttendanceRecord]:
        """Records visible to `viewer`, newest first.

        Employees only see their own. Managers see their roster, or a single
        employee of it when `user_id` is given.
        """
        query = select(AttendanceRecord)
        if viewer.role == Role.MANAGER:
            if user_id is not None:
                await self._employee_of(viewer, user_id)
                query = query.where(AttendanceRecord.user_id == user_id)
            else:
                query = query.join(User, User.id == AttendanceRecord.user_id).where(User.manager_id == viewer.id)
        else:
            query = query.where(AttendanceRecord.user_id == viewer.id)

        if year is not None and month is not None:
            start, end = month_bounds(year, month)
            query = query.where(AttendanceRecord.work_date.between(start, end))

        result = await self.session.scalars(query.order_by(AttendanceRecord.work_date.desc()))
        return list(result)

    async def summary(self, viewer: User, user_id: int, year: int, month: int) -> dict:
        if viewer.id != user_id:
            await self._employee_of(viewer, user_id)
        start, end = month_bounds(year, month)

        result = await self.session.scalars(
            select(AttendanceRecord.status).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.work_date.between(start, end),
            )
        )
        statuses = list(result)
        present = statuses.count(AttendanceStatus.PRESENT.value)
        total = len(statuses)
        return {
            "present": present,
            "absent": statuses.count(AttendanceStatus.ABSENT.value),
            "leave": statuses.count(AttendanceStatus.LEAVE.value),
            "total": total,
            "attendance_rate": round(present / total * 100, 2) if total else 0.0,
        }
