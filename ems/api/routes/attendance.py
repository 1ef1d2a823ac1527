"""Attendance marking and monthly summaries."""

from fastapi import APIRouter, Depends, Query

from ems.api import deps
from ems.db.models.attendance import AttendanceRecord
from ems.db.models.user import User
from ems.schemas.attendance import AttendanceMark, AttendanceMarkResult, AttendanceResponse, AttendanceSummary
from ems.services.attendance import AttendanceService

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


@router.post("/mark", response_model=AttendanceMarkResult)
async def mark_attendance(
    payload: AttendanceMark,
    manager: User = Depends(deps.require_manager),
    service: AttendanceService = Depends(deps.get_attendance_service),
) -> AttendanceMarkResult:
    """Record one employee's day; an approved leave forces the status to `leave`."""

    record, overridden = await service.mark(manager, payload)
    message = None
    if overridden:
        message = "Employee has an approved leave for this date. Status automatically set to leave."
    return AttendanceMarkResult(attendance=AttendanceResponse.model_validate(record), message=message)


@router.get("/records", response_model=list[AttendanceResponse])
async def attendance_records(
    year: int | None = Query(default=None, ge=1970),
    month: int | None = Query(default=None, ge=1, le=12),
    user_id: int | None = None,
    user: User = Depends(deps.get_current_user),
    service: AttendanceService = Depends(deps.get_attendance_service),
) -> list[AttendanceRecord]:
    return await service.records(user, year=year, month=month, user_id=user_id)


@router.get("/summary/{user_id}", response_model=AttendanceSummary)
async def attendance_summary(
    user_id: int,
    year: int = Query(ge=1970),
    month: int = Query(ge=1, le=12),
    user: User = Depends(deps.get_current_user),
    service: AttendanceService = Depends(deps.get_attendance_service),
) -> AttendanceSummary:
    return AttendanceSummary(**await service.summary(user, user_id, year, month))
