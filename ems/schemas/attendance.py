from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ems.core.enums import AttendanceStatus

_CLOCK_TIME = r"^([01]\d|2[0-3]):[0-5]\d$"


class AttendanceMark(BaseModel):
    """Manager entry for one employee and day; re-marking the same day overwrites it."""

    user_id: int
    work_date: date
    status: AttendanceStatus
    time_in: str | None = Field(default=None, pattern=_CLOCK_TIME)
    time_out: str | None = Field(default=None, pattern=_CLOCK_TIME)
    notes: str = ""


class AttendanceResponse(BaseModel):
    id: int
    user_id: int
    work_date: date
    status: AttendanceStatus
    time_in: str
    time_out: str
    notes: str
    marked_by_id: int | None = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttendanceMarkResult(BaseModel):
    attendance: AttendanceResponse
    message: str | None = None


class AttendanceSummary(BaseModel):
    present: int
    absent: int
    leave: int
    total: int
    attendance_rate: float
