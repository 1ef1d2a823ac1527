from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ems.core.enums import LeaveStatus


class LeaveCreate(BaseModel):
    leave_type: str = Field(default="casual", max_length=50)
    from_date: date
    to_date: date
    reason: str = ""

    @model_validator(mode="after")
    def _ordered_dates(self) -> "LeaveCreate":
        if self.to_date < self.from_date:
            raise ValueError("to_date must be on or after from_date")
        return self


class LeaveDecision(BaseModel):
    """`pending` is rejected by the service; only final states are accepted."""

    status: LeaveStatus


class LeaveResponse(BaseModel):
    id: int
    user_id: int
    leave_type: str
    from_date: date
    to_date: date
    reason: str
    status: LeaveStatus
    reviewed_by_id: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaveStats(BaseModel):
    total_requests: int
    approved: int
    pending: int
    rejected: int
