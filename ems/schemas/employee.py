from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ems.core.enums import AccountStatus


class EmployeeCreate(BaseModel):
    """Manager-initiated employee creation; the password is generated server-side."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    position: str | None = None
    department: str | None = None
    salary: float | None = Field(default=None, ge=0)


class EmployeeSummary(BaseModel):
    id: int
    employee_id: str
    name: str
    email: str
    position: str
    department: str
    status: str
    leaves_left: int
    salary: float

    model_config = ConfigDict(from_attributes=True)


class RosterStats(BaseModel):
    total_employees: int
    pending_leaves: int


class EmployeeUpdate(BaseModel):
    """Manager edit of an employee; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    position: str | None = None
    department: str | None = None
    salary: float | None = Field(default=None, ge=0)
    leaves_left: int | None = Field(default=None, ge=0)
    status: AccountStatus | None = None
    phone: str | None = None
    address: str | None = None
    joining_date: str | None = None

    model_config = ConfigDict(extra="forbid")
