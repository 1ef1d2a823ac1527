from enum import Enum


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"


class OTPPurpose(str, Enum):
    """Flow a one-time code was issued for."""

    SIGNUP = "signup"
    PASSWORD_RESET = "password_reset"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"
