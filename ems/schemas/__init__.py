from ems.schemas.attendance import AttendanceMark, AttendanceMarkResult, AttendanceResponse, AttendanceSummary
from ems.schemas.auth import (
    AuthResponse,
    LoginRequest,
    PasswordResetRequest,
    ProfileUpdate,
    SignupRequest,
    Token,
    UserResponse,
)
from ems.schemas.common import ErrorDetail, Message
from ems.schemas.employee import EmployeeCreate, EmployeeSummary, EmployeeUpdate, RosterStats
from ems.schemas.leave import LeaveCreate, LeaveDecision, LeaveResponse, LeaveStats
from ems.schemas.otp import OTPCancel, OTPRequest, OTPVerify, OTPVerifyResponse
from ems.schemas.task import TaskCreate, TaskResponse, TaskStats, TaskStatusUpdate

__all__ = [
    "AttendanceMark",
    "AttendanceMarkResult",
    "AttendanceResponse",
    "AttendanceSummary",
    "AuthResponse",
    "EmployeeCreate",
    "EmployeeSummary",
    "EmployeeUpdate",
    "ErrorDetail",
    "LeaveCreate",
    "LeaveDecision",
    "LeaveResponse",
    "LeaveStats",
    "LoginRequest",
    "Message",
    "OTPCancel",
    "OTPRequest",
    "OTPVerify",
    "OTPVerifyResponse",
    "PasswordResetRequest",
    "ProfileUpdate",
    "RosterStats",
    "SignupRequest",
    "TaskCreate",
    "TaskResponse",
    "TaskStats",
    "TaskStatusUpdate",
    "Token",
    "UserResponse",
]
