from ems.db.models.attendance import AttendanceRecord
from ems.db.models.leave import LeaveRequest
from ems.db.models.task import Task
from ems.db.models.user import User

__all__ = ["AttendanceRecord", "LeaveRequest", "Task", "User"]
