from ems.api.routes.attendance import router as attendance_router
from ems.api.routes.auth import router as auth_router
from ems.api.routes.employees import router as employees_router
from ems.api.routes.leaves import router as leaves_router
from ems.api.routes.otp import router as otp_router
from ems.api.routes.tasks import router as tasks_router

__all__ = ["attendance_router", "auth_router", "employees_router", "leaves_router", "otp_router", "tasks_router"]
