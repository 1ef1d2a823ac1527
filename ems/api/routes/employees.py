"""Manager-only roster endpoints."""

from fastapi import APIRouter, Depends, status

from ems.api import deps
from ems.db.models.user import User
from ems.schemas.common import Message
from ems.schemas.employee import EmployeeCreate, EmployeeSummary, EmployeeUpdate, RosterStats
from ems.services.employees import EmployeeService

router = APIRouter(prefix="/api/employees", tags=["employees"])


@router.get("", response_model=list[EmployeeSummary])
async def list_employees(
    manager: User = Depends(deps.require_manager),
    service: EmployeeService = Depends(deps.get_employee_service),
) -> list[User]:
    return await service.list_employees(manager)


@router.post("", response_model=EmployeeSummary, status_code=status.HTTP_201_CREATED)
async def add_employee(
    payload: EmployeeCreate,
    manager: User = Depends(deps.require_manager),
    service: EmployeeService = Depends(deps.get_employee_service),
) -> User:
    """Create an employee under the calling manager; credentials go out by email only."""

    return await service.add_employee(manager, payload)


@router.get("/stats", response_model=RosterStats)
async def roster_stats(
    manager: User = Depends(deps.require_manager),
    service: EmployeeService = Depends(deps.get_employee_service),
) -> RosterStats:
    return RosterStats(**await service.stats(manager))


@router.put("/{employee_id}", response_model=EmployeeSummary)
async def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    manager: User = Depends(deps.require_manager),
    service: EmployeeService = Depends(deps.get_employee_service),
) -> User:
    """Edit one of the caller's employees, including terminating the account."""

    return await service.update_employee(manager, employee_id, payload)


@router.delete("/{employee_id}", response_model=Message)
async def delete_employee(
    employee_id: int,
    manager: User = Depends(deps.require_manager),
    service: EmployeeService = Depends(deps.get_employee_service),
) -> Message:
    await service.delete_employee(manager, employee_id)
    return Message(message="Employee deleted successfully.")
