"""Leave request endpoints for employees and their managers."""

from fastapi import APIRouter, Depends, status

from ems.api import deps
from ems.db.models.leave import LeaveRequest
from ems.db.models.user import User
from ems.schemas.leave import LeaveCreate, LeaveDecision, LeaveResponse, LeaveStats
from ems.services.leaves import LeaveService

router = APIRouter(prefix="/api/leaves", tags=["leaves"])


@router.post("", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
async def create_leave(
    payload: LeaveCreate,
    user: User = Depends(deps.get_current_user),
    service: LeaveService = Depends(deps.get_leave_service),
) -> LeaveRequest:
    return await service.create(user, payload)


@router.get("/mine", response_model=list[LeaveResponse])
async def my_leaves(
    user: User = Depends(deps.get_current_user),
    service: LeaveService = Depends(deps.get_leave_service),
) -> list[LeaveRequest]:
    return await service.list_for_user(user)


@router.get("/stats", response_model=LeaveStats)
async def leave_stats(
    user: User = Depends(deps.get_current_user),
    service: LeaveService = Depends(deps.get_leave_service),
) -> LeaveStats:
    return LeaveStats(**await service.stats(user))


@router.get("", response_model=list[LeaveResponse])
async def team_leaves(
    manager: User = Depends(deps.require_manager),
    service: LeaveService = Depends(deps.get_leave_service),
) -> list[LeaveRequest]:
    return await service.list_for_manager(manager)


@router.put("/{leave_id}", response_model=LeaveResponse)
async def decide_leave(
    leave_id: int,
    payload: LeaveDecision,
    manager: User = Depends(deps.require_manager),
    service: LeaveService = Depends(deps.get_leave_service),
) -> LeaveRequest:
    """Approve or reject a pending request; approval deducts from the employee's balance."""

    return await service.decide(manager, leave_id, payload.status)
