from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status

from freelancehub.dependencies import get_current_client, get_current_user, get_milestone_engine
from freelancehub.models import User
from freelancehub.schemas.common import MAX_RECORD_ID, ApiResponse
from freelancehub.schemas.milestone import MilestoneCreate, MilestoneRead
from freelancehub.services.milestones import MilestoneEngine

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("/task/{task_id}", response_model=ApiResponse[list[MilestoneRead]])
def list_task_milestones(
    task_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_user),
    engine: MilestoneEngine = Depends(get_milestone_engine),
) -> ApiResponse[list[MilestoneRead]]:
    del current_user
    milestones = engine.list_task_milestones(task_id)
    return ApiResponse(data=[MilestoneRead.model_validate(milestone) for milestone in milestones])


@router.post("/", response_model=ApiResponse[MilestoneRead], status_code=status.HTTP_201_CREATED)
def create_milestone(
    payload: MilestoneCreate,
    current_user: User = Depends(get_current_client),
    engine: MilestoneEngine = Depends(get_milestone_engine),
) -> ApiResponse[MilestoneRead]:
    milestone = engine.create_milestone(
        current_user,
        task_id=payload.task_id,
        title=payload.title,
        description=payload.description,
        amount=payload.amount,
        due_date=payload.due_date,
    )
    return ApiResponse(message="Milestone created successfully", data=MilestoneRead.model_validate(milestone))


@router.patch("/{milestone_id}/complete", response_model=ApiResponse[MilestoneRead])
def request_completion(
    milestone_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_user),
    engine: MilestoneEngine = Depends(get_milestone_engine),
) -> ApiResponse[MilestoneRead]:
    milestone = engine.request_completion(current_user, milestone_id)
    return ApiResponse(message="Milestone marked as completed", data=MilestoneRead.model_validate(milestone))


@router.patch("/{milestone_id}/release", response_model=ApiResponse[MilestoneRead])
def release_payment(
    milestone_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_user),
    engine: MilestoneEngine = Depends(get_milestone_engine),
) -> ApiResponse[MilestoneRead]:
    milestone = engine.release_payment(current_user, milestone_id)
    return ApiResponse(message="Payment released", data=MilestoneRead.model_validate(milestone))
