from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from freelancehub.dependencies import get_current_user, get_db
from freelancehub.models import User
from freelancehub.schemas.common import ApiResponse
from freelancehub.schemas.user import UserActivityRead, UserRead
from freelancehub.services.activity import recent_activity

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ApiResponse[UserRead])
def read_current_user(current_user: User = Depends(get_current_user)) -> ApiResponse[UserRead]:
    return ApiResponse(data=UserRead.model_validate(current_user))


@router.get("/me/history", response_model=ApiResponse[list[UserActivityRead]])
def list_my_history(
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[UserActivityRead]]:
    entries = recent_activity(db, current_user.id, limit)
    return ApiResponse(data=[UserActivityRead.model_validate(entry) for entry in entries])
