from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from freelancehub.dependencies import get_current_user, get_notification_dispatcher
from freelancehub.models import User
from freelancehub.schemas.common import MAX_RECORD_ID, ApiResponse
from freelancehub.schemas.notification import NotificationRead
from freelancehub.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=ApiResponse[list[NotificationRead]])
def list_notifications(
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ApiResponse[list[NotificationRead]]:
    notifications = dispatcher.list_for_user(current_user.id)
    return ApiResponse(data=[NotificationRead.model_validate(item) for item in notifications])


@router.patch("/read-all", response_model=ApiResponse[None])
def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ApiResponse[None]:
    dispatcher.mark_all_read(current_user.id)
    return ApiResponse(message="All notifications marked as read")


@router.patch("/{notification_id}/read", response_model=ApiResponse[None])
def mark_notification_read(
    notification_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ApiResponse[None]:
    dispatcher.mark_read(current_user.id, notification_id)
    return ApiResponse(message="Notification marked as read")
