from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List

from messmate.core.exceptions import NotFoundError
from messmate.db.mongo import get_db
from messmate.schemas.notification import CountResponse, NotificationResponse
from messmate.schemas.reservation import ApiResponse
from messmate.services.notification_service import NotificationService
from messmate.utils.mapping import to_notification_response

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_notification_service(db = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("/user/{user_email}", response_model=List[NotificationResponse])
async def get_notifications_for_user(
    user_email: str,
    service: NotificationService = Depends(get_notification_service)
):
    """All notifications for a user, newest first."""
    notifications = await service.list_for_user(user_email)
    return [to_notification_response(n) for n in notifications]


@router.get("/user/{user_email}/unread", response_model=List[NotificationResponse])
async def get_unread_notifications_for_user(
    user_email: str,
    service: NotificationService = Depends(get_notification_service)
):
    notifications = await service.list_unread_for_user(user_email)
    return [to_notification_response(n) for n in notifications]


@router.get("/user/{user_email}/unread/count", response_model=CountResponse)
async def count_unread_notifications_for_user(
    user_email: str,
    service: NotificationService = Depends(get_notification_service)
):
    return CountResponse(count=await service.count_unread(user_email))


@router.put("/user/{user_email}/mark-all-read", response_model=CountResponse)
async def mark_all_notifications_as_read(
    user_email: str,
    service: NotificationService = Depends(get_notification_service)
):
    return CountResponse(count=await service.mark_all_as_read(user_email))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_as_read(
    notification_id: str,
    user_email: str = Query(..., alias="userEmail"),
    service: NotificationService = Depends(get_notification_service)
):
    """Only the recipient can mark a notification read."""
    try:
        notification = await service.mark_as_read(notification_id, user_email)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message
        )
    return to_notification_response(notification)


@router.delete("/{notification_id}", response_model=ApiResponse)
async def delete_notification(
    notification_id: str,
    user_email: str = Query(..., alias="userEmail"),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        await service.delete_notification(notification_id, user_email)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message
        )
    return ApiResponse(message="Notification deleted successfully", success=True)
