from fastapi import APIRouter, HTTPException, status, Query
from tortoise.exceptions import DoesNotExist
from uuid import UUID

from app.schemas.notification import NotificationListResponse
from app.services.communication.notification_service import NotificationService

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def get_notifications(
    user_id: UUID = Query(...),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False)
):
    """Get a user's notifications"""
    notifications, total, unread_count = await NotificationService.get_user_notifications(
        user_id=user_id,
        page=page,
        page_size=page_size,
        unread_only=unread_only
    )

    return NotificationListResponse(
        total=total,
        unread_count=unread_count,
        page=page,
        page_size=page_size,
        notifications=notifications
    )


@router.put("/{notification_id}/read")
async def mark_notification_as_read(notification_id: UUID, user_id: UUID = Query(...)):
    """Mark a notification as read"""
    try:
        await NotificationService.mark_as_read(notification_id, user_id)
    except DoesNotExist:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return {"message": "Notification marked as read"}


@router.put("/read-all")
async def mark_all_as_read(user_id: UUID = Query(...)):
    """Mark all notifications as read"""
    count = await NotificationService.mark_all_as_read(user_id)
    return {"message": f"{count} notifications marked as read"}
