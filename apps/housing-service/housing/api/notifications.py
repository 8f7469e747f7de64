"""
Notification API Endpoints

The in-app mailbox of the current user, plus superadmin announcements.
"""

from typing import Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.audit import AuditAction, log
from housing.services.notification_service import NotificationService


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=schemas.NotificationListResponse)
def get_notifications(
    status_filter: Optional[Literal['unread', 'read', 'acknowledged']] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """
    Get notifications for the current user, newest first.

    - **status_filter**: only return notifications in this state
    - **limit**: Maximum number of notifications to return (default 50)
    """
    user, current_user = user_context

    service = NotificationService(db)
    notifications = service.get_user_notifications(user.id, status=status_filter, limit=limit)

    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=service.get_unread_count(user.id),
        total_count=service.get_total_count(user.id),
    )


@router.get("/stats")
def get_notification_stats(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context

    service = NotificationService(db)
    return {
        "unread_count": service.get_unread_count(user.id),
        "total_count": service.get_total_count(user.id),
    }


@router.post("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    return {"updated": NotificationService(db).mark_all_read(user.id)}


@router.post("/announcements", response_model=schemas.AnnouncementResult)
def send_announcement(
    payload: schemas.AnnouncementCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    """Broadcast a message to every user of the chosen audience."""
    user, current_user = user_context

    sent = NotificationService(db).broadcast_announcement(
        user, payload.title, payload.message, audience=payload.audience, priority=payload.priority,
    )
    log(db, action=AuditAction.ANNOUNCEMENT_SEND, target_type="notification", actor_user_id=user.id,
        metadata={"title": payload.title, "audience": payload.audience, "sent": sent})
    return schemas.AnnouncementResult(sent=sent)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context

    if not NotificationService(db).mark_notification_read(notification_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.post("/{notification_id}/acknowledge", status_code=status.HTTP_204_NO_CONTENT)
def acknowledge_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context

    if not NotificationService(db).acknowledge_notification(notification_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context

    if not NotificationService(db).dismiss_notification(notification_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
