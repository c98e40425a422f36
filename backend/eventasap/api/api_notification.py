from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List
import logging

from .. import models, schemas
from ..crud import crud_notification
from .dependencies import get_db, get_current_user
from ..utils import error_response

router = APIRouter(tags=["notifications"])

logger = logging.getLogger(__name__)


@router.get("/notifications", response_model=List[schemas.NotificationResponse])
def read_my_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Retrieve the current user's notifications, newest first."""
    return crud_notification.get_notifications_for_user(
        db, current_user.id, skip=skip, limit=limit, unread_only=unread_only
    )


@router.get("/notifications/unread-count", response_model=schemas.UnreadCountResponse)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Unread badge count; polled by the notification bell."""
    return {"unread": crud_notification.count_unread(db, current_user.id)}


@router.put("/notifications/read-all", response_model=schemas.MarkAllReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark all notifications as read for the current user."""
    updated = crud_notification.mark_all_read(db, current_user.id)
    return {"updated": updated}


@router.put(
    "/notifications/{notification_id}/read",
    response_model=schemas.NotificationResponse,
)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark a notification as read."""
    db_notif = crud_notification.get_notification(db, notification_id)
    if not db_notif or db_notif.user_id != current_user.id:
        raise error_response(
            "Notification not found",
            {"notification_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
        )
    return crud_notification.mark_as_read(db, db_notif)
