from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from .. import models


def create_notification(
    db: Session,
    user_id: int,
    type: models.NotificationType,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> models.Notification:
    db_obj = models.Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        action_url=action_url,
        data=data,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_notifications_for_user(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int | None = None,
    unread_only: bool = False,
) -> List[models.Notification]:
    """Return notifications newest first with optional pagination."""
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        query = query.filter(models.Notification.is_read == False)  # noqa: E712
    query = query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_notification(db: Session, notification_id: int) -> models.Notification | None:
    return (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id)
        .first()
    )


def count_unread(db: Session, user_id: int) -> int:
    return (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read == False,  # noqa: E712
        )
        .count()
    )


def mark_as_read(
    db: Session, db_notification: models.Notification
) -> models.Notification:
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification


def mark_all_read(db: Session, user_id: int) -> int:
    """Mark all notifications for a user as read.

    Returns the number of notifications updated.
    """
    updated = (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read == False,  # noqa: E712
        )
        .update({"is_read": True}, synchronize_session="fetch")
    )
    db.commit()
    return int(updated)
