"""Notification service - brand owner inbox."""
from typing import List, Dict, Any
from sqlalchemy.orm import Session
from omahub.models import Notification
from omahub.exceptions import NotFoundError


def list_notifications(session: Session, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    """Notifications for a user, newest first."""
    query = session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def count_unread(session: Session, user_id: str) -> int:
    return session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False  # noqa: E712
    ).count()


def set_read(session: Session, user_id: str, notification_id: str, is_read: bool = True) -> Notification:
    """Mark one of the user's notifications read or unread."""
    notification = session.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if not notification:
        raise NotFoundError('Notification not found')

    notification.is_read = is_read
    session.commit()
    return notification


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        'id': notification.id,
        'brand_id': notification.brand_id,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'data': notification.data or {},
        'is_read': notification.is_read,
        'created_at': notification.created_at.isoformat() if notification.created_at else None,
    }
