from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.serialization import iso
from app.models import AuthUser, Enrollment, Notification, Student


logger = logging.getLogger(__name__)

MAX_FEED_ITEMS = 50


def serialize_notification(row: Notification) -> dict:
    return {
        'id': row.id,
        'user_id': row.user_id,
        'title': row.title,
        'message': row.message,
        'type': row.type,
        'is_read': bool(row.is_read),
        'link': row.link,
        'created_at': iso(row.created_at),
    }


def create_notification(
    db: Session,
    *,
    user_id: int | None,
    title: str | None,
    message: str = '',
    notification_type: str = 'info',
    link: str | None = None,
) -> Notification:
    if not user_id:
        raise AppError('userId is required', 400)
    if not db.get(AuthUser, int(user_id)):
        raise AppError('User not found', 404)
    if not (title or '').strip():
        raise AppError('title is required', 400)
    row = Notification(
        user_id=int(user_id),
        title=title.strip(),
        message=message or '',
        type=notification_type or 'info',
        link=link,
        is_read=False,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_user_notifications(db: Session, user_id: int, *, limit: int = MAX_FEED_ITEMS) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == int(user_id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def mark_notification_read(db: Session, notification_id: int, user_id: int) -> Notification:
    row = (
        db.query(Notification)
        .filter(Notification.id == int(notification_id), Notification.user_id == int(user_id))
        .first()
    )
    if not row:
        raise AppError('Notification not found', 404)
    row.is_read = True
    db.commit()
    db.refresh(row)
    return row


def user_ids_for_students(db: Session, student_ids: Iterable[int]) -> dict[int, int]:
    """Map roster student ids to login user ids by case-insensitive email."""
    ids = {int(sid) for sid in student_ids if sid}
    if not ids:
        return {}
    students = db.query(Student.id, Student.email).filter(Student.id.in_(ids)).all()
    emails = {str(email or '').strip().lower(): sid for sid, email in students if email}
    if not emails:
        return {}
    users = db.query(AuthUser.id, AuthUser.email).filter(func.lower(AuthUser.email).in_(list(emails))).all()
    mapping: dict[int, int] = {}
    for user_id, email in users:
        student_id = emails.get(str(email or '').strip().lower())
        if student_id is not None:
            mapping[student_id] = user_id
    return mapping


def _insert_many(db: Session, user_ids: Iterable[int], *, title: str, message: str, notification_type: str, link: str | None) -> int:
    rows = [
        Notification(user_id=uid, title=title, message=message, type=notification_type, link=link, is_read=False)
        for uid in dict.fromkeys(user_ids)
    ]
    if not rows:
        return 0
    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('notification_insert_failed type=%s count=%s', notification_type, len(rows))
        return 0
    logger.info('notifications_sent type=%s count=%s', notification_type, len(rows))
    return len(rows)


def notify_user(
    db: Session,
    user_id: int | None,
    *,
    title: str,
    message: str,
    notification_type: str = 'info',
    link: str | None = None,
) -> int:
    if not user_id:
        return 0
    return _insert_many(db, [int(user_id)], title=title, message=message, notification_type=notification_type, link=link)


def notify_students(
    db: Session,
    student_ids: Iterable[int],
    *,
    title: str,
    message: str,
    notification_type: str = 'info',
    link: str | None = None,
) -> int:
    mapping = user_ids_for_students(db, student_ids)
    if not mapping:
        logger.info('notification_skipped reason=no_linked_users type=%s', notification_type)
        return 0
    return _insert_many(
        db,
        mapping.values(),
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
    )


def notify_class(
    db: Session,
    class_id: int,
    *,
    title: str,
    message: str,
    notification_type: str = 'info',
    link: str | None = None,
) -> int:
    student_ids = [sid for (sid,) in db.query(Enrollment.student_id).filter(Enrollment.class_id == int(class_id)).all()]
    if not student_ids:
        logger.info('notification_skipped reason=no_enrollments class_id=%s type=%s', class_id, notification_type)
        return 0
    return notify_students(
        db,
        student_ids,
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
    )
