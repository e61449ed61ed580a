from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.pagination import Page
from app.core.serialization import iso
from app.models import Enrollment
from app.services.class_service import get_class, serialize_class
from app.services.student_service import get_student, serialize_student


logger = logging.getLogger(__name__)


def serialize_enrollment(row: Enrollment, *, with_student: bool = False, with_class: bool = False) -> dict:
    payload = {
        'id': row.id,
        'student_id': row.student_id,
        'class_id': row.class_id,
        'enrolled_at': iso(row.enrolled_at),
    }
    if with_student:
        payload['students'] = serialize_student(row.student) if row.student else None
    if with_class:
        payload['classes'] = serialize_class(row.school_class) if row.school_class else None
    return payload


def is_enrolled(db: Session, student_id: int, class_id: int) -> bool:
    return (
        db.query(Enrollment.id)
        .filter(Enrollment.student_id == int(student_id), Enrollment.class_id == int(class_id))
        .first()
        is not None
    )


def create_enrollment(db: Session, *, student_id: int | None, class_id: int | None) -> Enrollment:
    if not student_id or not class_id:
        raise AppError('studentId and classId are required', 400)
    get_student(db, student_id)
    get_class(db, class_id)
    if is_enrolled(db, student_id, class_id):
        raise AppError('Student is already enrolled in this class', 409)
    row = Enrollment(student_id=int(student_id), class_id=int(class_id))
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('Student is already enrolled in this class', 409) from exc
    db.refresh(row)
    logger.info('enrollment_created student_id=%s class_id=%s', student_id, class_id)
    return row


def list_class_enrollments(db: Session, class_id: int, page: Page) -> tuple[list[Enrollment], int]:
    get_class(db, class_id)
    query = db.query(Enrollment).filter(Enrollment.class_id == int(class_id))
    total = query.count()
    rows = (
        query.options(joinedload(Enrollment.student))
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )
    return rows, total


def list_student_enrollments(db: Session, student_id: int) -> list[Enrollment]:
    get_student(db, student_id)
    return (
        db.query(Enrollment)
        .options(joinedload(Enrollment.school_class))
        .filter(Enrollment.student_id == int(student_id))
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .all()
    )


def delete_enrollment(db: Session, student_id: int, class_id: int) -> None:
    deleted = (
        db.query(Enrollment)
        .filter(Enrollment.student_id == int(student_id), Enrollment.class_id == int(class_id))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info('enrollment_deleted student_id=%s class_id=%s rows=%s', student_id, class_id, deleted)


def enrolled_student_ids(db: Session, class_ids: list[int] | int) -> list[int]:
    ids = [class_ids] if isinstance(class_ids, int) else list(class_ids)
    if not ids:
        return []
    rows = db.query(Enrollment.student_id).filter(Enrollment.class_id.in_(ids)).distinct().all()
    return [student_id for (student_id,) in rows]
