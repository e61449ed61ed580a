from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.pagination import Page
from app.core.serialization import iso
from app.models import SchoolClass, TeacherClass


logger = logging.getLogger(__name__)


def serialize_class(row: SchoolClass) -> dict:
    return {
        'id': row.id,
        'name': row.name,
        'section': row.section,
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
        'deleted_at': iso(row.deleted_at),
    }


def get_class(db: Session, class_id: int) -> SchoolClass:
    row = db.get(SchoolClass, int(class_id))
    if not row:
        raise AppError('Class not found', 404)
    return row


def create_class(db: Session, *, name: str | None, created_by: int, section: str | None = None) -> SchoolClass:
    name = (name or '').strip()
    if not name:
        raise AppError('Class name is required', 400)
    row = SchoolClass(name=name, section=(section or '').strip() or None, created_by=created_by)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('class_created class_id=%s created_by=%s', row.id, created_by)
    return row


def list_classes(db: Session, page: Page, *, created_by: int | None = None) -> tuple[list[SchoolClass], int]:
    query = db.query(SchoolClass).filter(SchoolClass.deleted_at.is_(None))
    if created_by is not None:
        query = query.filter(SchoolClass.created_by == created_by)
    total = query.count()
    rows = (
        query.order_by(SchoolClass.created_at.desc(), SchoolClass.id.desc())
        .offset(page.offset)
        .limit(page.limit)
        .all()
    )
    return rows, total


def delete_class(db: Session, class_id: int) -> None:
    row = get_class(db, class_id)
    db.delete(row)
    db.commit()
    logger.info('class_deleted class_id=%s', class_id)


def assigned_class_ids(db: Session, teacher_id: int) -> list[int]:
    return [
        class_id
        for (class_id,) in db.query(TeacherClass.class_id)
        .filter(TeacherClass.teacher_id == int(teacher_id))
        .order_by(TeacherClass.class_id.asc())
        .all()
    ]


def teacher_class_ids(db: Session, teacher_id: int) -> list[int]:
    """Classes a teacher works with: assignments first, else classes they created."""
    class_ids = assigned_class_ids(db, teacher_id)
    if class_ids:
        return class_ids
    return [
        class_id
        for (class_id,) in db.query(SchoolClass.id)
        .filter(SchoolClass.created_by == int(teacher_id), SchoolClass.deleted_at.is_(None))
        .order_by(SchoolClass.id.asc())
        .all()
    ]


def get_teacher_classes(db: Session, teacher_id: int) -> list[dict]:
    class_ids = assigned_class_ids(db, teacher_id)
    if not class_ids:
        return []
    rows = db.query(SchoolClass).filter(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.name.asc()).all()
    return [{'id': row.id, 'name': row.name} for row in rows]
