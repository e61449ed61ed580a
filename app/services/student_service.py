from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.serialization import iso
from app.models import Student


logger = logging.getLogger(__name__)


def serialize_student(row: Student) -> dict:
    return {
        'id': row.id,
        'name': row.name,
        'email': row.email,
        'roll_no': row.roll_no,
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
    }


def _email_taken(db: Session, email: str, *, exclude_id: int | None = None) -> bool:
    query = db.query(Student.id).filter(func.lower(Student.email) == email.strip().lower())
    if exclude_id is not None:
        query = query.filter(Student.id != exclude_id)
    return query.first() is not None


def get_student(db: Session, student_id: int) -> Student:
    row = db.get(Student, int(student_id))
    if not row:
        raise AppError('Student not found', 404)
    return row


def find_student_by_email(db: Session, email: str | None) -> Student | None:
    clean = (email or '').strip().lower()
    if not clean:
        return None
    return db.query(Student).filter(func.lower(Student.email) == clean).first()


def create_student(db: Session, *, name: str | None, email: str | None, created_by: int, roll_no: str | None = None) -> Student:
    name = (name or '').strip()
    email = (email or '').strip()
    if not name or not email:
        raise AppError('Name and email are required', 400)
    if _email_taken(db, email):
        raise AppError('A student with this email already exists', 409)
    row = Student(name=name, email=email, roll_no=(roll_no or '').strip() or None, created_by=created_by)
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('A student with this email already exists', 409) from exc
    db.refresh(row)
    logger.info('student_created student_id=%s created_by=%s', row.id, created_by)
    return row


def list_students(db: Session, *, created_by: int | None = None) -> list[Student]:
    query = db.query(Student)
    if created_by is not None:
        query = query.filter(Student.created_by == created_by)
    return query.order_by(Student.created_at.desc(), Student.id.desc()).all()


def update_student(db: Session, student_id: int, *, name: str | None = None, email: str | None = None) -> Student:
    name = (name or '').strip()
    email = (email or '').strip()
    if not name and not email:
        raise AppError('At least one field (name or email) is required', 400)
    row = get_student(db, student_id)
    if email and _email_taken(db, email, exclude_id=row.id):
        raise AppError('A student with this email already exists', 409)
    if name:
        row.name = name
    if email:
        row.email = email
    db.commit()
    db.refresh(row)
    logger.info('student_updated student_id=%s', row.id)
    return row


def delete_student(db: Session, student_id: int) -> None:
    row = get_student(db, student_id)
    db.delete(row)
    db.commit()
    logger.info('student_deleted student_id=%s', student_id)
