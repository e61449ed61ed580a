from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.serialization import iso
from app.models import Exam, Subject
from app.services.class_service import get_class


logger = logging.getLogger(__name__)


def serialize_subject(row: Subject) -> dict:
    return {'id': row.id, 'class_id': row.class_id, 'name': row.name, 'created_at': iso(row.created_at)}


def serialize_exam(row: Exam) -> dict:
    return {
        'id': row.id,
        'class_id': row.class_id,
        'name': row.name,
        'max_marks': row.max_marks,
        'exam_date': iso(row.exam_date),
        'created_at': iso(row.created_at),
    }


def get_subject(db: Session, subject_id: int) -> Subject:
    row = db.get(Subject, int(subject_id))
    if not row:
        raise AppError('Subject not found', 404)
    return row


def get_exam(db: Session, exam_id: int) -> Exam:
    row = db.get(Exam, int(exam_id))
    if not row:
        raise AppError('Exam not found', 404)
    return row


def create_subject(db: Session, *, class_id: int, name: str | None) -> Subject:
    name = (name or '').strip()
    if not name:
        raise AppError('name is required', 400)
    get_class(db, class_id)
    row = Subject(class_id=int(class_id), name=name)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('subject_created subject_id=%s class_id=%s', row.id, class_id)
    return row


def list_subjects(db: Session, class_id: int) -> list[Subject]:
    return db.query(Subject).filter(Subject.class_id == int(class_id)).order_by(Subject.name.asc()).all()


def create_exam(
    db: Session,
    *,
    class_id: int,
    name: str | None,
    max_marks,
    exam_date: date | None = None,
) -> Exam:
    name = (name or '').strip()
    if not name:
        raise AppError('name is required', 400)
    if isinstance(max_marks, bool) or not isinstance(max_marks, (int, float)) or max_marks <= 0:
        raise AppError('maxMarks must be a positive number', 400)
    get_class(db, class_id)
    row = Exam(class_id=int(class_id), name=name, max_marks=float(max_marks), exam_date=exam_date)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('exam_created exam_id=%s class_id=%s max_marks=%s', row.id, class_id, row.max_marks)
    return row


def list_exams(db: Session, class_id: int) -> list[Exam]:
    return (
        db.query(Exam)
        .filter(Exam.class_id == int(class_id))
        .order_by(Exam.exam_date.desc(), Exam.created_at.desc())
        .all()
    )
