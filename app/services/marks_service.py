from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.router_guard import is_teacher_in_class
from app.core.serialization import iso, number
from app.models import Exam, Mark, Role
from app.services.auth_service import get_user_role
from app.services.class_service import get_class
from app.services.curriculum_service import get_exam, get_subject
from app.services.student_service import find_student_by_email, get_student


logger = logging.getLogger(__name__)


def _is_non_negative_integer(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    return False


def serialize_mark(
    row: Mark,
    *,
    with_student: bool = False,
    with_subject: bool = False,
    with_exam: bool = False,
) -> dict:
    payload = {
        'id': row.id,
        'student_id': row.student_id,
        'subject_id': row.subject_id,
        'exam_id': row.exam_id,
        'marks_obtained': number(row.marks_obtained),
        'uploaded_by': row.uploaded_by,
        'created_at': iso(row.created_at),
        'updated_at': iso(row.updated_at),
    }
    if with_student:
        student = row.student
        payload['student'] = {'id': student.id, 'name': student.name, 'email': student.email} if student else None
    if with_subject:
        subject = row.subject
        payload['subject'] = {'id': subject.id, 'name': subject.name} if subject else None
    if with_exam:
        exam = row.exam
        payload['exam'] = (
            {'id': exam.id, 'name': exam.name, 'max_marks': number(exam.max_marks)} if exam else None
        )
    return payload


def _check_max_marks(marks_obtained: float, exam: Exam) -> None:
    if marks_obtained > exam.max_marks:
        raise AppError(
            f'Marks obtained ({number(marks_obtained)}) cannot exceed max marks ({number(exam.max_marks)})',
            400,
        )


def upload_mark(
    db: Session,
    user: dict,
    *,
    student_id: int | None,
    subject_id: int | None,
    exam_id: int | None,
    marks_obtained,
) -> Mark:
    if not student_id or not subject_id or not exam_id or marks_obtained is None:
        raise AppError('student_id, subject_id, exam_id, and marks_obtained are required', 400)
    if not _is_non_negative_integer(marks_obtained):
        raise AppError('marks_obtained must be a non-negative integer', 400)

    user_id = int(user['user_id'])
    role = get_user_role(db, user_id)
    if role not in (Role.TEACHER.value, Role.ADMIN.value):
        raise AppError('Only teachers and admins can upload marks', 403)

    get_student(db, student_id)
    subject = get_subject(db, subject_id)
    exam = get_exam(db, exam_id)
    _check_max_marks(float(marks_obtained), exam)

    if role == Role.TEACHER.value and not is_teacher_in_class(db, user_id, subject.class_id):
        raise AppError('You are not authorized to upload marks for this class', 403)

    existing = (
        db.query(Mark.id)
        .filter(Mark.student_id == int(student_id), Mark.exam_id == int(exam_id), Mark.subject_id == int(subject_id))
        .first()
    )
    if existing:
        raise AppError('Mark already exists for this student-subject-exam combination', 409)

    row = Mark(
        student_id=int(student_id),
        subject_id=int(subject_id),
        exam_id=int(exam_id),
        marks_obtained=float(marks_obtained),
        uploaded_by=user_id,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('Mark already exists for this student-subject-exam combination', 409) from exc
    db.refresh(row)
    logger.info('marks_uploaded student_id=%s subject_id=%s exam_id=%s', student_id, subject_id, exam_id)
    return row


def update_mark(db: Session, user: dict, mark_id: int, *, marks_obtained) -> Mark:
    if marks_obtained is None:
        raise AppError('marks_obtained is required', 400)
    if not _is_non_negative_integer(marks_obtained):
        raise AppError('marks_obtained must be a non-negative integer', 400)

    row = db.get(Mark, int(mark_id))
    if not row:
        raise AppError('Mark not found', 404)

    user_id = int(user['user_id'])
    role = get_user_role(db, user_id)
    if row.uploaded_by != user_id and role != Role.ADMIN.value:
        raise AppError('You are not authorized to update this mark record', 403)

    _check_max_marks(float(marks_obtained), row.exam)
    row.marks_obtained = float(marks_obtained)
    db.commit()
    db.refresh(row)
    logger.info('marks_updated mark_id=%s updated_by=%s', row.id, user_id)
    return row


def list_my_marks(db: Session, user: dict) -> list[Mark]:
    role = get_user_role(db, int(user['user_id']))
    if role != Role.STUDENT.value:
        raise AppError('Only students can view their own marks', 403)
    student = find_student_by_email(db, user.get('email'))
    if not student:
        raise AppError('Student record not found', 404)
    return list_student_marks(db, student.id)


def list_student_marks(db: Session, student_id: int) -> list[Mark]:
    return (
        db.query(Mark)
        .options(joinedload(Mark.subject), joinedload(Mark.exam))
        .filter(Mark.student_id == int(student_id))
        .order_by(Mark.created_at.desc(), Mark.id.desc())
        .all()
    )


def _authorize_class_view(db: Session, user: dict, class_id: int, *, scope: str) -> None:
    user_id = int(user['user_id'])
    role = get_user_role(db, user_id)
    if role == Role.TEACHER.value:
        if not is_teacher_in_class(db, user_id, class_id):
            raise AppError(f'You are not authorized to view marks for this {scope}', 403)
    elif role != Role.ADMIN.value:
        raise AppError(f'Only teachers and admins can view {scope} marks', 403)


def list_class_marks(db: Session, user: dict, class_id: int) -> list[Mark]:
    get_class(db, class_id)
    _authorize_class_view(db, user, class_id, scope='class')
    return (
        db.query(Mark)
        .join(Exam, Mark.exam_id == Exam.id)
        .options(joinedload(Mark.student), joinedload(Mark.subject), joinedload(Mark.exam))
        .filter(Exam.class_id == int(class_id))
        .order_by(Mark.created_at.desc(), Mark.id.desc())
        .all()
    )


def list_exam_marks(db: Session, user: dict, exam_id: int) -> list[Mark]:
    exam = get_exam(db, exam_id)
    _authorize_class_view(db, user, exam.class_id, scope='exam')
    return (
        db.query(Mark)
        .options(joinedload(Mark.student), joinedload(Mark.subject))
        .filter(Mark.exam_id == exam.id)
        .order_by(Mark.student_id.asc(), Mark.id.asc())
        .all()
    )


def upsert_marks(
    db: Session,
    *,
    exam_id: int,
    subject_id: int,
    entries: list[tuple[int, float]],
    uploaded_by: int,
) -> list[Mark]:
    """Insert or overwrite one mark per (student, exam, subject)."""
    student_ids = [student_id for student_id, _ in entries]
    existing = {
        row.student_id: row
        for row in db.query(Mark)
        .filter(Mark.exam_id == int(exam_id), Mark.subject_id == int(subject_id), Mark.student_id.in_(student_ids))
        .all()
    }
    saved: list[Mark] = []
    for student_id, marks_obtained in entries:
        row = existing.get(student_id)
        if row is None:
            row = Mark(student_id=student_id, exam_id=int(exam_id), subject_id=int(subject_id))
            db.add(row)
            existing[student_id] = row
        row.marks_obtained = float(marks_obtained)
        row.uploaded_by = uploaded_by
        saved.append(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('Failed to upload marks', 400) from exc
    for row in saved:
        db.refresh(row)
    logger.info('marks_bulk_uploaded exam_id=%s subject_id=%s count=%s', exam_id, subject_id, len(saved))
    return saved
