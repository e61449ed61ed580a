from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.router_guard import is_admin
from app.core.serialization import iso, parse_datetime
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import Assignment, AssignmentSubmission, Enrollment, Student, SubmissionStatus
from app.services import notification_service, storage_service
from app.services.class_service import get_class
from app.services.enrollment_service import is_enrolled


logger = logging.getLogger(__name__)


def serialize_assignment(row: Assignment, *, with_class: bool = False) -> dict:
    payload = {
        'id': row.id,
        'title': row.title,
        'description': row.description,
        'class_id': row.class_id,
        'deadline': iso(row.deadline),
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
    }
    if with_class:
        payload['classes'] = {'name': row.school_class.name} if row.school_class else None
    return payload


def serialize_submission(row: AssignmentSubmission, *, with_student: bool = False) -> dict:
    payload = {
        'id': row.id,
        'assignment_id': row.assignment_id,
        'student_id': row.student_id,
        'file_url': row.file_url,
        'status': row.status,
        'marks': row.marks,
        'feedback': row.feedback,
        'submitted_at': iso(row.submitted_at),
    }
    if with_student:
        payload['students'] = {'name': row.student.name, 'email': row.student.email} if row.student else None
    return payload


def get_assignment(db: Session, assignment_id: int) -> Assignment:
    row = db.get(Assignment, int(assignment_id))
    if not row:
        raise AppError('Assignment not found', 404)
    return row


def create_assignment(
    db: Session,
    user: dict,
    *,
    title: str | None,
    class_id: int | None,
    deadline,
    description: str | None = None,
) -> Assignment:
    if not (title or '').strip() or not class_id or not deadline:
        raise AppError('Title, classId, and deadline are required', 400)
    get_class(db, class_id)
    row = Assignment(
        title=title.strip(),
        description=description,
        class_id=int(class_id),
        deadline=parse_datetime(deadline, 'deadline'),
        created_by=int(user['user_id']),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('assignment_created assignment_id=%s class_id=%s', row.id, row.class_id)

    notification_service.notify_class(
        db,
        row.class_id,
        title='New Assignment',
        message=f'Task: {row.title}',
        notification_type='assignment',
        link='/student/assignments',
    )
    return row


def list_teacher_assignments(db: Session, user: dict) -> list[Assignment]:
    return (
        db.query(Assignment)
        .options(joinedload(Assignment.school_class))
        .filter(Assignment.created_by == int(user['user_id']))
        .order_by(Assignment.created_at.desc(), Assignment.id.desc())
        .all()
    )


def list_submissions(db: Session, user: dict, assignment_id: int) -> list[AssignmentSubmission]:
    assignment = get_assignment(db, assignment_id)
    if not is_admin(user) and assignment.created_by != int(user['user_id']):
        raise AppError('You can only view submissions for your own assignments', 403)
    return (
        db.query(AssignmentSubmission)
        .options(joinedload(AssignmentSubmission.student))
        .filter(AssignmentSubmission.assignment_id == assignment.id)
        .order_by(AssignmentSubmission.submitted_at.desc(), AssignmentSubmission.id.desc())
        .all()
    )


def list_student_assignments(db: Session, student: Student) -> list[dict]:
    class_ids = [cid for (cid,) in db.query(Enrollment.class_id).filter(Enrollment.student_id == student.id).all()]
    if not class_ids:
        return []
    assignments = (
        db.query(Assignment)
        .options(joinedload(Assignment.school_class))
        .filter(Assignment.class_id.in_(class_ids))
        .order_by(Assignment.deadline.asc(), Assignment.id.asc())
        .all()
    )
    own = {
        row.assignment_id: row
        for row in db.query(AssignmentSubmission)
        .filter(
            AssignmentSubmission.student_id == student.id,
            AssignmentSubmission.assignment_id.in_([row.id for row in assignments] or [0]),
        )
        .all()
    }
    items = []
    for row in assignments:
        item = serialize_assignment(row, with_class=True)
        submission = own.get(row.id)
        item['submission'] = (
            {
                'id': submission.id,
                'submitted_at': iso(submission.submitted_at),
                'status': submission.status,
                'student_id': submission.student_id,
            }
            if submission
            else None
        )
        items.append(item)
    return items


def submit_assignment(
    db: Session,
    student: Student,
    assignment_id: int,
    *,
    filename: str | None,
    content: bytes | None,
    content_type: str | None,
    time_provider: TimeProvider = default_time_provider,
) -> AssignmentSubmission:
    """Store the uploaded file and record (or replace) the student's submission."""
    if content is None:
        raise AppError('File is required for submission', 400)
    assignment = get_assignment(db, assignment_id)
    if not is_enrolled(db, student.id, assignment.class_id):
        raise AppError('Assignment not found or access denied', 404)
    storage_service.validate_upload(content, content_type)

    now = time_provider.utcnow()
    status = SubmissionStatus.LATE.value if now > assignment.deadline else SubmissionStatus.ON_TIME.value
    stamp = int(time_provider.now().timestamp() * 1000)
    key = f'assignments/{assignment.id}/{student.id}_{stamp}_{storage_service.sanitize_filename(filename)}'
    file_url = storage_service.save_file(storage_service.ASSETS_BUCKET, key, content, upsert=True)

    row = (
        db.query(AssignmentSubmission)
        .filter(AssignmentSubmission.assignment_id == assignment.id, AssignmentSubmission.student_id == student.id)
        .first()
    )
    if row is None:
        row = AssignmentSubmission(assignment_id=assignment.id, student_id=student.id)
        db.add(row)
    row.file_url = file_url
    row.status = status
    row.submitted_at = now
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('Submission already recorded', 409) from exc
    db.refresh(row)
    logger.info('assignment_submitted assignment_id=%s student_id=%s status=%s', assignment.id, student.id, status)

    notification_service.notify_user(
        db,
        assignment.created_by,
        title='New Submission',
        message=f'Student submitted assignment: {assignment.title}',
        notification_type='assignment',
    )
    return row
