from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.router_guard import is_admin
from app.core.serialization import iso, parse_datetime
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import Enrollment, McqQuestion, McqSubmission, McqTest, Student
from app.services import notification_service
from app.services.class_service import get_class
from app.services.enrollment_service import is_enrolled


logger = logging.getLogger(__name__)


def serialize_test(row: McqTest, *, with_class: bool = False) -> dict:
    payload = {
        'id': row.id,
        'title': row.title,
        'class_id': row.class_id,
        'duration': row.duration,
        'start_date': iso(row.start_date),
        'end_date': iso(row.end_date),
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
    }
    if with_class:
        payload['classes'] = {'name': row.school_class.name} if row.school_class else None
    return payload


def serialize_question(row: McqQuestion, *, with_answer: bool = True) -> dict:
    payload = {'id': row.id, 'test_id': row.test_id, 'question': row.question, 'options': list(row.options or [])}
    if with_answer:
        payload['correct_answer'] = row.correct_answer
    return payload


def serialize_submission(row: McqSubmission, *, with_student: bool = False) -> dict:
    payload = {
        'id': row.id,
        'test_id': row.test_id,
        'student_id': row.student_id,
        'answers': row.answers,
        'score': row.score,
        'submitted_at': iso(row.submitted_at),
    }
    if with_student:
        payload['students'] = {'name': row.student.name, 'email': row.student.email} if row.student else None
    return payload


def get_test(db: Session, test_id: int) -> McqTest:
    row = db.get(McqTest, int(test_id))
    if not row:
        raise AppError('Test not found', 404)
    return row


def get_student_test(db: Session, student: Student, test_id: int) -> McqTest:
    """A test from one of the student's enrolled classes."""
    row = get_test(db, test_id)
    if not is_enrolled(db, student.id, row.class_id):
        raise AppError('Test not found or access denied', 404)
    return row


def _positive_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 and parsed == float(value) else None


def create_test(db: Session, user: dict, payload: dict) -> McqTest:
    title = str(payload.get('title') or '').strip()
    class_id = payload.get('classId')
    duration = payload.get('duration')
    start_raw = payload.get('startDate')
    end_raw = payload.get('endDate')
    if not title or not class_id or not duration or not start_raw or not end_raw:
        raise AppError('All fields are required', 400)
    minutes = _positive_int(duration)
    if minutes is None:
        raise AppError('duration must be a positive number of minutes', 400)
    start_date = parse_datetime(start_raw, 'startDate')
    end_date = parse_datetime(end_raw, 'endDate')
    if end_date <= start_date:
        raise AppError('endDate must be after startDate', 400)
    get_class(db, class_id)

    row = McqTest(
        title=title,
        class_id=int(class_id),
        duration=minutes,
        start_date=start_date,
        end_date=end_date,
        created_by=int(user['user_id']),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('mcq_test_created test_id=%s class_id=%s', row.id, row.class_id)

    notification_service.notify_class(
        db,
        row.class_id,
        title='New MCQ Test',
        message=f'A new test "{row.title}" has been scheduled for your class.',
        notification_type='test',
        link='/student/tests',
    )
    return row


def add_questions(db: Session, user: dict, test_id: int, questions) -> list[McqQuestion]:
    if not isinstance(questions, list) or not questions:
        raise AppError('Questions array is required', 400)
    test = db.get(McqTest, int(test_id))
    if not test or test.created_by != int(user['user_id']):
        raise AppError('Not authorized to modify this test', 403)

    rows = []
    for entry in questions:
        if not isinstance(entry, dict):
            raise AppError('Each question needs question, options and correct_answer', 400)
        text = str(entry.get('question') or '').strip()
        options = entry.get('options')
        correct = entry.get('correct_answer')
        if not text or not isinstance(options, list) or len(options) < 2 or correct in (None, ''):
            raise AppError('Each question needs question, options and correct_answer', 400)
        if correct not in options:
            raise AppError('correct_answer must be one of the options', 400)
        rows.append(McqQuestion(test_id=test.id, question=text, options=list(options), correct_answer=str(correct)))
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    logger.info('mcq_questions_added test_id=%s count=%s', test.id, len(rows))

    notification_service.notify_class(
        db,
        test.class_id,
        title='New Test Published',
        message=f'{test.title} is now available.',
        notification_type='test',
        link='/student/tests',
    )
    return rows


def list_results(db: Session, user: dict, test_id: int) -> list[McqSubmission]:
    test = get_test(db, test_id)
    if not is_admin(user) and test.created_by != int(user['user_id']):
        raise AppError('You can only view results for your own tests', 403)
    return (
        db.query(McqSubmission)
        .options(joinedload(McqSubmission.student))
        .filter(McqSubmission.test_id == int(test_id))
        .order_by(McqSubmission.score.desc(), McqSubmission.submitted_at.asc(), McqSubmission.id.asc())
        .all()
    )


def list_teacher_tests(db: Session, user: dict) -> list[McqTest]:
    return (
        db.query(McqTest)
        .options(joinedload(McqTest.school_class))
        .filter(McqTest.created_by == int(user['user_id']))
        .order_by(McqTest.created_at.desc(), McqTest.id.desc())
        .all()
    )


def list_student_tests(db: Session, student: Student) -> list[dict]:
    class_ids = [cid for (cid,) in db.query(Enrollment.class_id).filter(Enrollment.student_id == student.id).all()]
    if not class_ids:
        return []
    tests = (
        db.query(McqTest)
        .options(joinedload(McqTest.school_class))
        .filter(McqTest.class_id.in_(class_ids))
        .order_by(McqTest.start_date.asc(), McqTest.id.asc())
        .all()
    )
    own = {
        row.test_id: row
        for row in db.query(McqSubmission)
        .filter(McqSubmission.student_id == student.id, McqSubmission.test_id.in_([t.id for t in tests] or [0]))
        .all()
    }
    items = []
    for test in tests:
        item = serialize_test(test, with_class=True)
        submission = own.get(test.id)
        item['submission'] = (
            {
                'id': submission.id,
                'score': submission.score,
                'submitted_at': iso(submission.submitted_at),
                'student_id': submission.student_id,
            }
            if submission
            else None
        )
        items.append(item)
    return items


def _has_submitted(db: Session, test_id: int, student_id: int) -> bool:
    return (
        db.query(McqSubmission.id)
        .filter(McqSubmission.test_id == test_id, McqSubmission.student_id == student_id)
        .first()
        is not None
    )


def _questions(db: Session, test_id: int) -> list[McqQuestion]:
    return db.query(McqQuestion).filter(McqQuestion.test_id == test_id).order_by(McqQuestion.id.asc()).all()


def open_test(
    db: Session,
    student: Student,
    test_id: int,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    """Test details and questions for taking it, with the answers withheld."""
    test = get_student_test(db, student, test_id)
    now = time_provider.utcnow()
    if now < test.start_date:
        raise AppError('Test has not started yet', 400)
    if now > test.end_date:
        raise AppError('Test has ended', 400)
    if _has_submitted(db, test.id, student.id):
        raise AppError('You have already submitted this test', 400)
    return {
        'test': serialize_test(test),
        'questions': [serialize_question(row, with_answer=False) for row in _questions(db, test.id)],
    }


def submit_test(
    db: Session,
    student: Student,
    test_id: int,
    answers,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> tuple[McqSubmission, int]:
    """Score the answers against the stored keys; returns (submission, question_count)."""
    if not isinstance(answers, dict):
        raise AppError('Answers are required', 400)
    test = get_student_test(db, student, test_id)
    if _has_submitted(db, test.id, student.id):
        raise AppError('You have already submitted this test', 400)

    questions = _questions(db, test.id)
    clean_answers = {str(key): value for key, value in answers.items()}
    score = sum(1 for row in questions if clean_answers.get(str(row.id)) == row.correct_answer)

    row = McqSubmission(
        test_id=test.id,
        student_id=student.id,
        answers=clean_answers,
        score=score,
        submitted_at=time_provider.utcnow(),
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('You have already submitted this test', 400) from exc
    db.refresh(row)
    logger.info('mcq_test_submitted test_id=%s student_id=%s score=%s total=%s', test.id, student.id, score, len(questions))
    return row, len(questions)
