from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.pagination import Page
from app.core.router_guard import assert_class_scope
from app.core.serialization import iso, number, positive_id, round_half_up
from app.models import (
    Announcement,
    Attendance,
    Enrollment,
    Mark,
    PerformanceReport,
    SchoolClass,
    Student,
    TeacherClass,
)
from app.services import notification_service
from app.services.attendance_service import (
    attendance_pct,
    parse_attendance_date,
    upsert_attendance,
    validate_entries,
)
from app.services.class_service import get_class
from app.services.curriculum_service import get_exam, get_subject
from app.services.marks_service import upsert_marks
from app.services.student_service import get_student


logger = logging.getLogger(__name__)

STUDENT_SORT_FIELDS = {
    'name': Student.name,
    'email': Student.email,
    'created_at': Student.created_at,
}
ANNOUNCEMENT_TITLE_MAX = 200


def _scoped_class_ids(db: Session, teacher_id: int, class_id: int | None) -> list[int]:
    query = db.query(TeacherClass.class_id).filter(TeacherClass.teacher_id == int(teacher_id))
    if class_id:
        query = query.filter(TeacherClass.class_id == int(class_id))
    class_ids = [row_id for (row_id,) in query.all()]
    if class_ids:
        return class_ids
    created = db.query(SchoolClass.id).filter(SchoolClass.created_by == int(teacher_id))
    if class_id:
        created = created.filter(SchoolClass.id == int(class_id))
    return [row_id for (row_id,) in created.all()]


def list_teacher_students(
    db: Session,
    teacher_id: int,
    page: Page,
    *,
    search: str = '',
    class_id: int | None = None,
    sort_by: str = 'name',
    sort_order: str = 'asc',
) -> tuple[list[dict], int]:
    """Roster of the students enrolled in a teacher's classes, enriched with attendance and marks."""
    class_ids = _scoped_class_ids(db, teacher_id, class_id)
    if not class_ids:
        return [], 0

    class_names = dict(db.query(SchoolClass.id, SchoolClass.name).filter(SchoolClass.id.in_(class_ids)).all())
    enrollments = (
        db.query(Enrollment.student_id, Enrollment.class_id)
        .filter(Enrollment.class_id.in_(class_ids))
        .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
        .all()
    )
    if not enrollments:
        return [], 0
    student_class: dict[int, int] = {}
    for student_id, enrolled_class_id in enrollments:
        student_class.setdefault(student_id, enrolled_class_id)

    sort_column = STUDENT_SORT_FIELDS.get(sort_by, Student.name)
    ordering = sort_column.desc() if sort_order == 'desc' else sort_column.asc()
    query = db.query(Student).filter(Student.id.in_(list(student_class)))
    clean_search = (search or '').strip().lower()
    if clean_search:
        pattern = f'%{clean_search}%'
        query = query.filter(or_(func.lower(Student.name).like(pattern), func.lower(Student.email).like(pattern)))
    total = query.count()
    students = query.order_by(ordering, Student.id.asc()).offset(page.offset).limit(page.limit).all()

    rows: list[dict] = []
    for student in students:
        enrolled_class_id = student_class.get(student.id)
        statuses = [
            status
            for (status,) in db.query(Attendance.status)
            .filter(Attendance.student_id == student.id, Attendance.class_id == enrolled_class_id)
            .all()
        ]
        marks = [value or 0 for (value,) in db.query(Mark.marks_obtained).filter(Mark.student_id == student.id).all()]
        avg_marks = round_half_up(sum(marks) / len(marks), 1) if marks else None
        rows.append(
            {
                'id': student.id,
                'name': student.name,
                'email': student.email,
                'roll_no': str(student.roll_no) if student.roll_no is not None else '—',
                'class': class_names.get(enrolled_class_id) or 'Unknown',
                'class_id': enrolled_class_id,
                'attendance_pct': attendance_pct(statuses),
                'avg_marks': number(avg_marks),
            }
        )
    return rows, total


def bulk_upload_marks(
    db: Session,
    user: dict,
    *,
    class_id: int | None,
    exam_id: int | None,
    subject_id: int | None,
    marks: list[dict] | None,
) -> list[Mark]:
    if not class_id:
        raise AppError('classId is required', 400)
    if not exam_id:
        raise AppError('examId is required', 400)
    if not subject_id:
        raise AppError('subjectId is required', 400)
    if not isinstance(marks, list) or not marks:
        raise AppError('marks must be a non-empty array', 400)

    entries: list[tuple[int, float]] = []
    for entry in marks:
        if not isinstance(entry, dict):
            raise AppError('Each mark entry must be an object', 400)
        student_id = positive_id(entry.get('studentId'))
        marks_obtained = entry.get('marksObtained')
        if student_id is None:
            raise AppError('Each mark entry must have studentId', 400)
        if marks_obtained is None:
            raise AppError('Each mark entry must have marksObtained', 400)
        if isinstance(marks_obtained, bool) or not isinstance(marks_obtained, (int, float)) or marks_obtained < 0:
            raise AppError('marksObtained must be a non-negative number', 400)
        entries.append((student_id, float(marks_obtained)))

    assert_class_scope(db, user, class_id)
    exam = get_exam(db, exam_id)
    subject = get_subject(db, subject_id)
    if exam.class_id != int(class_id):
        raise AppError('Exam does not belong to this class', 400)
    if subject.class_id != int(class_id):
        raise AppError('Subject does not belong to this class', 400)
    for _, marks_obtained in entries:
        if marks_obtained > exam.max_marks:
            raise AppError(
                f'Marks obtained ({number(marks_obtained)}) cannot exceed max marks ({number(exam.max_marks)})',
                400,
            )

    saved = upsert_marks(
        db,
        exam_id=exam.id,
        subject_id=int(subject_id),
        entries=entries,
        uploaded_by=int(user['user_id']),
    )
    notification_service.notify_students(
        db,
        [student_id for student_id, _ in entries],
        title='Marks Updated',
        message='Your marks have been uploaded for the latest exam.',
        notification_type='marks',
    )
    return saved


def record_attendance(
    db: Session,
    user: dict,
    *,
    class_id: int | None,
    attendance_date: str | None,
    attendance: list[dict] | None,
):
    if not class_id:
        raise AppError('classId is required', 400)
    entries = validate_entries(attendance, empty_message='attendance must be a non-empty array')
    assert_class_scope(db, user, class_id)
    day = parse_attendance_date(attendance_date)

    saved = upsert_attendance(
        db,
        class_id=int(class_id),
        attendance_date=day,
        entries=entries,
        marked_by=int(user['user_id']),
    )
    absent_ids = [student_id for student_id, status in entries if status == 'absent']
    if absent_ids:
        notification_service.notify_students(
            db,
            absent_ids,
            title='Attendance Marked',
            message=f'You were marked absent on {day.isoformat()}.',
            notification_type='attendance',
        )
    return saved, day


def serialize_announcement(row: Announcement) -> dict:
    return {
        'id': row.id,
        'class_id': row.class_id,
        'title': row.title,
        'body': row.body,
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
    }


def create_announcement(
    db: Session,
    user: dict,
    *,
    class_id: int | None,
    title: str | None,
    body: str | None,
) -> Announcement:
    if not class_id:
        raise AppError('classId is required', 400)
    if not (title or '').strip():
        raise AppError('title is required', 400)
    if not (body or '').strip():
        raise AppError('body is required', 400)
    if len(title) > ANNOUNCEMENT_TITLE_MAX:
        raise AppError('title must be under 200 characters', 400)
    assert_class_scope(db, user, class_id)
    get_class(db, class_id)

    row = Announcement(
        class_id=int(class_id),
        title=title.strip(),
        body=body.strip(),
        created_by=int(user['user_id']),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('announcement_created announcement_id=%s class_id=%s', row.id, class_id)

    notification_service.notify_class(
        db,
        int(class_id),
        title='New Announcement',
        message=row.title,
        notification_type='announcement',
    )
    return row


def list_class_announcements(db: Session, class_id: int) -> list[Announcement]:
    return (
        db.query(Announcement)
        .filter(Announcement.class_id == int(class_id), Announcement.deleted_at.is_(None))
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .all()
    )


def serialize_performance_report(row: PerformanceReport) -> dict:
    return {
        'id': row.id,
        'student_id': row.student_id,
        'class_id': row.class_id,
        'period': row.period,
        'avg_marks': number(row.avg_marks),
        'attendance_pct': number(row.attendance_pct),
        'total_exams': row.total_exams,
        'total_present': row.total_present,
        'total_absent': row.total_absent,
        'remarks': row.remarks,
        'created_by': row.created_by,
        'created_at': iso(row.created_at),
    }


def upsert_performance_report(db: Session, user: dict, payload: dict) -> PerformanceReport:
    student_id = payload.get('studentId')
    class_id = payload.get('classId')
    period = str(payload.get('period') or '').strip()
    if not student_id:
        raise AppError('studentId is required', 400)
    if not class_id:
        raise AppError('classId is required', 400)
    if not period:
        raise AppError("period is required (e.g. '2024-Q1')", 400)
    assert_class_scope(db, user, class_id)
    get_student(db, student_id)
    get_class(db, class_id)

    row = (
        db.query(PerformanceReport)
        .filter(
            PerformanceReport.student_id == int(student_id),
            PerformanceReport.class_id == int(class_id),
            PerformanceReport.period == period,
        )
        .first()
    )
    if row is None:
        row = PerformanceReport(student_id=int(student_id), class_id=int(class_id), period=period)
        db.add(row)
    row.avg_marks = float(payload.get('avgMarks') or 0)
    row.attendance_pct = float(payload.get('attendancePct') or 0)
    row.total_exams = int(payload.get('totalExams') or 0)
    row.total_present = int(payload.get('totalPresent') or 0)
    row.total_absent = int(payload.get('totalAbsent') or 0)
    row.remarks = payload.get('remarks') or None
    row.created_by = int(user['user_id'])
    db.commit()
    db.refresh(row)
    logger.info('performance_report_saved report_id=%s student_id=%s period=%s', row.id, student_id, period)

    notification_service.notify_students(
        db,
        [int(student_id)],
        title='Performance Report Available',
        message=f'Your performance report for {period} has been generated.',
        notification_type='performance',
    )
    return row


def teacher_stats(db: Session, teacher_id: int) -> dict:
    class_ids = [
        class_id
        for (class_id,) in db.query(TeacherClass.class_id).filter(TeacherClass.teacher_id == int(teacher_id)).all()
    ]
    total_students = 0
    if class_ids:
        total_students = (
            db.query(func.count(func.distinct(Enrollment.student_id)))
            .filter(Enrollment.class_id.in_(class_ids))
            .scalar()
            or 0
        )
    return {'totalClasses': len(class_ids), 'totalStudents': int(total_students)}
