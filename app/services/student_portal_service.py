from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.serialization import full_name, iso, number, round_half_up
from app.models import Announcement, Attendance, Enrollment, Mark, PerformanceReport, Profile, Role, Student
from app.services.attendance_service import PRESENT_LIKE
from app.services.auth_service import get_user_role
from app.services.marks_service import list_student_marks, serialize_mark
from app.services.notification_service import MAX_FEED_ITEMS, list_user_notifications
from app.services.student_service import find_student_by_email


logger = logging.getLogger(__name__)

ATTENDANCE_HISTORY_LIMIT = 100


def resolve_student(db: Session, user: dict, *, allow_admin: bool = False) -> Student:
    """Roster row of the signed-in student, matched on email."""
    role = get_user_role(db, int(user['user_id']))
    allowed = {Role.STUDENT.value, Role.ADMIN.value} if allow_admin else {Role.STUDENT.value}
    if role not in allowed:
        raise AppError('Access denied. Student role required.', 403)
    student = find_student_by_email(db, user.get('email'))
    if not student:
        raise AppError('Student record not found. Please contact your administrator.', 404)
    return student


def attendance_comment(percentage: int) -> str:
    if percentage >= 90:
        return 'Excellent Attendance'
    if percentage >= 75:
        return 'Good, Keep Improving'
    if percentage >= 60:
        return 'Warning Zone'
    return 'Critical, Improve Immediately'


def standing_for(score: int) -> str:
    if score >= 85:
        return 'Excellent'
    if score >= 70:
        return 'Good'
    if score >= 50:
        return 'Average'
    return 'Needs Improvement'


def _attendance_rows(db: Session, student_id: int) -> list[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.student_id == student_id)
        .order_by(Attendance.attendance_date.desc(), Attendance.id.desc())
        .limit(ATTENDANCE_HISTORY_LIMIT)
        .all()
    )


def _percent(part: int, total: int) -> int:
    return round_half_up(part / total * 100) if total else 0


def student_marks(db: Session, student: Student) -> dict:
    marks = list_student_marks(db, student.id)
    uploader_ids = {row.uploaded_by for row in marks if row.uploaded_by}
    teacher_names: dict[int, str] = {}
    if uploader_ids:
        for user_id, first_name, last_name in (
            db.query(Profile.user_id, Profile.first_name, Profile.last_name)
            .filter(Profile.user_id.in_(uploader_ids))
            .all()
        ):
            name = full_name(first_name, last_name)
            if name:
                teacher_names[user_id] = name

    data = []
    for row in marks:
        item = serialize_mark(row, with_subject=True, with_exam=True)
        item['teacher_name'] = teacher_names.get(row.uploaded_by) or 'Unknown Teacher'
        data.append(item)
    total = len(marks)
    average = sum(row.marks_obtained or 0 for row in marks) / total if total else 0
    return {'data': data, 'summary': {'total': total, 'average': number(round_half_up(average, 2))}}


def student_attendance(db: Session, student: Student) -> dict:
    records = _attendance_rows(db, student.id)
    present = sum(1 for row in records if row.status == 'present')
    late = sum(1 for row in records if row.status == 'late')
    absent = sum(1 for row in records if row.status == 'absent')
    total = len(records)
    return {
        'data': [
            {'id': row.id, 'date': iso(row.attendance_date), 'status': row.status, 'class_id': row.class_id}
            for row in records
        ],
        'summary': {
            'total': total,
            'present': present,
            'late': late,
            'absent': absent,
            'attendancePct': _percent(present + late, total),
        },
    }


def attendance_summary(db: Session, student: Student) -> dict:
    records = _attendance_rows(db, student.id)
    total = len(records)
    present = sum(1 for row in records if row.status in PRESENT_LIKE)
    percentage = _percent(present, total)
    return {
        'present': present,
        'total': total,
        'percentage': percentage,
        'comment': attendance_comment(percentage),
    }


def _enrolled_class_ids(db: Session, student_id: int) -> list[int]:
    return [class_id for (class_id,) in db.query(Enrollment.class_id).filter(Enrollment.student_id == student_id).all()]


def student_announcements(db: Session, student: Student) -> list[dict]:
    class_ids = _enrolled_class_ids(db, student.id)
    if not class_ids:
        return []
    rows = (
        db.query(Announcement)
        .options(joinedload(Announcement.school_class))
        .filter(Announcement.class_id.in_(class_ids), Announcement.deleted_at.is_(None))
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .limit(MAX_FEED_ITEMS)
        .all()
    )
    return [
        {
            'id': row.id,
            'title': row.title,
            'body': row.body,
            'created_at': iso(row.created_at),
            'class_id': row.class_id,
            'classes': {'name': row.school_class.name} if row.school_class else None,
        }
        for row in rows
    ]


def notification_feed(db: Session, student: Student, user_id: int) -> dict:
    """Personal notifications merged with class announcements, newest first."""
    feed: list[tuple[datetime, dict]] = []
    for row in list_user_notifications(db, user_id):
        feed.append(
            (
                row.created_at,
                {
                    'id': row.id,
                    'title': row.title,
                    'message': row.message,
                    'type': row.type,
                    'is_read': bool(row.is_read),
                    'created_at': iso(row.created_at),
                    'source': 'notification',
                },
            )
        )
    class_ids = _enrolled_class_ids(db, student.id)
    if class_ids:
        announcements = (
            db.query(Announcement)
            .options(joinedload(Announcement.school_class))
            .filter(Announcement.class_id.in_(class_ids), Announcement.deleted_at.is_(None))
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .limit(MAX_FEED_ITEMS)
            .all()
        )
        for row in announcements:
            feed.append(
                (
                    row.created_at,
                    {
                        'id': row.id,
                        'title': row.title,
                        'message': row.body or '',
                        'type': 'announcement',
                        'is_read': True,
                        'created_at': iso(row.created_at),
                        'source': 'announcement',
                        'class_name': row.school_class.name if row.school_class else None,
                    },
                )
            )
    feed.sort(key=lambda item: item[0], reverse=True)
    combined = [item for _, item in feed[:MAX_FEED_ITEMS]]
    return {
        'data': combined,
        'count': len(combined),
        'unreadCount': sum(1 for item in combined if not item['is_read']),
    }


def _rank_estimate(db: Session, student_id: int) -> dict | None:
    totals: dict[int, list[float]] = {}
    for sid, value in db.query(Mark.student_id, Mark.marks_obtained).all():
        bucket = totals.setdefault(sid, [0.0, 0])
        bucket[0] += value or 0
        bucket[1] += 1
    if not totals:
        return None
    ranking = sorted(totals, key=lambda sid: (-(totals[sid][0] / totals[sid][1]), sid))
    if student_id not in totals:
        return None
    rank = ranking.index(student_id) + 1
    total_students = len(ranking)
    return {
        'rank': rank,
        'totalStudents': total_students,
        'percentile': round_half_up((total_students - rank) / total_students * 100),
    }


def student_progress(db: Session, student: Student) -> dict:
    marks = [value or 0 for (value,) in db.query(Mark.marks_obtained).filter(Mark.student_id == student.id).all()]
    total_exams = len(marks)
    avg_marks = round_half_up(sum(marks) / total_exams, 2) if total_exams else 0

    records = _attendance_rows(db, student.id)
    total_days = len(records)
    present_days = sum(1 for row in records if row.status in PRESENT_LIKE)
    attendance = _percent(present_days, total_days)

    combined = round_half_up(avg_marks * 0.6 + attendance * 0.4)
    return {
        'avgMarks': number(avg_marks),
        'attendancePct': attendance,
        'standing': standing_for(combined),
        'combinedScore': combined,
        'rankEstimate': _rank_estimate(db, student.id),
        'totalExams': total_exams,
        'totalClassDays': total_days,
    }


def student_performance(db: Session, student: Student) -> list[dict]:
    rows = (
        db.query(PerformanceReport)
        .options(joinedload(PerformanceReport.school_class))
        .filter(PerformanceReport.student_id == student.id)
        .order_by(PerformanceReport.created_at.desc(), PerformanceReport.id.desc())
        .all()
    )
    return [
        {
            'id': row.id,
            'period': row.period,
            'avg_marks': number(row.avg_marks),
            'attendance_pct': number(row.attendance_pct),
            'total_exams': row.total_exams,
            'total_present': row.total_present,
            'total_absent': row.total_absent,
            'remarks': row.remarks,
            'created_at': iso(row.created_at),
            'class': {'name': row.school_class.name} if row.school_class else None,
        }
        for row in rows
    ]
