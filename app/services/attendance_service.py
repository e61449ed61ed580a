from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AppError
from app.core.serialization import iso, positive_id, round_half_up
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import Attendance, AttendanceStatus


logger = logging.getLogger(__name__)

VALID_STATUSES = tuple(status.value for status in AttendanceStatus)
PRESENT_LIKE = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


def serialize_attendance(row: Attendance, *, with_student: bool = False) -> dict:
    payload = {
        'id': row.id,
        'class_id': row.class_id,
        'student_id': row.student_id,
        'date': iso(row.attendance_date),
        'status': row.status,
        'marked_by': row.marked_by,
        'created_at': iso(row.created_at),
    }
    if with_student:
        student = row.student
        payload['students'] = (
            {'id': student.id, 'name': student.name, 'email': student.email, 'roll_no': student.roll_no}
            if student
            else None
        )
    return payload


def parse_attendance_date(value: str | date | None, *, time_provider: TimeProvider = default_time_provider) -> date:
    if value is None or value == '':
        return time_provider.today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise AppError('date must be in YYYY-MM-DD format', 400) from exc


def validate_entries(entries: list[dict] | None, *, empty_message: str = 'Invalid attendance data') -> list[tuple[int, str]]:
    if not isinstance(entries, list) or not entries:
        raise AppError(empty_message, 400)
    cleaned: list[tuple[int, str]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise AppError('Each attendance entry must be an object', 400)
        student_id = positive_id(entry.get('studentId'))
        status = str(entry.get('status') or '').strip().lower()
        if student_id is None:
            raise AppError('Each attendance entry must have studentId', 400)
        if status not in VALID_STATUSES:
            raise AppError(f"status must be one of: {', '.join(VALID_STATUSES)}", 400)
        cleaned.append((student_id, status))
    return cleaned


def upsert_attendance(
    db: Session,
    *,
    class_id: int,
    attendance_date: date,
    entries: list[tuple[int, str]],
    marked_by: int,
) -> list[Attendance]:
    """Write one row per (class, student, date); a repeat submission overwrites the status."""
    student_ids = [student_id for student_id, _ in entries]
    existing = {
        row.student_id: row
        for row in db.query(Attendance)
        .filter(
            Attendance.class_id == int(class_id),
            Attendance.attendance_date == attendance_date,
            Attendance.student_id.in_(student_ids),
        )
        .all()
    }
    saved: list[Attendance] = []
    for student_id, status in entries:
        row = existing.get(student_id)
        if row is None:
            row = Attendance(class_id=int(class_id), student_id=student_id, attendance_date=attendance_date)
            db.add(row)
            existing[student_id] = row
        row.status = status
        row.marked_by = marked_by
        if row not in saved:
            saved.append(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('attendance_upsert_failed class_id=%s date=%s', class_id, attendance_date)
        raise AppError('Failed to record attendance', 400) from exc
    for row in saved:
        db.refresh(row)
    logger.info(
        'attendance_recorded class_id=%s date=%s count=%s marked_by=%s',
        class_id,
        attendance_date.isoformat(),
        len(saved),
        marked_by,
    )
    return saved


def list_class_attendance(db: Session, class_id: int, attendance_date: date | None = None) -> list[Attendance]:
    query = (
        db.query(Attendance)
        .options(joinedload(Attendance.student))
        .filter(Attendance.class_id == int(class_id))
    )
    if attendance_date is not None:
        query = query.filter(Attendance.attendance_date == attendance_date)
    return query.order_by(Attendance.attendance_date.desc(), Attendance.student_id.asc()).all()


def attendance_pct(statuses: list[str]) -> int | None:
    if not statuses:
        return None
    present = sum(1 for status in statuses if status in PRESENT_LIKE)
    return round_half_up(present / len(statuses) * 100)
