from __future__ import annotations

import logging
import math
from collections import defaultdict

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.serialization import full_name, iso, number, round_half_up
from app.core.time_provider import TimeProvider, default_time_provider
from app.metrics import timed_service
from app.models import (
    Attendance,
    AuthUser,
    Enrollment,
    Exam,
    Mark,
    Profile,
    Role,
    SchoolClass,
    StudentProfile,
    TeacherClass,
    TeacherProfile,
    UserRole,
)
from app.services.attendance_service import PRESENT_LIKE
from app.services.auth_service import get_user_role
from app.services.class_service import get_class


logger = logging.getLogger(__name__)

ALLOWED_ROLES = (Role.ADMIN.value, Role.TEACHER.value, Role.STUDENT.value)
UNKNOWN_TEACHER = 'Unknown Teacher'


def _profiles_by_user(db: Session, user_ids) -> dict[int, Profile]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    return {row.user_id: row for row in db.query(Profile).filter(Profile.user_id.in_(ids)).all()}


def _emails_by_user(db: Session, user_ids) -> dict[int, str]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    return dict(db.query(AuthUser.id, AuthUser.email).filter(AuthUser.id.in_(ids)).all())


def _teacher_names(db: Session, teacher_ids) -> dict[int, str]:
    return {
        user_id: full_name(profile.first_name, profile.last_name) or UNKNOWN_TEACHER
        for user_id, profile in _profiles_by_user(db, teacher_ids).items()
    }


@timed_service('admin_overview')
def get_overview(db: Session) -> dict:
    students = db.query(func.count(StudentProfile.id)).scalar() or 0
    teachers = db.query(func.count(TeacherProfile.id)).scalar() or 0
    profiles = db.query(func.count(Profile.id)).scalar() or 0
    classes = db.query(func.count(SchoolClass.id)).filter(SchoolClass.deleted_at.is_(None)).scalar() or 0

    statuses = [status for (status,) in db.query(Attendance.status).all()]
    attendance_pct = 0
    if statuses:
        present_like = sum(1 for status in statuses if status in PRESENT_LIKE)
        attendance_pct = round_half_up(present_like / len(statuses) * 100)

    marks = [value or 0 for (value,) in db.query(Mark.marks_obtained).all()]
    avg_marks = round_half_up(sum(marks) / len(marks), 2) if marks else 0

    return {
        'totals': {
            'users': max(students + teachers, profiles),
            'students': students,
            'teachers': teachers,
            'classes': classes,
        },
        'averages': {
            'attendancePct': attendance_pct,
            'marks': number(avg_marks),
        },
    }


def list_student_users(db: Session) -> list[dict]:
    rows = db.query(StudentProfile).order_by(StudentProfile.created_at.desc(), StudentProfile.id.desc()).all()
    user_ids = [row.user_id for row in rows]
    profiles = _profiles_by_user(db, user_ids)
    emails = _emails_by_user(db, user_ids)
    items = []
    for row in rows:
        profile = profiles.get(row.user_id)
        first_name = profile.first_name if profile else None
        last_name = profile.last_name if profile else None
        items.append(
            {
                'user_id': row.user_id,
                'first_name': first_name,
                'last_name': last_name,
                'phone': profile.phone if profile else None,
                'address': profile.address if profile else None,
                'branch': row.branch,
                'degree': row.degree,
                'registration_number': row.registration_number,
                'profile_photo_url': profile.profile_photo_url if profile else None,
                'created_at': iso(row.created_at),
                'updated_at': iso(row.updated_at),
                'email': emails.get(row.user_id) or 'N/A',
                'role': Role.STUDENT.value,
                'profile_complete': bool(first_name and last_name and row.branch and row.degree),
            }
        )
    return items


def list_teacher_users(db: Session) -> list[dict]:
    rows = db.query(TeacherProfile).order_by(TeacherProfile.created_at.desc(), TeacherProfile.id.desc()).all()
    user_ids = [row.user_id for row in rows]
    profiles = _profiles_by_user(db, user_ids)
    emails = _emails_by_user(db, user_ids)
    items = []
    for row in rows:
        profile = profiles.get(row.user_id)
        first_name = profile.first_name if profile else None
        last_name = profile.last_name if profile else None
        items.append(
            {
                'user_id': row.user_id,
                'first_name': first_name,
                'last_name': last_name,
                'phone': profile.phone if profile else None,
                'address': profile.address if profile else None,
                'department': row.department,
                'qualification': row.qualification,
                'experience_years': row.experience_years,
                'subjects_taught': list(row.subjects_taught or []),
                'profile_photo_url': profile.profile_photo_url if profile else None,
                'created_at': iso(row.created_at),
                'updated_at': iso(row.updated_at),
                'email': emails.get(row.user_id) or 'N/A',
                'role': Role.TEACHER.value,
                'profile_complete': bool(first_name and last_name and row.department and row.qualification),
            }
        )
    return items


def _clamp_limit(value, default: int = 20) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = 0
    return min(max(parsed or default, 1), 100)


def _parse_page(value) -> int:
    try:
        return int(value) or 1
    except (TypeError, ValueError):
        return 1


@timed_service('admin_users')
def list_users(db: Session, *, page=None, limit=None, search: str | None = None) -> dict:
    """Students and teachers in one list, searched by name or email and paged."""
    clean_limit = _clamp_limit(limit)
    requested_page = _parse_page(page)
    needle = (search or '').strip().lower()

    merged = [
        {
            'id': item['user_id'],
            'first_name': item['first_name'],
            'last_name': item['last_name'],
            'email': item['email'],
            'role': item['role'],
            'created_at': item['created_at'],
        }
        for item in list_student_users(db) + list_teacher_users(db)
    ]
    if needle:
        merged = [
            item
            for item in merged
            if needle in full_name(item['first_name'], item['last_name']).lower()
            or needle in (item['email'] or '').lower()
        ]

    total = len(merged)
    total_pages = math.ceil(total / clean_limit) or 1
    safe_page = min(max(requested_page, 1), total_pages)
    start = (safe_page - 1) * clean_limit
    page_items = merged[start:start + clean_limit]

    active = dict(
        db.query(Profile.user_id, Profile.is_active)
        .filter(Profile.user_id.in_([item['id'] for item in page_items] or [0]))
        .all()
    )
    data = [
        {
            'id': item['id'],
            'full_name': full_name(item['first_name'], item['last_name']) or None,
            'email': item['email'] or 'N/A',
            'role': item['role'],
            'is_active': bool(active[item['id']]) if active.get(item['id']) is not None else True,
            'created_at': item['created_at'],
        }
        for item in page_items
    ]
    return {
        'data': data,
        'pagination': {
            'page': safe_page,
            'limit': clean_limit,
            'total': total,
            'totalPages': total_pages,
        },
    }


def update_user_role(db: Session, user_id: int, new_role: str | None) -> dict:
    normalized = str(new_role or '').strip().lower()
    if normalized not in ALLOWED_ROLES:
        raise AppError(f"Invalid role. Allowed roles: {', '.join(ALLOWED_ROLES)}", 400)
    if not db.get(AuthUser, int(user_id)):
        raise AppError('User not found', 404)

    row = db.query(UserRole).filter(UserRole.user_id == int(user_id)).first()
    if row is None:
        row = UserRole(user_id=int(user_id), role=normalized)
        db.add(row)
    else:
        row.role = normalized
    profile = db.query(Profile).filter(Profile.user_id == int(user_id)).first()
    if profile is not None:
        profile.role = normalized
    db.commit()
    logger.info('admin_role_updated user_id=%s role=%s', user_id, normalized)
    return {'user_id': int(user_id), 'role': normalized, 'profileUpdated': profile is not None}


def update_user_status(db: Session, user_id: int, is_active) -> dict:
    profile = db.query(Profile).filter(Profile.user_id == int(user_id)).first()
    if profile is None:
        raise AppError('User profile not found', 404)
    profile.is_active = bool(is_active)
    db.commit()
    logger.info('admin_status_updated user_id=%s is_active=%s', user_id, profile.is_active)
    return {'user_id': profile.user_id, 'is_active': bool(profile.is_active)}


def _serialize_admin_class(row: SchoolClass, teachers: list[dict], enrollment_count: int) -> dict:
    return {
        'id': row.id,
        'name': row.name,
        'section': row.section,
        'created_at': iso(row.created_at),
        'deleted_at': iso(row.deleted_at),
        'is_deleted': row.deleted_at is not None,
        'teachers': teachers,
        'enrollment_count': enrollment_count,
    }


@timed_service('admin_classes')
def list_admin_classes(db: Session, class_ids: list[int] | None = None) -> list[dict]:
    query = db.query(SchoolClass)
    if class_ids is not None:
        query = query.filter(SchoolClass.id.in_(class_ids))
    classes = query.order_by(SchoolClass.created_at.desc(), SchoolClass.id.desc()).all()
    if not classes:
        return []
    ids = [row.id for row in classes]

    assignments: dict[int, list[int]] = defaultdict(list)
    for class_id, teacher_id in (
        db.query(TeacherClass.class_id, TeacherClass.teacher_id)
        .filter(TeacherClass.class_id.in_(ids))
        .order_by(TeacherClass.id.asc())
        .all()
    ):
        assignments[class_id].append(teacher_id)
    names = _teacher_names(db, [tid for tids in assignments.values() for tid in tids])

    enrollment_counts = dict(
        db.query(Enrollment.class_id, func.count(Enrollment.id))
        .filter(Enrollment.class_id.in_(ids))
        .group_by(Enrollment.class_id)
        .all()
    )
    return [
        _serialize_admin_class(
            row,
            [{'id': tid, 'name': names.get(tid) or UNKNOWN_TEACHER} for tid in assignments.get(row.id, [])],
            int(enrollment_counts.get(row.id, 0)),
        )
        for row in classes
    ]


def set_class_deleted(
    db: Session,
    class_id: int,
    is_deleted: bool,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    row = get_class(db, class_id)
    if is_deleted:
        row.deleted_at = row.deleted_at or time_provider.utcnow()
    else:
        row.deleted_at = None
    db.commit()
    logger.info('admin_class_soft_delete class_id=%s is_deleted=%s', class_id, bool(is_deleted))
    return list_admin_classes(db, [row.id])[0]


def assign_teacher(db: Session, class_id: int, teacher_id: int | None) -> dict:
    if not teacher_id:
        raise AppError('teacherId is required', 400)
    get_class(db, class_id)
    if not db.get(AuthUser, int(teacher_id)):
        raise AppError('User not found', 404)
    if get_user_role(db, int(teacher_id)) != Role.TEACHER.value:
        raise AppError('User is not a teacher', 400)
    exists = (
        db.query(TeacherClass.id)
        .filter(TeacherClass.teacher_id == int(teacher_id), TeacherClass.class_id == int(class_id))
        .first()
    )
    if exists:
        raise AppError('Teacher already assigned to this class', 409)
    row = TeacherClass(teacher_id=int(teacher_id), class_id=int(class_id))
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError('Teacher already assigned to this class', 409) from exc
    db.refresh(row)
    logger.info('admin_teacher_assigned teacher_id=%s class_id=%s', teacher_id, class_id)
    return {'id': row.id, 'teacher_id': row.teacher_id, 'class_id': row.class_id, 'created_at': iso(row.created_at)}


def remove_teacher(db: Session, class_id: int, teacher_id: int) -> None:
    deleted = (
        db.query(TeacherClass)
        .filter(TeacherClass.teacher_id == int(teacher_id), TeacherClass.class_id == int(class_id))
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise AppError('Teacher assignment not found', 404)
    db.commit()
    logger.info('admin_teacher_removed teacher_id=%s class_id=%s', teacher_id, class_id)


@timed_service('admin_academics')
def get_academics(db: Session, *, weak_threshold: float = 50, attendance_threshold: float = 75) -> dict:
    """Weak classes by marks, low-attendance classes and per-teacher workload."""
    class_names = {
        class_id: name or f'Class {class_id}'
        for class_id, name in db.query(SchoolClass.id, SchoolClass.name).all()
    }
    if not class_names:
        return {'weakClasses': [], 'lowAttendanceClasses': [], 'teacherWorkload': []}

    marks_by_class: dict[int, list[float]] = defaultdict(list)
    for class_id, value in db.query(Exam.class_id, Mark.marks_obtained).join(Exam, Mark.exam_id == Exam.id).all():
        marks_by_class[class_id].append(value or 0)
    weak_classes = []
    for class_id, values in marks_by_class.items():
        avg = round_half_up(sum(values) / len(values), 2)
        if avg < weak_threshold:
            weak_classes.append(
                {
                    'class_id': class_id,
                    'class_name': class_names.get(class_id) or f'Class {class_id}',
                    'avg_marks': number(avg),
                }
            )
    weak_classes.sort(key=lambda item: item['avg_marks'])

    attendance_by_class: dict[int, list[str]] = defaultdict(list)
    for class_id, status in db.query(Attendance.class_id, Attendance.status).all():
        attendance_by_class[class_id].append(status)
    low_attendance = []
    for class_id, statuses in attendance_by_class.items():
        pct = round_half_up(sum(1 for status in statuses if status in PRESENT_LIKE) / len(statuses) * 100)
        if pct < attendance_threshold:
            low_attendance.append(
                {
                    'class_id': class_id,
                    'class_name': class_names.get(class_id) or f'Class {class_id}',
                    'attendance_pct': pct,
                }
            )
    low_attendance.sort(key=lambda item: item['attendance_pct'])

    teacher_classes: dict[int, set[int]] = defaultdict(set)
    for class_id, teacher_id in db.query(TeacherClass.class_id, TeacherClass.teacher_id).all():
        teacher_classes[teacher_id].add(class_id)
    class_students: dict[int, set[int]] = defaultdict(set)
    for class_id, student_id in db.query(Enrollment.class_id, Enrollment.student_id).all():
        class_students[class_id].add(student_id)
    names = _teacher_names(db, teacher_classes.keys())
    workload = []
    for teacher_id in sorted(teacher_classes):
        class_ids = teacher_classes[teacher_id]
        students: set[int] = set()
        for class_id in class_ids:
            students |= class_students.get(class_id, set())
        workload.append(
            {
                'teacher_id': teacher_id,
                'teacher_name': names.get(teacher_id) or UNKNOWN_TEACHER,
                'class_count': len(class_ids),
                'student_count': len(students),
            }
        )

    return {
        'weakClasses': weak_classes,
        'lowAttendanceClasses': low_attendance,
        'teacherWorkload': workload,
    }
