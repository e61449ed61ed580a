from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.models import Profile, Role, StudentProfile, TeacherProfile
from app.services.auth_service import get_user_role
from app.services.profile_service import (
    get_profile_row,
    get_student_profile_row,
    get_teacher_profile_row,
    parse_date,
    serialize_profile,
    serialize_student_profile,
    serialize_teacher_profile,
)


logger = logging.getLogger(__name__)

STUDENT_REQUIRED = ('first_name', 'last_name', 'branch', 'degree', 'registration_number')
TEACHER_REQUIRED = ('first_name', 'last_name', 'department', 'qualification')


def _merged(profile: Profile | None, role_row) -> dict | None:
    if profile is None and role_row is None:
        return None
    merged: dict = {}
    if role_row is not None:
        if isinstance(role_row, StudentProfile):
            merged.update(serialize_student_profile(role_row))
        else:
            merged.update(serialize_teacher_profile(role_row))
    if profile is not None:
        base = serialize_profile(profile)
        for key in ('first_name', 'last_name', 'full_name', 'email', 'address', 'date_of_birth', 'profile_photo_url', 'is_profile_complete'):
            merged[key] = base[key]
    return merged


def profile_status(db: Session, user_id: int) -> dict:
    role = get_user_role(db, user_id)
    if not role:
        raise AppError('User role not found', 404)
    if role not in (Role.STUDENT.value, Role.TEACHER.value):
        return {'isComplete': True, 'profile': None, 'role': role}

    profile = get_profile_row(db, user_id)
    if role == Role.STUDENT.value:
        role_row = get_student_profile_row(db, user_id)
        required = STUDENT_REQUIRED
    else:
        role_row = get_teacher_profile_row(db, user_id)
        required = TEACHER_REQUIRED
    data = _merged(profile, role_row)
    is_complete = role_row is not None and all((data or {}).get(field) for field in required)
    return {'isComplete': bool(is_complete), 'profile': data, 'role': role}


def _save_base(db: Session, user: dict, payload: dict, role: str) -> Profile:
    user_id = int(user['user_id'])
    profile = get_profile_row(db, user_id)
    if profile is None:
        profile = Profile(user_id=user_id, email=user.get('email') or '')
        db.add(profile)
    profile.first_name = payload['first_name'].strip()
    profile.last_name = payload['last_name'].strip()
    profile.role = role
    if payload.get('address') is not None:
        profile.address = payload['address']
    if payload.get('dob'):
        profile.date_of_birth = parse_date(payload['dob'])
    if payload.get('profile_picture_url') is not None:
        profile.profile_photo_url = payload['profile_picture_url']
    profile.is_profile_complete = True
    return profile


def _require(payload: dict, fields: tuple[str, ...]) -> None:
    if any(not str(payload.get(field) or '').strip() for field in fields):
        raise AppError('Missing required fields', 400)


def complete_student(db: Session, user: dict, payload: dict) -> dict:
    _require(payload, STUDENT_REQUIRED)
    user_id = int(user['user_id'])
    profile = _save_base(db, user, payload, Role.STUDENT.value)
    row = get_student_profile_row(db, user_id)
    if row is None:
        row = StudentProfile(user_id=user_id)
        db.add(row)
    row.branch = payload['branch'].strip()
    row.degree = payload['degree'].strip()
    row.registration_number = str(payload['registration_number']).strip()
    db.commit()
    db.refresh(profile)
    db.refresh(row)
    logger.info('profile_completion_saved user_id=%s role=student', user_id)
    return {'profile': serialize_profile(profile), 'studentProfile': serialize_student_profile(row)}


def complete_teacher(db: Session, user: dict, payload: dict) -> dict:
    _require(payload, TEACHER_REQUIRED)
    user_id = int(user['user_id'])
    profile = _save_base(db, user, payload, Role.TEACHER.value)
    row = get_teacher_profile_row(db, user_id)
    if row is None:
        row = TeacherProfile(user_id=user_id)
        db.add(row)
    row.department = payload['department'].strip()
    row.qualification = payload['qualification'].strip()
    if payload.get('experience_years') is not None:
        row.experience_years = int(payload['experience_years'])
    if payload.get('subjects_taught') is not None:
        row.subjects_taught = list(payload['subjects_taught'])
    db.commit()
    db.refresh(profile)
    db.refresh(row)
    logger.info('profile_completion_saved user_id=%s role=teacher', user_id)
    return {'profile': serialize_profile(profile), 'teacherProfile': serialize_teacher_profile(row)}
