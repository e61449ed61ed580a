from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import AppError
from app.core.serialization import full_name, iso
from app.models import AuthUser, Profile, Role, StudentProfile, TeacherProfile
from app.services import storage_service
from app.services.auth_service import ensure_role, get_user_role
from app.services.class_service import get_class


logger = logging.getLogger(__name__)

PROFILE_PHOTO_BUCKET = storage_service.ASSETS_BUCKET


def serialize_profile(row: Profile) -> dict:
    return {
        'id': row.id,
        'user_id': row.user_id,
        'email': row.email,
        'first_name': row.first_name,
        'last_name': row.last_name,
        'full_name': full_name(row.first_name, row.last_name),
        'phone': row.phone,
        'address': row.address,
        'date_of_birth': iso(row.date_of_birth),
        'profile_photo_url': row.profile_photo_url,
        'role': row.role,
        'is_profile_complete': bool(row.is_profile_complete),
        'is_active': bool(row.is_active),
        'created_at': iso(row.created_at),
        'updated_at': iso(row.updated_at),
    }


def serialize_student_profile(row: StudentProfile) -> dict:
    return {
        'id': row.id,
        'user_id': row.user_id,
        'branch': row.branch,
        'degree': row.degree,
        'registration_number': row.registration_number,
        'roll_no': row.roll_no,
        'class_id': row.class_id,
        'admission_year': row.admission_year,
        'created_at': iso(row.created_at),
        'updated_at': iso(row.updated_at),
    }


def serialize_teacher_profile(row: TeacherProfile) -> dict:
    return {
        'id': row.id,
        'user_id': row.user_id,
        'department': row.department,
        'qualification': row.qualification,
        'experience_years': row.experience_years,
        'subjects_taught': list(row.subjects_taught or []),
        'created_at': iso(row.created_at),
        'updated_at': iso(row.updated_at),
    }


def get_profile_row(db: Session, user_id: int) -> Profile | None:
    return db.query(Profile).filter(Profile.user_id == int(user_id)).first()


def get_student_profile_row(db: Session, user_id: int) -> StudentProfile | None:
    return db.query(StudentProfile).filter(StudentProfile.user_id == int(user_id)).first()


def get_teacher_profile_row(db: Session, user_id: int) -> TeacherProfile | None:
    return db.query(TeacherProfile).filter(TeacherProfile.user_id == int(user_id)).first()


def _parse_int(value) -> int | None:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise AppError(f'Invalid number: {value}', 400) from exc


def parse_date(value, field: str = 'date_of_birth') -> date | None:
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise AppError(f'{field} must be in YYYY-MM-DD format', 400) from exc


def _reject_admin(role: str | None) -> None:
    if role == Role.ADMIN.value:
        raise AppError('Admins do not have profiles', 403)


def _apply_student_fields(row: StudentProfile, updates: dict) -> None:
    for field in ('branch', 'degree', 'registration_number', 'roll_no'):
        if field in updates:
            setattr(row, field, updates[field])
    if 'class_id' in updates:
        row.class_id = _parse_int(updates['class_id'])
    if 'admission_year' in updates:
        row.admission_year = _parse_int(updates['admission_year'])


def _apply_teacher_fields(row: TeacherProfile, updates: dict) -> None:
    for field in ('department', 'qualification'):
        if field in updates:
            setattr(row, field, updates[field])
    if 'experience_years' in updates:
        row.experience_years = _parse_int(updates['experience_years'])
    if 'subjects_taught' in updates:
        subjects = updates['subjects_taught']
        row.subjects_taught = list(subjects) if subjects else []


def _role_profile(db: Session, user_id: int, role: str | None):
    if role == Role.STUDENT.value:
        return get_student_profile_row(db, user_id)
    if role == Role.TEACHER.value:
        return get_teacher_profile_row(db, user_id)
    return None


def profile_payload(db: Session, profile: Profile, role: str | None) -> dict:
    payload = serialize_profile(profile)
    role_row = _role_profile(db, profile.user_id, role or profile.role)
    if isinstance(role_row, StudentProfile):
        payload['roleSpecificData'] = serialize_student_profile(role_row)
    elif isinstance(role_row, TeacherProfile):
        payload['roleSpecificData'] = serialize_teacher_profile(role_row)
    else:
        payload['roleSpecificData'] = {}
    return payload


def get_my_profile(db: Session, user: dict) -> dict:
    role = get_user_role(db, int(user['user_id']))
    _reject_admin(role)
    profile = get_profile_row(db, int(user['user_id']))
    if not profile:
        raise AppError('Profile not found', 404)
    return profile_payload(db, profile, role)


def upsert_profile(db: Session, user: dict, updates: dict) -> tuple[Profile, bool]:
    """Create or partially update the caller's profile; returns (profile, created)."""
    user_id = int(user['user_id'])
    role = get_user_role(db, user_id)
    _reject_admin(role)

    profile = get_profile_row(db, user_id)
    created = profile is None
    if created:
        if not updates.get('first_name') or not updates.get('last_name'):
            raise AppError('First name and last name are required for new profiles', 400)
        profile = Profile(user_id=user_id, email=user.get('email') or '', role=role)
        db.add(profile)

    for field in ('first_name', 'last_name', 'phone', 'address'):
        if field in updates:
            setattr(profile, field, updates[field])
    if 'date_of_birth' in updates:
        profile.date_of_birth = parse_date(updates['date_of_birth'])
    if 'profile_photo' in updates:
        profile.profile_photo_url = updates['profile_photo']
    profile.is_profile_complete = True

    if role == Role.STUDENT.value:
        row = get_student_profile_row(db, user_id)
        if row is None:
            row = StudentProfile(user_id=user_id)
            db.add(row)
        _apply_student_fields(row, updates)
    elif role == Role.TEACHER.value:
        row = get_teacher_profile_row(db, user_id)
        if row is None:
            row = TeacherProfile(user_id=user_id)
            db.add(row)
        teacher_updates = dict(updates)
        if 'subjects' in teacher_updates:
            teacher_updates['subjects_taught'] = teacher_updates.pop('subjects')
        if 'years_of_experience' in teacher_updates:
            teacher_updates['experience_years'] = teacher_updates.pop('years_of_experience')
        _apply_teacher_fields(row, teacher_updates)

    db.commit()
    db.refresh(profile)
    logger.info('profile_saved user_id=%s created=%s role=%s', user_id, created, role)
    return profile, created


def complete_profile(db: Session, payload: dict) -> Profile:
    user_id = payload.get('user_id')
    email = (payload.get('email') or '').strip()
    first_name = (payload.get('first_name') or '').strip()
    last_name = (payload.get('last_name') or '').strip()
    role = (payload.get('role') or '').strip().lower()
    if not user_id or not email or not first_name or not last_name or not role:
        raise AppError('Missing required fields', 400)
    if role not in (Role.STUDENT.value, Role.TEACHER.value):
        raise AppError('Invalid role. Must be student or teacher', 400)
    user_id = _parse_int(user_id)
    if not db.get(AuthUser, user_id):
        raise AppError('User not found', 404)
    if get_profile_row(db, user_id):
        raise AppError('Profile already exists', 409)

    granted = ensure_role(db, user_id, role)
    profile = Profile(
        user_id=user_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=payload.get('phone'),
        address=payload.get('address'),
        date_of_birth=parse_date(payload.get('date_of_birth')),
        profile_photo_url=payload.get('profile_photo'),
        role=granted.role,
        is_profile_complete=True,
    )
    db.add(profile)

    if granted.role == Role.STUDENT.value:
        row = get_student_profile_row(db, user_id) or StudentProfile(user_id=user_id)
        db.add(row)
        _apply_student_fields(
            row,
            {field: payload.get(field) for field in ('branch', 'degree', 'registration_number', 'admission_year')},
        )
    elif granted.role == Role.TEACHER.value:
        row = get_teacher_profile_row(db, user_id) or TeacherProfile(user_id=user_id)
        db.add(row)
        _apply_teacher_fields(
            row,
            {
                'department': payload.get('department'),
                'qualification': payload.get('qualification'),
                'experience_years': payload.get('years_of_experience'),
                'subjects_taught': payload.get('subjects'),
            },
        )

    db.commit()
    db.refresh(profile)
    logger.info('profile_completed user_id=%s role=%s', user_id, granted.role)
    return profile


def _photo_key(user_id: int) -> str:
    return f'profile-photos/{user_id}.jpg'


def upload_profile_photo(db: Session, user: dict, content: bytes, content_type: str | None) -> tuple[Profile, str]:
    user_id = int(user['user_id'])
    _reject_admin(get_user_role(db, user_id))
    if not (content_type or '').startswith('image/'):
        raise AppError('Only image files are allowed', 400)
    if len(content) > settings.upload_max_bytes:
        raise AppError('File too large. Maximum size is 5MB', 400)
    profile = get_profile_row(db, user_id)
    if not profile:
        raise AppError('Profile not found', 404)

    url = storage_service.save_file(PROFILE_PHOTO_BUCKET, _photo_key(user_id), content, upsert=True)
    profile.profile_photo_url = url
    db.commit()
    db.refresh(profile)
    logger.info('profile_photo_uploaded user_id=%s bytes=%s', user_id, len(content))
    return profile, url


def delete_profile_photo(db: Session, user: dict) -> None:
    user_id = int(user['user_id'])
    _reject_admin(get_user_role(db, user_id))
    storage_service.delete_file(PROFILE_PHOTO_BUCKET, _photo_key(user_id))
    profile = get_profile_row(db, user_id)
    if profile:
        profile.profile_photo_url = None
        db.commit()
    logger.info('profile_photo_deleted user_id=%s', user_id)


def update_student_details(db: Session, user: dict, updates: dict) -> StudentProfile:
    user_id = int(user['user_id'])
    if get_user_role(db, user_id) != Role.STUDENT.value:
        raise AppError('Only students can update student profiles', 403)
    row = get_student_profile_row(db, user_id)
    if row is None:
        row = StudentProfile(user_id=user_id)
        db.add(row)
    if updates.get('class_id'):
        get_class(db, _parse_int(updates['class_id']))
    _apply_student_fields(row, {key: value for key, value in updates.items() if value not in (None, '')})
    db.commit()
    db.refresh(row)
    return row


def update_teacher_details(db: Session, user: dict, updates: dict) -> TeacherProfile:
    user_id = int(user['user_id'])
    if get_user_role(db, user_id) != Role.TEACHER.value:
        raise AppError('Only teachers can update teacher profiles', 403)
    row = get_teacher_profile_row(db, user_id)
    if row is None:
        row = TeacherProfile(user_id=user_id)
        db.add(row)
    clean = {key: value for key, value in updates.items() if value not in (None, '')}
    _apply_teacher_fields(row, clean)
    db.commit()
    db.refresh(row)
    return row
