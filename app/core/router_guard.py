from __future__ import annotations

from typing import Iterable

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AuthUser, Profile, Role, TeacherClass
from app.services.auth_service import get_user_role, validate_session_token


def resolve_token(request: Request) -> str | None:
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip() or None
    token = request.cookies.get('auth_session')
    if token:
        return token
    return None


def require_auth_user(request: Request, db: Session = Depends(get_db)) -> dict:
    token = resolve_token(request)
    if not token:
        raise HTTPException(status_code=401, detail='Missing or invalid Authorization header')
    session = validate_session_token(token)
    if not session:
        raise HTTPException(status_code=401, detail='Invalid or expired token')
    user = db.get(AuthUser, int(session['user_id']))
    if not user:
        raise HTTPException(status_code=401, detail='Invalid or expired token')
    profile_active = db.query(Profile.is_active).filter(Profile.user_id == user.id).scalar()
    if profile_active is False:
        raise HTTPException(status_code=403, detail='Account is deactivated')
    return {
        'user_id': user.id,
        'email': user.email,
        'role': get_user_role(db, user.id),
        'token': token,
    }


def require_role(user: dict, allowed_roles: set[str] | Iterable[str], detail: str = 'Forbidden') -> None:
    normalized = {str(role).strip().lower() for role in allowed_roles}
    if str(user.get('role') or '').strip().lower() not in normalized:
        raise HTTPException(status_code=403, detail=detail)


def require_admin(user: dict = Depends(require_auth_user)) -> dict:
    require_role(user, {Role.ADMIN.value}, 'Access denied. Admin only.')
    return user


def require_teacher(user: dict = Depends(require_auth_user)) -> dict:
    require_role(user, {Role.TEACHER.value, Role.ADMIN.value}, 'Access denied. Teacher role required.')
    return user


def is_admin(user: dict) -> bool:
    return str(user.get('role') or '').lower() == Role.ADMIN.value


def is_teacher_in_class(db: Session, teacher_id: int, class_id: int) -> bool:
    return (
        db.query(TeacherClass.id)
        .filter(TeacherClass.teacher_id == int(teacher_id), TeacherClass.class_id == int(class_id))
        .first()
        is not None
    )


def assert_class_scope(
    db: Session,
    user: dict,
    class_id: int,
    detail: str = 'You are not assigned to this class',
) -> None:
    if is_admin(user):
        return
    if not is_teacher_in_class(db, int(user.get('user_id') or 0), class_id):
        raise HTTPException(status_code=403, detail=detail)
