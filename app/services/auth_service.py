from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
import threading
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import AppError
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import AuthUser, Profile, Role, UserRole


_REVOKED_TOKENS: dict[str, int] = {}
_TOKENS_LOCK = threading.RLock()
logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return (email or '').strip().lower()


def _mask_email(email: str) -> str:
    local, _, domain = normalize_email(email).partition('@')
    if not domain:
        return '***'
    return f'{local[:1]}***@{domain}'


def find_user_by_email(db: Session, email: str) -> AuthUser | None:
    clean_email = normalize_email(email)
    if not clean_email:
        return None
    return db.query(AuthUser).filter(func.lower(AuthUser.email) == clean_email).first()


def _hash_password(password: str) -> str:
    if len(password or '') < 8:
        raise AppError('Password must be at least 8 characters', 400)
    salt = secrets.token_hex(16)
    iterations = 120000
    derived = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), iterations)
    return f'pbkdf2_sha256${iterations}${salt}${derived.hex()}'


def _verify_password(password: str, password_hash: str) -> bool:
    try:
        algo, iter_raw, salt, digest_hex = password_hash.split('$', 3)
        if algo != 'pbkdf2_sha256':
            return False
        iterations = int(iter_raw)
        derived = hashlib.pbkdf2_hmac('sha256', (password or '').encode('utf-8'), salt.encode('utf-8'), iterations).hex()
        return hmac.compare_digest(derived, digest_hex)
    except ValueError:
        return False


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode('ascii'))


def _encode_jwt(payload: dict) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signing_input = f'{header_part}.{payload_part}'.encode('ascii')
    signature = hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()
    signature_part = _b64url_encode(signature)
    return f'{header_part}.{payload_part}.{signature_part}'


def _decode_jwt(token: str) -> dict | None:
    try:
        header_part, payload_part, signature_part = token.split('.')
    except ValueError:
        return None

    try:
        signing_input = f'{header_part}.{payload_part}'.encode('ascii')
        provided_signature = _b64url_decode(signature_part)
    except (ValueError, UnicodeEncodeError):
        return None
    expected_signature = hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_signature, expected_signature):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, json.JSONDecodeError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    return payload


def issue_session_token(user: AuthUser, *, time_provider: TimeProvider = default_time_provider) -> dict:
    now = time_provider.now()
    expires_at = now + timedelta(hours=settings.auth_session_expiry_hours)
    token = _encode_jwt(
        {
            'sub': user.id,
            'email': user.email,
            'iat': int(now.timestamp()),
            'exp': int(expires_at.timestamp()),
        }
    )
    with _TOKENS_LOCK:
        _REVOKED_TOKENS.pop(token, None)
    return {
        'token': token,
        'user_id': user.id,
        'email': user.email,
        'expires_at': expires_at.isoformat(),
    }


def get_user_role(db: Session, user_id: int) -> str | None:
    row = db.query(UserRole.role).filter(UserRole.user_id == int(user_id)).first()
    if not row:
        return None
    return str(row[0] or '').strip().lower() or None


def signup_password(db: Session, email: str, password: str) -> dict:
    clean_email = normalize_email(email)
    if '@' not in clean_email:
        raise AppError('A valid email is required', 400)
    if find_user_by_email(db, clean_email):
        raise AppError('An account with this email already exists', 409)
    user = AuthUser(email=clean_email, password_hash=_hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info('auth_signup_success email=%s user_id=%s', _mask_email(clean_email), user.id)
    session = issue_session_token(user)
    session['role'] = None
    return session


def login_password(db: Session, email: str, password: str) -> dict:
    user = find_user_by_email(db, email)
    if not user or not user.password_hash or not _verify_password(password, user.password_hash):
        logger.warning('auth_login_failed email=%s', _mask_email(email))
        raise AppError('Invalid email or password', 401)
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if profile and profile.is_active is False:
        raise AppError('Account is deactivated', 403)
    session = issue_session_token(user)
    session['role'] = get_user_role(db, user.id)
    logger.info('auth_login_success email=%s role=%s', _mask_email(user.email), session['role'])
    return session


def ensure_role(db: Session, user_id: int, role: Role | str) -> UserRole:
    """Grant a role if the user has none yet; an existing role is left as is."""
    value = role.value if isinstance(role, Role) else str(role)
    existing = db.query(UserRole).filter(UserRole.user_id == int(user_id)).first()
    if existing:
        return existing
    row = UserRole(user_id=int(user_id), role=value)
    db.add(row)
    db.flush()
    return row


def validate_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict | None:
    if not token:
        return None
    with _TOKENS_LOCK:
        if token in _REVOKED_TOKENS:
            return None

    payload = _decode_jwt(token)
    if not payload:
        return None

    user_id = payload.get('sub')
    email = payload.get('email')
    if user_id is None or not email:
        return None
    expires_at = int(payload.get('exp') or 0)
    if expires_at and expires_at <= int(time_provider.now().timestamp()):
        return None

    return {
        'user_id': int(user_id),
        'email': str(email),
    }


def clear_session_token(token: str | None, *, time_provider: TimeProvider = default_time_provider) -> None:
    """Revoke a token until its own expiry; expired entries are dropped on each call."""
    payload = _decode_jwt(token) if token else None
    if not payload:
        return
    now_ts = int(time_provider.now().timestamp())
    expires_at = int(payload.get('exp') or 0)
    with _TOKENS_LOCK:
        for stale in [key for key, exp in _REVOKED_TOKENS.items() if exp and exp <= now_ts]:
            del _REVOKED_TOKENS[stale]
        if expires_at and expires_at <= now_ts:
            return
        _REVOKED_TOKENS[token] = expires_at
