from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import AppError
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import resolve_token, require_auth_user
from app.db import get_db
from app.schemas import AuthRequest
from app.services.auth_service import clear_session_token, login_password, signup_password


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/auth', tags=['Auth'])


def _session_cookie_response(data: dict, status_code: int = 200):
    response = JSONResponse(
        status_code=status_code,
        content={
            'success': True,
            'data': {
                'token': data['token'],
                'expiresAt': data['expires_at'],
                'user': {'id': data['user_id'], 'email': data['email']},
                'role': data['role'],
            },
        },
    )
    response.set_cookie(
        key='auth_session',
        value=data['token'],
        httponly=True,
        samesite='lax',
        secure=False,
        max_age=settings.auth_session_expiry_hours * 60 * 60,
    )
    return response


def _require_credentials(payload: AuthRequest) -> None:
    if not payload.email.strip() or not payload.password:
        raise AppError('Email and password are required', 400)


@router.post('/signup')
def auth_signup(payload: AuthRequest, db: Session = Depends(get_db)):
    _require_credentials(payload)
    data = signup_password(db, payload.email, payload.password)
    return _session_cookie_response(data, status_code=201)


@router.post('/login')
def auth_login(payload: AuthRequest, db: Session = Depends(get_db)):
    _require_credentials(payload)
    data = login_password(db, payload.email, payload.password)
    return _session_cookie_response(data)


@router.post('/logout')
def auth_logout(request: Request):
    clear_session_token(resolve_token(request))
    response = JSONResponse({'success': True, 'message': 'Logged out'})
    response.delete_cookie('auth_session')
    return response


me_router = APIRouter(route_class=EndpointLabelRoute, prefix='/api', tags=['Auth'])


@me_router.get('/test-auth')
def test_auth(user: dict = Depends(require_auth_user)):
    return {
        'success': True,
        'message': 'Authentication successful',
        'userId': user['user_id'],
        'email': user['email'],
    }
