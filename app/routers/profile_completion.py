from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.schemas import StudentCompletionRequest, TeacherCompletionRequest
from app.services import profile_completion_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/profile-completion', tags=['Profile Completion'])


@router.get('/status')
def completion_status(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    return {'success': True, 'data': profile_completion_service.profile_status(db, user['user_id'])}


@router.post('/student')
def complete_student(
    payload: StudentCompletionRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    data = profile_completion_service.complete_student(db, user, payload.model_dump())
    return {'success': True, 'data': data, 'message': 'Student profile completed successfully'}


@router.post('/teacher')
def complete_teacher(
    payload: TeacherCompletionRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    data = profile_completion_service.complete_teacher(db, user, payload.model_dump())
    return {'success': True, 'data': data, 'message': 'Teacher profile completed successfully'}
