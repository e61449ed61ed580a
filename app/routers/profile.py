from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.schemas import ProfileCompleteRequest, ProfileUpsertRequest, StudentDetailsRequest, TeacherDetailsRequest
from app.services import profile_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/profile', tags=['Profile'])


@router.post('/complete', status_code=201)
def complete_profile(payload: ProfileCompleteRequest, db: Session = Depends(get_db)):
    profile = profile_service.complete_profile(db, payload.model_dump())
    return {
        'success': True,
        'data': profile_service.profile_payload(db, profile, profile.role),
        'message': 'Profile completed successfully',
    }


@router.get('')
@router.get('/me')
def my_profile(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    return {'success': True, 'data': profile_service.get_my_profile(db, user)}


@router.post('')
@router.put('')
def upsert_profile(
    payload: ProfileUpsertRequest,
    response: Response,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    profile, created = profile_service.upsert_profile(db, user, payload.model_dump(exclude_unset=True))
    response.status_code = 201 if created else 200
    return {
        'success': True,
        'data': profile_service.profile_payload(db, profile, user['role']),
        'message': 'Profile created successfully' if created else 'Profile updated successfully',
    }


@router.post('/photo')
def upload_photo(
    photo: UploadFile | None = File(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    if photo is None:
        raise AppError('No file uploaded', 400)
    content = photo.file.read()
    _, url = profile_service.upload_profile_photo(db, user, content, photo.content_type)
    return {'success': True, 'data': {'profile_photo_url': url}, 'message': 'Profile photo uploaded successfully'}


@router.delete('/photo')
def delete_photo(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    profile_service.delete_profile_photo(db, user)
    return {'success': True, 'message': 'Profile photo deleted successfully'}


@router.put('/student')
def update_student_details(
    payload: StudentDetailsRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = profile_service.update_student_details(db, user, payload.model_dump())
    return {'success': True, 'data': profile_service.serialize_student_profile(row)}


@router.put('/teacher')
def update_teacher_details(
    payload: TeacherDetailsRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = profile_service.update_teacher_details(db, user, payload.model_dump())
    return {'success': True, 'data': profile_service.serialize_teacher_profile(row)}
