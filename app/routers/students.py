from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.schemas import StudentCreateRequest, StudentUpdateRequest
from app.services import student_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/students', tags=['Students'])


@router.post('', status_code=201)
def create_student(
    payload: StudentCreateRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = student_service.create_student(
        db,
        name=payload.name,
        email=payload.email,
        roll_no=str(payload.roll_no) if payload.roll_no is not None else None,
        created_by=user['user_id'],
    )
    return {'success': True, 'data': student_service.serialize_student(row), 'message': 'Student created successfully'}


@router.get('')
def list_students(
    created_by: int | None = Query(default=None, alias='createdBy'),
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    rows = student_service.list_students(db, created_by=created_by)
    return {'success': True, 'data': [student_service.serialize_student(row) for row in rows], 'count': len(rows)}


@router.get('/{student_id}')
def get_student(student_id: int, _user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    return {'success': True, 'data': student_service.serialize_student(student_service.get_student(db, student_id))}


@router.put('/{student_id}')
def update_student(
    student_id: int,
    payload: StudentUpdateRequest,
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = student_service.update_student(db, student_id, name=payload.name, email=payload.email)
    return {'success': True, 'data': student_service.serialize_student(row), 'message': 'Student updated successfully'}


@router.delete('/{student_id}')
def delete_student(student_id: int, _user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    student_service.delete_student(db, student_id)
    return {'success': True, 'message': 'Student deleted successfully'}
