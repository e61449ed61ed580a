from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.schemas import MarkCreateRequest, MarkUpdateRequest
from app.services import marks_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/marks', tags=['Marks'])


@router.post('', status_code=201)
def upload_mark(payload: MarkCreateRequest, user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    row = marks_service.upload_mark(
        db,
        user,
        student_id=payload.student_id,
        subject_id=payload.subject_id,
        exam_id=payload.exam_id,
        marks_obtained=payload.marks_obtained,
    )
    return {'success': True, 'data': marks_service.serialize_mark(row), 'message': 'Marks uploaded successfully'}


@router.put('/{mark_id}')
def update_mark(
    mark_id: int,
    payload: MarkUpdateRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = marks_service.update_mark(db, user, mark_id, marks_obtained=payload.marks_obtained)
    return {'success': True, 'data': marks_service.serialize_mark(row), 'message': 'Marks updated successfully'}


@router.get('/me')
def my_marks(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    rows = marks_service.list_my_marks(db, user)
    data = [marks_service.serialize_mark(row, with_subject=True, with_exam=True) for row in rows]
    return {'success': True, 'data': data, 'count': len(data)}


@router.get('/class/{class_id}')
def class_marks(class_id: int, user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    rows = marks_service.list_class_marks(db, user, class_id)
    data = [marks_service.serialize_mark(row, with_student=True, with_subject=True, with_exam=True) for row in rows]
    return {'success': True, 'data': data, 'count': len(data)}


@router.get('/exam/{exam_id}')
def exam_marks(exam_id: int, user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    rows = marks_service.list_exam_marks(db, user, exam_id)
    data = [marks_service.serialize_mark(row, with_student=True, with_subject=True) for row in rows]
    return {'success': True, 'data': data, 'count': len(data)}
