from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.pagination import get_pagination, paginated_response
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.schemas import EnrollmentCreateRequest
from app.services import enrollment_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/enrollments', tags=['Enrollments'])


@router.post('', status_code=201)
def enroll_student(
    payload: EnrollmentCreateRequest,
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = enrollment_service.create_enrollment(db, student_id=payload.student_id, class_id=payload.class_id)
    return {
        'success': True,
        'data': enrollment_service.serialize_enrollment(row),
        'message': 'Student enrolled successfully',
    }


@router.get('/class/{class_id}')
def class_enrollments(
    class_id: int,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    paging = get_pagination(page, limit)
    rows, total = enrollment_service.list_class_enrollments(db, class_id, paging)
    return paginated_response(
        [enrollment_service.serialize_enrollment(row, with_student=True) for row in rows],
        total,
        paging,
    )


@router.get('/student/{student_id}')
def student_enrollments(student_id: int, _user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    rows = enrollment_service.list_student_enrollments(db, student_id)
    return {
        'success': True,
        'data': [enrollment_service.serialize_enrollment(row, with_class=True) for row in rows],
        'count': len(rows),
    }


@router.delete('/{student_id}/{class_id}')
def unenroll_student(
    student_id: int,
    class_id: int,
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    enrollment_service.delete_enrollment(db, student_id, class_id)
    return {'success': True, 'message': 'Student removed from class successfully'}
