from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.pagination import get_pagination, paginated_response
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user, require_role
from app.db import get_db
from app.models import Role
from app.schemas import ClassCreateRequest
from app.services import class_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/classes', tags=['Classes'])


@router.post('', status_code=201)
def create_class(
    payload: ClassCreateRequest,
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    row = class_service.create_class(db, name=payload.name, section=payload.section, created_by=user['user_id'])
    return {'success': True, 'data': class_service.serialize_class(row), 'message': 'Class created successfully'}


@router.get('')
def list_classes(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    created_by: int | None = Query(default=None, alias='createdBy'),
    _user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    paging = get_pagination(page, limit)
    rows, total = class_service.list_classes(db, paging, created_by=created_by)
    return paginated_response([class_service.serialize_class(row) for row in rows], total, paging)


@router.get('/teacher')
def my_teacher_classes(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    require_role(user, {Role.TEACHER.value}, 'Only teachers can access this')
    return {'success': True, 'data': class_service.get_teacher_classes(db, user['user_id'])}


@router.get('/{class_id}')
def get_class(class_id: int, _user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    return {'success': True, 'data': class_service.serialize_class(class_service.get_class(db, class_id))}


@router.delete('/{class_id}')
def delete_class(class_id: int, _user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    class_service.delete_class(db, class_id)
    return {'success': True, 'message': 'Class deleted successfully'}
