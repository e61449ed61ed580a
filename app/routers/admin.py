from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_admin
from app.db import get_db
from app.schemas import ClassDeleteRequest, RoleUpdateRequest, StatusUpdateRequest, TeacherAssignRequest
from app.services import admin_service


router = APIRouter(
    route_class=EndpointLabelRoute,
    prefix='/api/admin',
    tags=['Admin'],
    dependencies=[Depends(require_admin)],
)


@router.get('/overview')
def overview(db: Session = Depends(get_db)):
    return {'success': True, 'data': admin_service.get_overview(db)}


@router.get('/users')
def users(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str = Query(default=''),
    db: Session = Depends(get_db),
):
    result = admin_service.list_users(db, page=page, limit=limit, search=search)
    return {'success': True, **result}


@router.get('/users/students')
def student_users(db: Session = Depends(get_db)):
    data = admin_service.list_student_users(db)
    return {'success': True, 'count': len(data), 'data': data}


@router.get('/users/teachers')
def teacher_users(db: Session = Depends(get_db)):
    data = admin_service.list_teacher_users(db)
    return {'success': True, 'count': len(data), 'data': data}


@router.patch('/users/{user_id}/role')
def update_role(user_id: int, payload: RoleUpdateRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': admin_service.update_user_role(db, user_id, payload.role)}


@router.patch('/users/{user_id}/status')
def update_status(user_id: int, payload: StatusUpdateRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': admin_service.update_user_status(db, user_id, payload.is_active)}


@router.get('/classes')
def classes(db: Session = Depends(get_db)):
    data = admin_service.list_admin_classes(db)
    return {'success': True, 'count': len(data), 'data': data}


@router.patch('/classes/{class_id}')
def soft_delete_class(class_id: int, payload: ClassDeleteRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': admin_service.set_class_deleted(db, class_id, payload.is_deleted)}


@router.post('/classes/{class_id}/teachers', status_code=201)
def assign_teacher(class_id: int, payload: TeacherAssignRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': admin_service.assign_teacher(db, class_id, payload.teacher_id)}


@router.delete('/classes/{class_id}/teachers/{teacher_id}')
def remove_teacher(class_id: int, teacher_id: int, db: Session = Depends(get_db)):
    admin_service.remove_teacher(db, class_id, teacher_id)
    return {'success': True, 'message': 'Teacher removed from class'}


@router.get('/academics')
def academics(
    weak_threshold: float = Query(default=50, alias='weakThreshold'),
    attendance_threshold: float = Query(default=75, alias='attendanceThreshold'),
    db: Session = Depends(get_db),
):
    data = admin_service.get_academics(
        db,
        weak_threshold=weak_threshold,
        attendance_threshold=attendance_threshold,
    )
    return {'success': True, 'data': data}
