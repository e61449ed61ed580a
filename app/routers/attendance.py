from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import assert_class_scope, require_auth_user
from app.db import get_db
from app.schemas import AttendanceRequest
from app.services import attendance_service
from app.services.class_service import get_class


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/attendance', tags=['Attendance'])


@router.post('', status_code=201)
def mark_attendance(payload: AttendanceRequest, user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    if not payload.class_id:
        raise AppError('Invalid attendance data', 400)
    entries = attendance_service.validate_entries(payload.attendance)
    assert_class_scope(db, user, payload.class_id)
    day = attendance_service.parse_attendance_date(payload.attendance_date)
    rows = attendance_service.upsert_attendance(
        db,
        class_id=payload.class_id,
        attendance_date=day,
        entries=entries,
        marked_by=user['user_id'],
    )
    return {
        'success': True,
        'data': [attendance_service.serialize_attendance(row) for row in rows],
        'message': 'Attendance marked successfully',
    }


@router.get('/class/{class_id}')
def class_attendance(
    class_id: int,
    date: str | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    get_class(db, class_id)
    assert_class_scope(db, user, class_id)
    day = attendance_service.parse_attendance_date(date) if date else None
    rows = attendance_service.list_class_attendance(db, class_id, day)
    data = [attendance_service.serialize_attendance(row, with_student=True) for row in rows]
    return {'success': True, 'data': data, 'count': len(data)}
