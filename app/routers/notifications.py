from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user, require_teacher
from app.db import get_db
from app.schemas import NotificationCreateRequest
from app.services import notification_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/notifications', tags=['Notifications'])


@router.get('')
def my_notifications(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    rows = notification_service.list_user_notifications(db, user['user_id'])
    return {'success': True, 'data': [notification_service.serialize_notification(row) for row in rows]}


@router.patch('/{notification_id}/read')
def mark_read(notification_id: int, user: dict = Depends(require_auth_user), db: Session = Depends(get_db)):
    row = notification_service.mark_notification_read(db, notification_id, user['user_id'])
    return {'success': True, 'data': notification_service.serialize_notification(row)}


@router.post('', status_code=201)
def send_notification(
    payload: NotificationCreateRequest,
    _user: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    row = notification_service.create_notification(
        db,
        user_id=payload.user_id,
        title=payload.title,
        message=payload.message,
        notification_type=payload.type,
        link=payload.link,
    )
    return {'success': True, 'data': notification_service.serialize_notification(row)}
