from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.db import get_db
from app.models import Student
from app.services import student_portal_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/student', tags=['Student'])


def _require_student(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)) -> Student:
    return student_portal_service.resolve_student(db, user)


@router.get('/marks')
def my_marks(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    result = student_portal_service.student_marks(db, student)
    return {'success': True, **result}


@router.get('/attendance')
def my_attendance(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    result = student_portal_service.student_attendance(db, student)
    return {'success': True, **result}


@router.get('/attendance/summary')
def my_attendance_summary(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    return {'success': True, 'data': student_portal_service.attendance_summary(db, student)}


@router.get('/notifications')
def my_notifications(
    user: dict = Depends(require_auth_user),
    student: Student = Depends(_require_student),
    db: Session = Depends(get_db),
):
    result = student_portal_service.notification_feed(db, student, user['user_id'])
    return {'success': True, **result}


@router.get('/progress')
def my_progress(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    return {'success': True, 'data': student_portal_service.student_progress(db, student)}


@router.get('/performance')
def my_performance(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    data = student_portal_service.student_performance(db, student)
    return {'success': True, 'data': data, 'count': len(data)}


@router.get('/announcements')
def my_announcements(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    data = student_portal_service.student_announcements(db, student)
    return {'success': True, 'data': data, 'count': len(data)}
