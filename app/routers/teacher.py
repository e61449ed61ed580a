from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.pagination import get_pagination, total_pages
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import assert_class_scope, require_teacher
from app.db import get_db
from app.schemas import (
    AnnouncementRequest,
    AttendanceRequest,
    ExamCreateRequest,
    PerformanceReportRequest,
    SubjectCreateRequest,
    TeacherMarksRequest,
)
from app.services import curriculum_service, teacher_service
from app.services.attendance_service import serialize_attendance
from app.services.class_service import get_class
from app.services.marks_service import serialize_mark
from app.services.profile_service import parse_date


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/teacher', tags=['Teacher'])


@router.get('/students')
def my_students(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str = Query(default=''),
    class_id: int | None = Query(default=None, alias='classId'),
    sort_by: str = Query(default='name', alias='sortBy'),
    sort_order: str = Query(default='asc', alias='sortOrder'),
    user: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    paging = get_pagination(page, limit, default_limit=20, max_limit=100)
    rows, total = teacher_service.list_teacher_students(
        db,
        user['user_id'],
        paging,
        search=search,
        class_id=class_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        'success': True,
        'data': rows,
        'pagination': {
            'page': paging.page,
            'limit': paging.limit,
            'total': total,
            'totalPages': total_pages(total, paging.limit),
        },
    }


@router.post('/marks', status_code=201)
def upload_marks(payload: TeacherMarksRequest, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    rows = teacher_service.bulk_upload_marks(
        db,
        user,
        class_id=payload.class_id,
        exam_id=payload.exam_id,
        subject_id=payload.subject_id,
        marks=payload.marks,
    )
    return {
        'success': True,
        'data': [serialize_mark(row) for row in rows],
        'message': f'Marks uploaded for {len(rows)} students',
    }


@router.post('/attendance', status_code=201)
def record_attendance(payload: AttendanceRequest, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    rows, day = teacher_service.record_attendance(
        db,
        user,
        class_id=payload.class_id,
        attendance_date=payload.attendance_date,
        attendance=payload.attendance,
    )
    return {
        'success': True,
        'data': [serialize_attendance(row) for row in rows],
        'message': f'Attendance recorded for {len(rows)} students on {day.isoformat()}',
    }


@router.post('/announcement', status_code=201)
def create_announcement(payload: AnnouncementRequest, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    row = teacher_service.create_announcement(
        db,
        user,
        class_id=payload.class_id,
        title=payload.title,
        body=payload.body,
    )
    return {
        'success': True,
        'data': teacher_service.serialize_announcement(row),
        'message': 'Announcement created successfully',
    }


@router.get('/announcements/{class_id}')
def class_announcements(class_id: int, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    assert_class_scope(db, user, class_id)
    rows = teacher_service.list_class_announcements(db, class_id)
    return {'success': True, 'data': [teacher_service.serialize_announcement(row) for row in rows], 'count': len(rows)}


@router.post('/performance', status_code=201)
def save_performance_report(
    payload: PerformanceReportRequest,
    user: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    row = teacher_service.upsert_performance_report(db, user, payload.model_dump(by_alias=True))
    return {
        'success': True,
        'data': teacher_service.serialize_performance_report(row),
        'message': 'Performance report saved successfully',
    }


@router.get('/subjects/{class_id}')
def class_subjects(class_id: int, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    assert_class_scope(db, user, class_id)
    rows = curriculum_service.list_subjects(db, class_id)
    return {'success': True, 'data': [curriculum_service.serialize_subject(row) for row in rows]}


@router.post('/subjects', status_code=201)
def create_subject(payload: SubjectCreateRequest, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    if not payload.class_id:
        raise AppError('classId is required', 400)
    get_class(db, payload.class_id)
    assert_class_scope(db, user, payload.class_id)
    row = curriculum_service.create_subject(db, class_id=payload.class_id, name=payload.name)
    return {'success': True, 'data': curriculum_service.serialize_subject(row)}


@router.get('/exams/{class_id}')
def class_exams(class_id: int, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    assert_class_scope(db, user, class_id)
    rows = curriculum_service.list_exams(db, class_id)
    return {'success': True, 'data': [curriculum_service.serialize_exam(row) for row in rows]}


@router.post('/exams', status_code=201)
def create_exam(payload: ExamCreateRequest, user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    if not payload.class_id:
        raise AppError('classId is required', 400)
    get_class(db, payload.class_id)
    assert_class_scope(db, user, payload.class_id)
    row = curriculum_service.create_exam(
        db,
        class_id=payload.class_id,
        name=payload.name,
        max_marks=payload.max_marks,
        exam_date=parse_date(payload.exam_date, 'examDate'),
    )
    return {'success': True, 'data': curriculum_service.serialize_exam(row)}


@router.get('/stats')
def stats(user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    return {'success': True, 'data': teacher_service.teacher_stats(db, user['user_id'])}
