from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user, require_teacher
from app.db import get_db
from app.models import Student, SubmissionStatus
from app.schemas import AssignmentCreateRequest
from app.services import assignment_service
from app.services.student_portal_service import resolve_student


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/assignments', tags=['Assignments'])


def _require_student(user: dict = Depends(require_auth_user), db: Session = Depends(get_db)) -> Student:
    return resolve_student(db, user, allow_admin=True)


@router.post('/teacher', status_code=201)
def create_assignment(
    payload: AssignmentCreateRequest,
    user: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    row = assignment_service.create_assignment(
        db,
        user,
        title=payload.title,
        description=payload.description,
        class_id=payload.class_id,
        deadline=payload.deadline,
    )
    return {
        'success': True,
        'data': assignment_service.serialize_assignment(row),
        'message': 'Assignment created successfully',
    }


@router.get('/teacher')
def teacher_assignments(user: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    rows = assignment_service.list_teacher_assignments(db, user)
    return {'success': True, 'data': [assignment_service.serialize_assignment(row, with_class=True) for row in rows]}


@router.get('/teacher/{assignment_id}/submissions')
def assignment_submissions(
    assignment_id: int,
    user: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    rows = assignment_service.list_submissions(db, user, assignment_id)
    return {'success': True, 'data': [assignment_service.serialize_submission(row, with_student=True) for row in rows]}


@router.get('/student')
def student_assignments(student: Student = Depends(_require_student), db: Session = Depends(get_db)):
    return {'success': True, 'data': assignment_service.list_student_assignments(db, student)}


@router.post('/student/{assignment_id}/submit', status_code=201)
def submit_assignment(
    assignment_id: int,
    file: UploadFile | None = File(default=None),
    student: Student = Depends(_require_student),
    db: Session = Depends(get_db),
):
    content = file.file.read() if file is not None else None
    row = assignment_service.submit_assignment(
        db,
        student,
        assignment_id,
        filename=file.filename if file is not None else None,
        content=content,
        content_type=file.content_type if file is not None else None,
    )
    return {
        'success': True,
        'data': assignment_service.serialize_submission(row),
        'message': 'Submitted late' if row.status == SubmissionStatus.LATE.value else 'Submitted successfully',
    }
