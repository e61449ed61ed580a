from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.errors import AppError
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user
from app.services import storage_service


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/upload', tags=['Upload'])


@router.post('', status_code=201)
def upload_file(
    file: UploadFile | None = File(default=None),
    bucket: str | None = Form(default=None),
    path: str | None = Form(default=None),
    user: dict = Depends(require_auth_user),
):
    if file is None:
        raise AppError('No file uploaded', 400)
    content = file.file.read()
    data = storage_service.store_upload(
        user_id=user['user_id'],
        bucket=bucket,
        path=path,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
    )
    return {'success': True, 'data': data}
