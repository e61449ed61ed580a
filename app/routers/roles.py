from fastapi import APIRouter, Depends

from app.core.errors import AppError
from app.core.request_logging import EndpointLabelRoute
from app.core.router_guard import require_auth_user


router = APIRouter(route_class=EndpointLabelRoute, prefix='/api/roles', tags=['Roles'])


@router.get('/me')
def my_role(user: dict = Depends(require_auth_user)):
    if not user['role']:
        raise AppError('User role not found', 404)
    return {'success': True, 'data': {'userId': user['user_id'], 'role': user['role']}}
