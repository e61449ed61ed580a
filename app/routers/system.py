from fastapi import APIRouter

from app.config import settings
from app.core.request_logging import EndpointLabelRoute
from app.core.time_provider import default_time_provider


router = APIRouter(route_class=EndpointLabelRoute, tags=['System'])


@router.get('/health')
def health():
    return {
        'success': True,
        'message': 'CampusFlow API is running',
        'timestamp': default_time_provider.utcnow().isoformat() + 'Z',
    }


@router.get('/api/status')
def status():
    return {'success': True, 'status': 'operational', 'version': settings.app_version}
