from __future__ import annotations

import logging
import time
from contextvars import ContextVar

from fastapi import Request
from fastapi.routing import APIRoute

from app.config import settings


current_endpoint: ContextVar[str] = ContextVar('current_endpoint', default='background')
request_logger = logging.getLogger('app.request')


class EndpointLabelRoute(APIRoute):
    """Tags every query run inside a handler with 'METHOD /path/template'."""

    def get_route_handler(self):
        handler = super().get_route_handler()
        label = f"{','.join(sorted(self.methods or ()))} {self.path}"

        async def labelled_handler(request: Request):
            token = current_endpoint.set(label)
            try:
                return await handler(request)
            finally:
                current_endpoint.reset(token)

        return labelled_handler


async def log_slow_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        request_logger.info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response
