from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppError(Exception):
    """Error carrying the HTTP status it should be reported with."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_body(message: str, status_code: int) -> dict:
    return {
        'success': False,
        'error': {
            'message': message,
            'statusCode': status_code,
        },
    }


def _error_response(message: str, status_code: int, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, status_code), headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request'
    first = errors[0]
    location = [str(part) for part in first.get('loc', ()) if part not in ('body', 'query', 'path', 'form')]
    field = '.'.join(location)
    message = str(first.get('msg') or 'Invalid value')
    return f'{field}: {message}' if field else message


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error('app_error path=%s status_code=%s message=%s', request.url.path, exc.status_code, exc.message)
    return _error_response(exc.message, exc.status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == 'Not Found':
        return _error_response('Route not found', 404)
    return _error_response(str(exc.detail), exc.status_code, headers=getattr(exc, 'headers', None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(_validation_message(exc), 400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('unhandled_error path=%s method=%s', request.url.path, request.method)
    return _error_response('Internal Server Error', 500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
