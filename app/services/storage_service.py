from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

from app.config import settings
from app.core.errors import AppError
from app.core.time_provider import TimeProvider, default_time_provider


logger = logging.getLogger(__name__)

ASSETS_BUCKET = 'campusflow-assets'
UPLOAD_BUCKETS = ('course-materials', 'assignments', 'avatars')
ALLOWED_UPLOAD_TYPES = frozenset(
    {
        'image/jpeg',
        'image/png',
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.ms-excel',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        'text/plain',
        'application/zip',
    }
)
INVALID_TYPE_MESSAGE = 'Invalid file type. Only images, PDFs, Docs, and Spreadsheets are allowed.'

_UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9.-]')


def sanitize_filename(filename: str | None) -> str:
    return _UNSAFE_FILENAME_CHARS.sub('_', filename or '') or 'file'


def validate_upload(content: bytes, content_type: str | None, *, allowed_types=ALLOWED_UPLOAD_TYPES) -> None:
    if (content_type or '') not in allowed_types:
        raise AppError(INVALID_TYPE_MESSAGE, 400)
    if len(content) > settings.upload_max_bytes:
        raise AppError('File too large. Maximum size is 5MB', 400)


def _object_path(bucket: str, key: str) -> Path:
    clean_key = PurePosixPath(key)
    if clean_key.is_absolute() or '..' in clean_key.parts or not clean_key.parts:
        raise AppError('Invalid file path', 400)
    return Path(settings.storage_dir).joinpath(bucket, *clean_key.parts)


def public_url(bucket: str, key: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/storage/{bucket}/{key}"


def object_exists(bucket: str, key: str) -> bool:
    return _object_path(bucket, key).is_file()


def save_file(bucket: str, key: str, content: bytes, *, upsert: bool = True) -> str:
    """Write an object under the storage root and return its public URL."""
    target = _object_path(bucket, key)
    if not upsert and target.exists():
        raise AppError('The resource already exists', 409)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        target.write_bytes(content)
    except OSError as exc:
        logger.exception('storage_write_failed bucket=%s key=%s', bucket, key)
        raise AppError(f'Upload failed: {exc.strerror or exc}', 500) from exc
    logger.info('storage_write bucket=%s key=%s bytes=%s', bucket, key, len(content))
    return public_url(bucket, key)


def delete_file(bucket: str, key: str) -> bool:
    target = _object_path(bucket, key)
    if not target.is_file():
        return False
    try:
        target.unlink()
    except OSError:
        logger.exception('storage_delete_failed bucket=%s key=%s', bucket, key)
        return False
    logger.info('storage_delete bucket=%s key=%s', bucket, key)
    return True


def store_upload(
    *,
    user_id: int,
    bucket: str | None,
    path: str | None,
    filename: str | None,
    content: bytes,
    content_type: str | None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if not bucket:
        raise AppError('Bucket name is required', 400)
    if bucket not in UPLOAD_BUCKETS:
        raise AppError('Invalid bucket', 400)
    validate_upload(content, content_type)

    name = sanitize_filename(filename)
    clean_path = (path or '').strip().strip('/')
    if clean_path:
        key = f'{clean_path}/{name}'
    else:
        stamp = int(time_provider.now().timestamp() * 1000)
        key = f'{user_id}/{stamp}-{name}'
    url = save_file(bucket, key, content, upsert=False)
    return {
        'path': key,
        'fullPath': f'{bucket}/{key}',
        'name': name,
        'size': len(content),
        'type': content_type,
        'url': url,
    }
