from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from app.config import settings


logger = logging.getLogger('app.metrics')


def _timed(
    *,
    label: str,
    threshold_ms: int | None = None,
    log_label: str = 'timed',
) -> Callable[[Callable[..., object]], Callable[..., object]]:
    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        threshold_value = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms

        def _log(duration_ms: float) -> None:
            if duration_ms >= threshold_value:
                logger.info(
                    'service_timer label=%s duration_ms=%.2f event=%s',
                    label,
                    duration_ms,
                    log_label,
                )

        if asyncio.iscoroutinefunction(func):
            async def async_wrapper(*args: object, **kwargs: object):
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    _log((time.perf_counter() - started) * 1000.0)

            return async_wrapper  # type: ignore[return-value]

        def sync_wrapper(*args: object, **kwargs: object):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log((time.perf_counter() - started) * 1000.0)

        sync_wrapper.__name__ = getattr(func, '__name__', label)
        sync_wrapper.__doc__ = func.__doc__
        return sync_wrapper  # type: ignore[return-value]

    return decorator


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    return _timed(label=label, threshold_ms=threshold_ms, log_label='service')
