"""Performance monitoring decorator for service operations."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from beartype import beartype

from ..core.config import get_settings
from ..core.logging_utils import get_logger

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)


@beartype
def performance_monitor(
    operation_name: str,
    max_duration_ms: int | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Time an async operation and warn when it runs slow.

    Args:
        operation_name: Name used in the log line
        max_duration_ms: Threshold in milliseconds; defaults to
            ``settings.slow_operation_ms``
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            threshold = max_duration_ms or get_settings().slow_operation_ms
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            except Exception:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    "%s failed after %.2fms", operation_name, duration_ms
                )
                raise
            finally:
                duration_ms = (time.perf_counter() - start_time) * 1000
                if duration_ms > threshold:
                    logger.warning(
                        "Slow operation %s: %.2fms > %dms threshold",
                        operation_name,
                        duration_ms,
                        threshold,
                    )

        return async_wrapper

    return decorator
