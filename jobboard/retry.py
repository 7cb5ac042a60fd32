"""Retry decorator with exponential backoff for idempotent backend reads."""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Tuple, Type

from jobboard.errors import ApiError

logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx are worth another try; 4xx never are."""
    if isinstance(exc, ApiError):
        return exc.status is None or exc.status >= 500
    return True


def retry(
    *,
    max_attempts: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (ApiError,),
    when: Callable[[BaseException], bool] = is_transient,
) -> Callable:
    """Decorator: retries the wrapped call while ``when(exc)`` holds."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == max_attempts or not when(exc):
                        raise
                    delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__,
                        attempt,
                        max_attempts,
                        exc,
                        delay,
                    )
                    time.sleep(delay)
            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
