"""Retry decorator with exponential backoff and an optional cancel signal."""
from __future__ import annotations

import functools
import logging
import random
import threading
import time
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator: retries the wrapped function with exponential backoff.

    If the wrapped call receives a ``cancel`` keyword holding a
    ``threading.Event``, the backoff wait returns early once it is set and
    the last error is re-raised instead of trying again.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            cancel: threading.Event | None = kwargs.get("cancel")
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__,
                            max_attempts,
                            exc,
                        )
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
                    if cancel is not None:
                        if cancel.wait(delay):
                            logger.info("%s retry abandoned: cancelled", fn.__qualname__)
                            raise
                    else:
                        time.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
