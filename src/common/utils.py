"""
Utilities
=========

This module provides utility functions that are used across the application
but do not belong to a more specific domain like the transport or the
classification engine.

Currently, it contains the `retry` decorator used for every call to the
generation service. Failed attempts are retried with a linear backoff keyed
by the attempt number, and the last error is re-raised once the configured
attempt ceiling is reached.
"""
import logging
import time
from functools import wraps
from typing import Callable, Type, TypeVar

from .config import Settings

log = logging.getLogger(__name__)
T = TypeVar("T")


def retry(
    retryable_exceptions: tuple[Type[Exception], ...],
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    A decorator that retries a method call on specific exceptions.

    The decorated method's instance must expose ``self.settings`` with
    ``RETRY_ATTEMPTS`` and ``RETRY_DELAY_BASE``.

    Args:
        retryable_exceptions: A tuple of exception types that should trigger a retry.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            settings: Settings = self.settings
            if settings.RETRY_ATTEMPTS < 1:
                raise ValueError("RETRY_ATTEMPTS must be >= 1")
            for attempt in range(1, settings.RETRY_ATTEMPTS + 1):
                try:
                    return func(self, *args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == settings.RETRY_ATTEMPTS:
                        log.error(
                            "%s failed after %d attempts: %s",
                            func.__name__,
                            attempt,
                            e,
                        )
                        raise
                    log.warning(
                        "%s failed (%s) - retry %d/%d",
                        func.__name__,
                        e,
                        attempt,
                        settings.RETRY_ATTEMPTS,
                    )
                    _sleep_backoff(attempt, settings)
            # Unreachable while RETRY_ATTEMPTS >= 1
            raise RuntimeError("Retry loop exited unexpectedly.")

        return wrapper

    return decorator


def _sleep_backoff(attempt: int, settings: Settings) -> None:
    """Sleep for ``RETRY_DELAY_BASE * attempt`` seconds."""
    delay = settings.RETRY_DELAY_BASE * attempt
    log.info(
        "Sleeping %.1f s before retry %d/%d",
        delay,
        attempt,
        settings.RETRY_ATTEMPTS,
    )
    time.sleep(delay)
