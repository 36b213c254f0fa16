"""
Retry strategy for transient batch failures.

Only failures flagged as transient (dropped connections, operational errors)
are retried; constraint violations and bad data fail immediately.
"""

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    after_log,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """True for exceptions that declare themselves transient."""
    return bool(getattr(exc, "transient", False))


def retrying_transient(
    max_attempts: int,
    wait_seconds: float,
    on_retry: Optional[Callable[[BaseException], None]] = None,
) -> Retrying:
    """
    Build a retry controller for transient failures.

    Args:
        max_attempts: Total attempts including the first one (1 = no retry)
        wait_seconds: Base of the exponential backoff (wait_seconds, 2x, 4x ...)
        on_retry: Called with the failed attempt's exception before sleeping
    """
    log_before_sleep = before_sleep_log(logger, logging.WARNING)

    def before_sleep(retry_state: RetryCallState) -> None:
        log_before_sleep(retry_state)
        if on_retry is not None:
            on_retry(retry_state.outcome.exception())

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_seconds, min=wait_seconds, max=wait_seconds * 8),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep,
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )


def call_with_retry(
    func: Callable[..., T],
    *args,
    max_attempts: int = 1,
    wait_seconds: float = 1.0,
    on_retry: Optional[Callable[[BaseException], None]] = None,
    **kwargs,
) -> T:
    """
    Call `func`, retrying transient failures up to `max_attempts` times.

    The last exception is re-raised unchanged when attempts run out or the
    failure is not transient.
    """
    return retrying_transient(max_attempts, wait_seconds, on_retry)(func, *args, **kwargs)
