"""
Retry Logic
Retries transient connection failures before a site is reported unreachable

Only CONNECTING is retried. Queries, token exchanges and API dispatches are
attempted once per run.
"""
import inspect
import logging
from functools import wraps
from typing import Tuple, Type

import psycopg
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


# ============================================================================
# DATABASE CONNECT RETRY
# ============================================================================

def with_connect_retry(max_attempts: int = 3, min_wait: float = 1, max_wait: float = 5):
    """
    Decorator for database connect calls with exponential backoff retry.

    Retries on:
    - psycopg.OperationalError (server unreachable, connect timeout, auth race)

    Strategy:
    - max_attempts attempts, exponential backoff between min_wait and max_wait
    - The last error is re-raised unchanged

    Usage:
        @with_connect_retry(max_attempts=3)
        def open_connection():
            ...
    """
    return with_retry(
        max_attempts=max_attempts,
        min_wait=min_wait,
        max_wait=max_wait,
        exceptions=(psycopg.OperationalError,),
    )


# ============================================================================
# GENERIC RETRY
# ============================================================================

def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)
):
    """
    Generic retry decorator for sync or async functions.

    Usage:
        @with_retry(max_attempts=3, min_wait=2, max_wait=8)
        async def my_call():
            ...
    """
    def decorator(func):
        retrying = retry(
            retry=retry_if_exception_type(exceptions),
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

        @retrying
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            return await func(*args, **kwargs)

        @retrying
        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
