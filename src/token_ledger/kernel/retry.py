"""
Retry policy for SQLite lock contention

The CLI, the metrics server and a long-running process may all open the
same ledger file. SQLite answers a competing writer with "database is
locked"; those calls are retried with exponential backoff. Domain errors
are never retried: a rejected mint stays rejected.
"""

import sqlite3
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from token_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _log_lock_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "SQLite busy, retrying",
        function=getattr(retry_state.fn, "__name__", None),
        attempt=retry_state.attempt_number,
        error=str(outcome.exception()) if outcome else None,
    )


def retry_on_sqlite_lock(
    max_attempts: int = 3,
    min_wait_ms: int = 100,
    max_wait_ms: int = 1000,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorate an event store call so it survives short lock contention

    Only sqlite3.OperationalError triggers a retry. After max_attempts the
    last error is re-raised unchanged.

    Example:
        @retry_on_sqlite_lock()
        def load_stream(self, stream_id): ...
    """
    return retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait_ms / 1000, max=max_wait_ms / 1000),
        before_sleep=_log_lock_retry,
        reraise=True,
    )
