"""
Infrastructure-specific decorators, providing cross-cutting concerns like
retry logic for idempotent network operations.
"""

import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..settings import settings

logger = logging.getLogger(__name__)

# --- Retry Logic Settings ---
_RETRY_ATTEMPTS = settings.STORE.retry_attempts
_RETRY_MIN_WAIT_SECONDS = settings.STORE.retry_min_wait
_RETRY_MAX_WAIT_SECONDS = settings.STORE.retry_max_wait


def _log_before_retry(retry_state):
    """Log the retry attempt with details about the exception and wait time."""
    exception = retry_state.outcome.exception()
    next_attempt_in = retry_state.next_action.sleep
    logger.warning(
        f"Retrying {retry_state.fn.__name__} in {next_attempt_in:.2f}s due to "
        f"{type(exception).__name__} (attempt {retry_state.attempt_number})..."
    )


# Only for requests that are safe to repeat (GET probes). Job submission,
# status polls and cancellation are never retried.
retry_on_network_error = retry(
    stop=stop_after_attempt(_RETRY_ATTEMPTS),
    wait=wait_exponential(
        multiplier=1,
        min=_RETRY_MIN_WAIT_SECONDS,
        max=_RETRY_MAX_WAIT_SECONDS,
    ),
    retry=retry_if_exception_type(
        (httpx.ConnectError, httpx.TimeoutException)
    ),
    before_sleep=_log_before_retry,
    reraise=True,
)
