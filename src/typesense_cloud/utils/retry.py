"""Backoff for idempotent management API reads.

Only reads go through here. Creates, patches, terminations and key
issuance carry no deduplication key, so replaying them could act twice.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from typesense_cloud.core.config import RetryConfig
from typesense_cloud.core.exceptions import TransportError
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _log_before_retry(max_attempts: int) -> Callable[[RetryCallState], None]:
    def log(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "retry_scheduled",
            function=getattr(state.fn, "__name__", None),
            attempt=state.attempt_number,
            max_attempts=max_attempts,
            next_wait=round(state.next_action.sleep, 2) if state.next_action else None,
            exception=type(error).__name__ if error else None,
            message=str(error) if error else None,
        )

    return log


def retry_on_exception(
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Callable[[F], F]:
    """Retry a function with exponential backoff on the given exceptions.

    The last exception is re-raised once attempts run out; anything not in
    ``exceptions`` propagates on the first failure.

    Args:
        exceptions: Exception types worth another attempt
        max_attempts: Total attempts including the first
        min_wait: Lower bound of the backoff (seconds)
        max_wait: Upper bound of the backoff (seconds)

    Returns:
        Decorator
    """
    return retry(
        retry=retry_if_exception_type(exceptions),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=_log_before_retry(max_attempts),
        reraise=True,
    )


def retry_transport_errors(config: RetryConfig) -> Callable[[F], F]:
    """Retry on TransportError using the configured attempts and backoff."""
    return retry_on_exception(
        exceptions=(TransportError,),
        max_attempts=config.max_attempts,
        min_wait=config.min_wait_seconds,
        max_wait=config.max_wait_seconds,
    )
