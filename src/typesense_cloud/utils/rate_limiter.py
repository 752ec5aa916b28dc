"""Client-side throttling for management API calls.

Typesense Cloud throttles management API keys per minute. Calls are spaced
with a token bucket per named limiter so bursts from concurrent
reconciliations stay under that budget instead of failing with HTTP 429.
"""

import threading
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class TokenBucket:
    """Thread-safe token bucket.

    Holds up to ``capacity`` tokens and regains ``refill_rate`` tokens per
    second. A waiting caller sleeps exactly as long as the refill needs,
    and gives up if that would exceed ``max_wait`` seconds.
    """

    def __init__(self, capacity: int, refill_rate: float, max_wait: float = 60.0):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.max_wait = max_wait

        self._tokens = float(capacity)
        self._updated_at = time.monotonic()
        self._lock = threading.Lock()

    def _take(self, tokens: int) -> float:
        """Take tokens if available; otherwise return seconds until they are."""
        with self._lock:
            now = time.monotonic()
            self._tokens = min(
                self.capacity, self._tokens + (now - self._updated_at) * self.refill_rate
            )
            self._updated_at = now

            if self._tokens >= tokens:
                self._tokens -= tokens
                return 0.0
            if self.refill_rate <= 0:
                return float("inf")
            return (tokens - self._tokens) / self.refill_rate

    def acquire(self, tokens: int = 1, wait: bool = True) -> bool:
        """Take tokens from the bucket.

        Args:
            tokens: Tokens to take
            wait: Sleep until the tokens are available

        Returns:
            True once taken, False if unavailable and ``wait`` is False

        Raises:
            TimeoutError: If the tokens cannot be had within max_wait
        """
        deadline = time.monotonic() + self.max_wait

        while True:
            shortfall = self._take(tokens)
            if shortfall == 0.0:
                return True

            if not wait:
                logger.debug("rate_limit_tokens_unavailable", requested=tokens)
                return False

            remaining = deadline - time.monotonic()
            if shortfall > remaining:
                logger.error(
                    "rate_limit_wait_exceeded",
                    requested=tokens,
                    needed_wait=round(shortfall, 2),
                    max_wait=self.max_wait,
                )
                raise TimeoutError(
                    f"Rate limit: {tokens} token(s) not available within {self.max_wait}s"
                )

            logger.debug("rate_limit_throttled", wait=round(shortfall, 2))
            time.sleep(shortfall)

    def get_available_tokens(self) -> float:
        """Current token count, after refill."""
        with self._lock:
            elapsed = time.monotonic() - self._updated_at
            return min(self.capacity, self._tokens + elapsed * self.refill_rate)


class RateLimiter:
    """Named token buckets shared by every client in the process."""

    def __init__(self) -> None:
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        capacity: int,
        refill_rate: float,
        max_wait: float = 60.0,
    ) -> None:
        """Create the bucket for a name. The first registration wins.

        Args:
            name: Limiter name
            capacity: Burst size in tokens
            refill_rate: Tokens regained per second
            max_wait: Longest a caller may wait for tokens (seconds)
        """
        with self._lock:
            if name in self._buckets:
                logger.debug("rate_limiter_already_registered", name=name)
                return
            self._buckets[name] = TokenBucket(capacity, refill_rate, max_wait)

        logger.debug(
            "rate_limiter_registered", name=name, capacity=capacity, refill_rate=refill_rate
        )

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._buckets

    def acquire(self, name: str, tokens: int = 1, wait: bool = True) -> bool:
        """Take tokens from the named bucket.

        Raises:
            ValueError: If no bucket is registered under the name
            TimeoutError: If the wait would exceed the bucket's max_wait
        """
        with self._lock:
            bucket = self._buckets.get(name)
        if bucket is None:
            raise ValueError(f"Rate limiter '{name}' not registered")
        return bucket.acquire(tokens=tokens, wait=wait)

    def clear(self) -> None:
        """Forget every bucket."""
        with self._lock:
            self._buckets.clear()


_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Process-wide rate limiter."""
    return _rate_limiter


def rate_limited(limiter_name: str, tokens: int = 1) -> Callable[[F], F]:
    """Take tokens from a named limiter before every call.

    Example:
        @rate_limited("management_api")
        def fetch_cluster(self, cluster_id): ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            get_rate_limiter().acquire(limiter_name, tokens=tokens)
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
