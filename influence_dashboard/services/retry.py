from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ..errors import StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    OperationalError,
    DisconnectionError,
    PoolTimeoutError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff policy for store calls.

    - attempts: total tries (first call included)
    - base_delay: seconds; the wait after attempt N is base_delay * N
    - retry_on: exception types considered transient
    - sleep: injectable for tests
    """

    attempts: int = 3
    base_delay: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS
    sleep: Callable[[float], None] = time.sleep

    def delay_for(self, attempt: int) -> float:
        return max(0.0, float(self.base_delay)) * max(1, int(attempt))


def with_retry(policy: RetryPolicy, *, label: Optional[str] = None) -> Callable:
    """
    Decorator applied to every store call.

    Transient errors are retried until policy.attempts is exhausted, then
    surface as StoreUnavailableError. Any other SQLAlchemy error is wrapped in
    StoreError immediately (retrying a bad query never helps).

    Example:
        @with_retry(RetryPolicy(attempts=3, base_delay=0.5), label="elections")
        def fetch():
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = label or func.__name__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts = max(1, int(policy.attempts))
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except policy.retry_on as exc:
                    if attempt >= attempts:
                        logger.error("[retry] %s failed after %d attempts: %s", name, attempts, exc)
                        raise StoreUnavailableError(
                            f"{name} failed after {attempts} attempts",
                            attempts=attempts,
                        ) from exc
                    delay = policy.delay_for(attempt)
                    logger.warning(
                        "[retry] %s failed (attempt %d/%d): %s. Retrying in %.2fs",
                        name,
                        attempt,
                        attempts,
                        exc,
                        delay,
                    )
                    policy.sleep(delay)
                except SQLAlchemyError as exc:
                    raise StoreError(f"{name} failed: {exc}") from exc
            # unreachable: the loop either returns or raises
            raise StoreUnavailableError(f"{name} failed", attempts=attempts)

        return wrapper

    return decorator
