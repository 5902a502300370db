"""
Bounded retry for calls to external services.
"""

import random
import time
from collections.abc import Callable
from typing import TypeVar

from log_organizer.config import RetryPolicy
from log_organizer.core.errors import RetryExhaustedError
from log_organizer.observability.logger import get_logger
from log_organizer.observability.metrics import record_retry

logger = get_logger(__name__)

T = TypeVar("T")


def compute_delay_seconds(policy: RetryPolicy, rng: Callable[[], float] = random.random) -> float:
    """
    Pause before the next attempt, in seconds.

    ``delay_ms`` (scaled by a random factor when jitter is on) is clamped to
    ``[min_delay_ms, max_delay_ms]`` where those bounds are set.
    """
    delay = float(policy.delay_ms or 0)
    if policy.jitter:
        delay *= rng()
    if policy.min_delay_ms is not None:
        delay = max(delay, float(policy.min_delay_ms))
    if policy.max_delay_ms is not None:
        delay = min(delay, float(policy.max_delay_ms))
    return delay / 1000.0


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    call_site: str,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it succeeds or ``policy.max_attempts`` attempts fail.

    Only exceptions matching ``retry_on`` are retried; anything else
    propagates from the attempt that raised it.

    Args:
        fn: Zero-argument callable performing the external call
        policy: Retry policy for this call site
        call_site: Identifier used in logs and metrics
        retry_on: Exception types considered transient
        sleep: Sleep function, replaceable in tests

    Returns:
        Whatever ``fn`` returns

    Raises:
        RetryExhaustedError: If the final attempt fails with a transient error
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn()
        except retry_on as err:
            if attempt >= policy.max_attempts:
                record_retry(call_site, exhausted=True)
                raise RetryExhaustedError(call_site, attempt, err) from err

            delay = compute_delay_seconds(policy)
            record_retry(call_site)
            logger.info(
                f"Retrying {call_site} {attempt}",
                extra={
                    "call_site": call_site,
                    "attempt": attempt,
                    "next_delay_seconds": round(delay, 3),
                    "error_message": str(err),
                },
            )
            if delay > 0:
                sleep(delay)

    # max_attempts >= 1, so the loop always returns or raises
    raise AssertionError("unreachable")
