"""
Rate-limit retry for text-service calls.

Only rate-limited failures are retried. The server's retry-after hint wins
over the exponential schedule `base * 2 ** attempt`.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..core.exceptions import TextServiceError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Configuration for rate-limit retry.

    Attributes:
        max_retries: Retries after the first attempt (total calls = max_retries + 1)
        base_delay_seconds: Base of the exponential backoff
    """
    max_retries: int = 5
    base_delay_seconds: float = 1.0


def backoff_delay(attempt: int, policy: RetryPolicy, hint: Optional[float] = None) -> float:
    """
    Delay before retry number `attempt` (0-based).

    Args:
        attempt: Zero-based retry index
        policy: Retry policy
        hint: Server-provided wait in seconds, if any

    Returns:
        Delay in seconds
    """
    if hint is not None and hint >= 0:
        return hint
    return policy.base_delay_seconds * (2 ** attempt)


def retry_rate_limited(
    operation: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    operation_name: str = "text service call",
) -> T:
    """
    Run `operation`, retrying exactly `policy.max_retries` times on rate limiting.

    Non-rate-limited errors propagate immediately. When retries are exhausted
    the last rate-limit error propagates.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except TextServiceError as e:
            if not e.is_rate_limited or attempt >= policy.max_retries:
                raise
            delay = backoff_delay(attempt, policy, e.retry_after)
            logger.warning(
                f"{operation_name} rate limited (retry {attempt + 1}/{policy.max_retries}), "
                f"waiting {delay:.2f}s"
            )
            sleep(delay)
            attempt += 1
