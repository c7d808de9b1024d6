from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .schemas import ErrorBody

RATE_LIMITED = 429

# Some providers answer 429 for an exhausted plan as well as for throttling.
QUOTA_EXHAUSTED_TYPE = "insufficient_quota"


class RetryDecision(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    FAIL = "fail"


def classify_response(status_code: int, error: Optional[ErrorBody] = None) -> RetryDecision:
    """
    Decide what to do with one HTTP attempt.

    2xx is a success. A rate-limited answer is retried unless its error body
    says the quota is gone. Anything else fails permanently.
    """
    if 200 <= status_code < 300:
        return RetryDecision.SUCCESS
    if status_code == RATE_LIMITED:
        if error is not None and error.type == QUOTA_EXHAUSTED_TYPE:
            return RetryDecision.FAIL
        return RetryDecision.RETRY
    return RetryDecision.FAIL


@dataclass
class ExponentialBackoff:
    initial_interval: float = 0.5
    multiplier: float = 1.5
    randomization_factor: float = 0.5
    max_interval: float = 60.0
    max_elapsed_time: Optional[float] = 60.0

    def interval(self, retry_index: int) -> float:
        return min(self.initial_interval * (self.multiplier ** retry_index), self.max_interval)

    def next_delay(
        self,
        retry_index: int,
        elapsed: float,
        *,
        rng: Callable[[], float] = random.random,
    ) -> Optional[float]:
        """
        Delay before retry number ``retry_index`` (0-based), or None once the
        delay would carry the total past ``max_elapsed_time``.
        """
        base = self.interval(retry_index)
        spread = self.randomization_factor * base
        delay = base - spread + (2 * spread * rng())
        if self.max_elapsed_time is not None and elapsed + delay > self.max_elapsed_time:
            return None
        return delay


__all__ = [
    "RetryDecision",
    "classify_response",
    "ExponentialBackoff",
    "RATE_LIMITED",
    "QUOTA_EXHAUSTED_TYPE",
]
