"""
Retry policy for failed emails.

A failed send is retried at most ``MAX_RETRIES`` times, waiting 1, 5 and
15 minutes after the first, second and third failure.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


MAX_RETRIES = 3
RETRY_DELAYS = (
    timedelta(minutes=1),
    timedelta(minutes=5),
    timedelta(minutes=15),
)


@dataclass
class RetryStatus:
    can_retry: bool
    retries_remaining: int
    next_retry_at: Optional[datetime]


def calculate_next_retry_time(
    retry_count: int,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """When the next retry is due, or None once retries are exhausted."""
    if retry_count >= MAX_RETRIES:
        return None
    delay = RETRY_DELAYS[min(retry_count, len(RETRY_DELAYS) - 1)]
    return (now or datetime.now(timezone.utc)) + delay


def get_retry_status(success: bool, retry_count: int, next_retry_at: Optional[datetime]) -> RetryStatus:
    retry_count = retry_count or 0
    can_retry = not success and retry_count < MAX_RETRIES
    return RetryStatus(
        can_retry=can_retry,
        retries_remaining=max(0, MAX_RETRIES - retry_count),
        next_retry_at=next_retry_at if can_retry else None,
    )
