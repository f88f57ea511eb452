"""
Retry Policy
Exponential backoff in minutes and the retry budget for delivery failures
"""
from datetime import datetime, timedelta

MAX_RETRIES = 5
MAX_BACKOFF_MINUTES = 60


def backoff_minutes(attempt: int) -> int:
    """
    Delay before the next claim, for a 1-based attempt number

    1 -> 1, 2 -> 2, 3 -> 4 ... capped at MAX_BACKOFF_MINUTES
    """
    exponent = max(int(attempt), 1) - 1
    # 2**6 already exceeds the cap, don't build huge ints for large attempts
    if exponent >= 6:
        return MAX_BACKOFF_MINUTES
    return min(2 ** exponent, MAX_BACKOFF_MINUTES)


def should_retry(retryable: bool, next_attempt: int) -> bool:
    """Reschedule only transient failures while the budget lasts."""
    return retryable and next_attempt < MAX_RETRIES


def next_retry_at(now: datetime, attempt: int) -> datetime:
    return now + timedelta(minutes=backoff_minutes(attempt))
