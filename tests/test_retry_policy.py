from datetime import timedelta

import pytest

from notify_worker.services.retry_policy import (
    MAX_RETRIES,
    backoff_minutes,
    next_retry_at,
    should_retry,
)
from tests.conftest import NOW


@pytest.mark.parametrize(
    "attempt,expected",
    [(1, 1), (2, 2), (3, 4), (4, 8), (6, 32), (7, 60), (100, 60)],
)
def test_backoff_doubles_then_caps_at_an_hour(attempt, expected):
    assert backoff_minutes(attempt) == expected


def test_backoff_clamps_attempt_below_one():
    assert backoff_minutes(0) == 1
    assert backoff_minutes(-3) == 1


def test_backoff_handles_huge_attempt_counts():
    assert backoff_minutes(10 ** 9) == 60


def test_retry_budget():
    assert MAX_RETRIES == 5
    assert should_retry(True, 1)
    assert should_retry(True, 4)
    assert not should_retry(True, 5)
    assert not should_retry(True, 6)


def test_permanent_errors_never_retry():
    assert not should_retry(False, 1)


def test_next_retry_at_adds_backoff():
    assert next_retry_at(NOW, 1) == NOW + timedelta(minutes=1)
    assert next_retry_at(NOW, 3) == NOW + timedelta(minutes=4)
