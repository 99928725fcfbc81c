"""
Email retry schedule tests.
"""

from datetime import datetime, timedelta, timezone

from app.utils.email_retry import MAX_RETRIES, calculate_next_retry_time, get_retry_status


NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def test_backoff_schedule():
    assert calculate_next_retry_time(0, NOW) == NOW + timedelta(minutes=1)
    assert calculate_next_retry_time(1, NOW) == NOW + timedelta(minutes=5)
    assert calculate_next_retry_time(2, NOW) == NOW + timedelta(minutes=15)


def test_no_retry_once_exhausted():
    assert calculate_next_retry_time(MAX_RETRIES, NOW) is None
    assert calculate_next_retry_time(MAX_RETRIES + 2, NOW) is None


def test_status_for_failed_email():
    due = NOW + timedelta(minutes=5)

    status = get_retry_status(False, 1, due)

    assert status.can_retry
    assert status.retries_remaining == 2
    assert status.next_retry_at == due


def test_status_for_sent_email():
    status = get_retry_status(True, 0, None)

    assert not status.can_retry
    assert status.retries_remaining == MAX_RETRIES
    assert status.next_retry_at is None


def test_status_when_exhausted():
    status = get_retry_status(False, MAX_RETRIES, NOW)

    assert not status.can_retry
    assert status.retries_remaining == 0
    assert status.next_retry_at is None
