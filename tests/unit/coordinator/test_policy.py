"""
Unit tests for RetryPolicy.
"""

import pytest

from mail_queue.coordinator import RetryPolicy


def test_default_schedule_matches_one_two_four_seconds():
    """Defaults: 3 retries, 1000ms base, doubling."""
    rp = RetryPolicy()
    assert rp.max_retries == 3
    assert rp.max_attempts == 4
    assert rp.schedule_ms() == [1000, 2000, 4000]


def test_backoff_is_uncapped():
    """No ceiling on the delay: growth is bounded only by max_retries."""
    rp = RetryPolicy(max_retries=12, base_delay_ms=10)
    vals = [rp.next_backoff_ms(n) for n in range(12)]
    assert vals[0] == 10
    assert vals[-1] == 10 * 2**11
    assert vals == sorted(vals)


def test_should_retry_until_ceiling():
    rp = RetryPolicy(max_retries=2)
    assert rp.should_retry(0)
    assert rp.should_retry(1)
    assert not rp.should_retry(2)


def test_zero_retries_means_single_attempt():
    rp = RetryPolicy(max_retries=0)
    assert rp.max_attempts == 1
    assert rp.schedule_ms() == []
    assert not rp.should_retry(0)


@pytest.mark.parametrize("kwargs", [{"max_retries": -1}, {"base_delay_ms": -5}])
def test_invalid_policy_rejected(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
