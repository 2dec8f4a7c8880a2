"""Tests for the fixed-delay rate limiter."""

from unittest.mock import MagicMock

from testrail_sync.ratelimit import FixedDelay


class TestFixedDelay:
    def test_sleeps_every_call(self):
        sleep = MagicMock()
        limiter = FixedDelay(0.2, sleep=sleep)
        limiter.wait()
        limiter.wait()
        assert sleep.call_count == 2
        sleep.assert_called_with(0.2)
        assert limiter.calls == 2

    def test_zero_never_sleeps(self):
        sleep = MagicMock()
        limiter = FixedDelay(0, sleep=sleep)
        limiter.wait()
        sleep.assert_not_called()
        assert limiter.calls == 1
