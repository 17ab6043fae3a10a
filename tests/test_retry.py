"""
Unit tests for the upload retry policy.
"""

import pytest

from frame_studio.config import AppConfig
from frame_studio.errors import RetryableUploadError, UploadError
from frame_studio.retry import RetryPolicy


class Flaky:
    """Callable that raises the queued errors, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return 'ok'


class TestRetryPolicy:
    """Test exponential backoff retries."""

    def test_delays(self):
        assert list(RetryPolicy().delays()) == [1.0, 2.0]
        assert list(RetryPolicy(max_attempts=5, initial_delay=0.5, multiplier=3).delays()) == [0.5, 1.5, 4.5, 13.5]
        assert list(RetryPolicy(max_attempts=1).delays()) == []

    def test_success_first_time(self):
        sleeps = []
        operation = Flaky()

        assert RetryPolicy(sleep=sleeps.append).call(operation) == 'ok'
        assert operation.calls == 1
        assert sleeps == []

    def test_retries_retryable_errors(self):
        sleeps = []
        operation = Flaky(RetryableUploadError("503"), RetryableUploadError("503"))

        assert RetryPolicy(sleep=sleeps.append).call(operation, "Upload") == 'ok'
        assert operation.calls == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self):
        sleeps = []
        last = RetryableUploadError("still down")
        operation = Flaky(RetryableUploadError("down"), RetryableUploadError("down"), last)

        with pytest.raises(RetryableUploadError) as exc_info:
            RetryPolicy(sleep=sleeps.append).call(operation)

        assert exc_info.value is last
        assert operation.calls == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.parametrize('error', [UploadError("413", status_code=413), ValueError("bad")])
    def test_other_errors_propagate_immediately(self, error):
        sleeps = []
        operation = Flaky(error)

        with pytest.raises(type(error)):
            RetryPolicy(sleep=sleeps.append).call(operation)

        assert operation.calls == 1
        assert sleeps == []

    def test_from_config(self):
        config = AppConfig(RETRY_MAX_ATTEMPTS=4, RETRY_INITIAL_DELAY=0.25, RETRY_MULTIPLIER=2)
        sleeps = []

        policy = RetryPolicy.from_config(config, sleep=sleeps.append)

        assert list(policy.delays()) == [0.25, 0.5, 1.0]
        assert policy.sleep == sleeps.append
