import logging

import pytest

from conftest import SleepRecorder
from jobflow.utils.retry import RetryConfig, with_retry


class Flaky:
    def __init__(self, failures, result="ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return self.result


def warnings(caplog):
    return [r for r in caplog.records if r.name == "jobflow.utils.retry" and r.levelno == logging.WARNING]


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, caplog):
        operation = Flaky(failures=2)
        sleep = SleepRecorder()

        with caplog.at_level(logging.WARNING, logger="jobflow.utils.retry"):
            result = await with_retry(operation, RetryConfig(max_attempts=3), "fetch", sleep=sleep)

        assert result == "ok"
        assert operation.calls == 3
        assert len(warnings(caplog)) == 2

    @pytest.mark.asyncio
    async def test_exhaustion_rethrows_last_error(self, caplog):
        operation = Flaky(failures=10)

        with caplog.at_level(logging.WARNING, logger="jobflow.utils.retry"):
            with pytest.raises(ConnectionError, match="attempt 3 failed"):
                await with_retry(operation, RetryConfig(max_attempts=3), "fetch", sleep=SleepRecorder())

        assert operation.calls == 3
        assert len(warnings(caplog)) == 2
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    @pytest.mark.asyncio
    async def test_backoff_grows_and_is_capped(self):
        sleep = SleepRecorder()
        config = RetryConfig(max_attempts=5, initial_delay=1.0, max_delay=3.0, backoff_multiplier=2.0)

        with pytest.raises(ConnectionError):
            await with_retry(Flaky(failures=10), config, sleep=sleep)

        assert sleep.delays == [1.0, 2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_first_success_does_not_sleep(self):
        sleep = SleepRecorder()
        assert await with_retry(Flaky(failures=0, result=42), sleep=sleep) == 42
        assert sleep.delays == []
