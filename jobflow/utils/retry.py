import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_delay: float = 1.0   # seconds
    max_delay: float = 10.0      # seconds
    backoff_multiplier: float = 2.0


DEFAULT_RETRY_CONFIG = RetryConfig()


def _log_retry(operation_name: str, attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        LOGGER.warning(
            "%s failed (attempt %d/%d), retrying in %.2fs: %s",
            operation_name,
            state.attempt_number,
            attempts,
            state.next_action.sleep,
            state.outcome.exception(),
        )
    return before_sleep


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Runs `operation` until it succeeds or `config.max_attempts` is reached.

    Every failed attempt except the last logs a warning and waits; the wait
    starts at `initial_delay` and is multiplied by `backoff_multiplier` after
    each attempt, never exceeding `max_delay`. When all attempts fail the last
    exception is re-raised so the caller can fall back to another strategy.
    """
    config = config or DEFAULT_RETRY_CONFIG
    attempts = max(1, config.max_attempts)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(
            multiplier=config.initial_delay,
            max=config.max_delay,
            exp_base=config.backoff_multiplier,
        ),
        before_sleep=_log_retry(operation_name, attempts),
        sleep=sleep,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                result = await operation()
    except Exception as exc:
        LOGGER.error("%s failed after %d attempts: %s", operation_name, attempts, exc)
        raise
    return result
