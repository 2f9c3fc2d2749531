"""Shared helpers: retried store reads and stale-response guarding."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.rollbook.config import RollbookConfig, get_config
from src.rollbook.errors import TransientError
from src.rollbook.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    log.warning(
        "store_read_retry",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


async def read_with_retry(
    fn: Callable[..., Awaitable[T]],
    *args,
    config: RollbookConfig | None = None,
    **kwargs,
) -> T:
    """Await a store read, retrying on TransientError.

    Only reads go through here. Writes are issued once; a failed write is
    surfaced to the user instead of being replayed.

    Args:
        fn: Async store method.
        config: Supplies attempt count and wait; defaults to get_config().

    Raises:
        TransientError: If every attempt failed transiently.
        PermanentError: Immediately, without retry.
    """
    config = config or get_config()
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(config.store_read_attempts),
        wait=wait_fixed(config.store_read_wait_seconds),
        retry=retry_if_exception_type(TransientError),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return await fn(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover


class Generation:
    """Monotonic counter tagging in-flight loads.

    Call begin() when a load starts and is_current() when it resolves;
    only the most recently started load may publish its result.
    """

    def __init__(self) -> None:
        self._value = 0

    def begin(self) -> int:
        self._value += 1
        return self._value

    def is_current(self, token: int) -> bool:
        return token == self._value

    @property
    def value(self) -> int:
        return self._value
