import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
)

from ..models.envelope import ResponseEnvelope

Sleep = Callable[[float], Awaitable[None]]


def is_retryable_status(status: Optional[int]) -> bool:
    """``None`` stands for "no HTTP response" and is always retryable."""
    if status is None:
        return True
    return status == 408 or status == 429 or 500 <= status < 600


@dataclass
class AttemptOutcome:
    envelope: ResponseEnvelope[Any]
    retryable: bool = False


class RetryPolicy:
    """Decides whether a failed attempt is retried and how long to wait.

    Backoff is linear: the pause before retry number ``attempt + 1`` is
    ``base_delay * (attempt + 1)`` milliseconds, with ``attempt`` counted from 0.
    """

    def __init__(self, max_retries: int = 0, base_delay: float = 1000) -> None:
        self._logger = getLogger("laravel_connector")
        self.max_retries = max_retries
        self.base_delay = base_delay

    def should_retry(
        self, attempt: int, status: Optional[int], *, skip_retry: bool = False
    ) -> bool:
        if skip_retry:
            return False
        return attempt < self.max_retries and is_retryable_status(status)

    def delay_for(self, attempt: int) -> float:
        """Delay in milliseconds before the attempt following ``attempt``."""
        return self.base_delay * (attempt + 1)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number - 1) / 1000

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        status = None
        if outcome is not None and not outcome.failed:
            status = outcome.result().envelope.status
        sleep_time = retry_state.next_action.sleep if retry_state.next_action else 0
        self._logger.warning(
            f"Request failed (status {status}). Retrying after {sleep_time:.2f}s "
            f"(attempt {retry_state.attempt_number}/{self.max_retries})"
        )

    def retrying(
        self, *, skip_retry: bool = False, sleep: Optional[Sleep] = None
    ) -> AsyncRetrying:
        """Build the retry loop for one call.

        The wrapped function must return an ``AttemptOutcome``. Exceptions raised
        by it are never retried and propagate unchanged. When retries run out the
        last outcome is returned instead of raising ``RetryError``.
        """
        max_attempts = 1 if skip_retry else self.max_retries + 1

        return AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=self._wait,
            retry=retry_if_result(lambda outcome: outcome.retryable),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=self._log_retry,
            sleep=sleep or asyncio.sleep,
        )
