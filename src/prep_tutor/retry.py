"""Retry policy with exponential backoff for grader calls."""
import asyncio
import logging
from dataclasses import dataclass

from prep_tutor.errors import TransientGradingError, classify_grading_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3  # first try plus two retries
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000

    def backoff(self, attempt: int) -> int:
        """Delay in milliseconds before retry number ``attempt`` (0-based)."""
        return min(self.base_delay_ms * 2 ** attempt, self.max_delay_ms)

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(classify_grading_error(exc), TransientGradingError)


async def call_with_retry(fn, policy: RetryPolicy, sleep=asyncio.sleep):
    """Await ``fn()`` until it succeeds or the policy gives up.

    Raises the classified grading error of the last attempt.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_grading_error(exc)
            if not policy.is_retryable(error) or attempt + 1 >= policy.max_attempts:
                if error is exc:
                    raise
                raise error from exc
            delay_ms = policy.backoff(attempt)
            logger.info(
                "Attempt %d failed (%s), retrying in %d ms", attempt + 1, error, delay_ms,
            )
            await sleep(delay_ms / 1000)
            attempt += 1
