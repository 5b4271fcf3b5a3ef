"""Answer submission pipeline: grade with retries, keep failed attempts."""
import asyncio
import logging
from datetime import datetime

from prep_tutor.collaborators import Grader
from prep_tutor.errors import GradingError, TransientGradingError
from prep_tutor.models import FailedSubmission, GradeResult
from prep_tutor.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    def __init__(self, grader: Grader, policy: RetryPolicy = None, sleep=None, clock=None):
        self.grader = grader
        self.policy = policy or RetryPolicy()
        self.sleep = sleep or asyncio.sleep
        self.clock = clock or datetime.now
        self.failed_submissions: list[FailedSubmission] = []

    async def submit(self, item_id: str, answer: str, time_spent: int) -> GradeResult:
        """Grade one answer.

        Transient failures are retried per the policy. When the grader still
        fails, the attempt is kept in ``failed_submissions`` and the
        classified error is raised to the caller.
        """
        async def attempt():
            return await self.grader.submit(item_id, answer, time_spent)

        try:
            result = await call_with_retry(attempt, self.policy, sleep=self.sleep)
        except GradingError as exc:
            self._preserve(item_id, answer, time_spent, exc)
            if isinstance(exc, TransientGradingError):
                logger.warning(
                    "Grading %s failed after %d attempts: %s",
                    item_id, self.policy.max_attempts, exc,
                )
            else:
                logger.warning("Grading %s rejected: %s", item_id, exc)
            raise
        self._resolve(item_id)
        if not isinstance(result, GradeResult):
            result = GradeResult(**result)
        return result

    def _resolve(self, item_id):
        """Drop earlier failed attempts at an item that has now been graded."""
        kept = [f for f in self.failed_submissions if f.item_id != item_id]
        if len(kept) != len(self.failed_submissions):
            logger.debug("Grading %s succeeded, clearing earlier failures", item_id)
            self.failed_submissions[:] = kept

    def _preserve(self, item_id, answer, time_spent, exc):
        self.failed_submissions.append(FailedSubmission(
            item_id=item_id,
            answer=answer,
            time_spent_seconds=time_spent,
            error=str(exc),
            timestamp=self.clock(),
        ))
