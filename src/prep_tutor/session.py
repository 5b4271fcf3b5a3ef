"""Timed practice session state machine shared by every subject."""
import asyncio
import logging
import uuid
from datetime import datetime

from prep_tutor.collaborators import (
    Grader, HintTracker, ItemProvider, ReviewCardStore, SessionPersistence,
)
from prep_tutor.errors import GradingError, LoadError, SessionStateError
from prep_tutor.models import (
    AnswerRecord, Rating, ReviewCard, SessionConfig, SessionStatus, SessionSummary,
    TERMINAL_STATUSES, accuracy_percent,
)
from prep_tutor.retry import RetryPolicy
from prep_tutor.sm2 import rate
from prep_tutor.subjects import strategy_for
from prep_tutor.submission import SubmissionPipeline
from prep_tutor.ticker import Ticker

logger = logging.getLogger(__name__)

MAX_HINTS_PER_ITEM = 3


class PracticeSession:
    """One practice attempt.

    Drives ``Configuring -> Loading -> Presenting -> Submitting -> Feedback``
    and on to ``Finalizing -> Completed``, either when the last item is
    advanced past, the time limit is hit, or the user ends the session.
    ``paused`` is an orthogonal flag that is only settable while presenting.
    """

    def __init__(
        self,
        config: SessionConfig,
        strategy=None,
        grader: Grader = None,
        persistence: SessionPersistence = None,
        card_store: ReviewCardStore = None,
        hint_tracker: HintTracker = None,
        policy: RetryPolicy = None,
        sleep=None,
        clock=None,
        ticker_factory=Ticker,
    ):
        self.config = config
        self.strategy = strategy or strategy_for(config.subject, config.review_mode)
        self.clock = clock or datetime.now
        self.pipeline = SubmissionPipeline(grader, policy, sleep, self.clock) if grader else None
        self.persistence = persistence
        self.card_store = card_store
        self.hint_tracker = hint_tracker
        self.ticker_factory = ticker_factory

        self.id = None
        self.status = SessionStatus.CONFIGURING
        self.paused = False
        self.items = []
        self.current_index = 0
        self.elapsed_seconds = 0
        self.time_limit_seconds = config.time_limit_seconds
        self.cards: dict[str, ReviewCard] = {}
        self.last_feedback = None
        self.last_error = None
        self.summary = None

        self._answers = []
        self._ticker = None
        self._inflight = None
        self._item_started_at = 0
        self._hints_used = 0

    # -- read-only views --

    @property
    def answers(self) -> tuple:
        return tuple(self._answers)

    @property
    def failed_submissions(self) -> tuple:
        return tuple(self.pipeline.failed_submissions) if self.pipeline else ()

    @property
    def current_item(self):
        if self.current_index < len(self.items):
            return self.items[self.current_index]
        return None

    @property
    def current_mode(self):
        item = self.current_item
        return self.strategy.mode_for(item) if item else None

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def progress(self) -> dict:
        attempted = len(self._answers)
        correct = sum(1 for a in self._answers if a.correct)
        return {
            "questions_attempted": attempted,
            "questions_correct": correct,
            "total": len(self.items),
            "accuracy": accuracy_percent(correct, attempted),
            "current_index": self.current_index,
            "elapsed_seconds": self.elapsed_seconds,
        }

    # -- lifecycle --

    async def start(self, provider: ItemProvider):
        self._require(SessionStatus.CONFIGURING)
        self._transition(SessionStatus.LOADING)
        try:
            items = await provider.fetch_items(self.config)
        except Exception as exc:
            self._transition(SessionStatus.CONFIGURING)
            logger.warning("Item provider failed for %s: %s", self.config.subject.value, exc)
            raise LoadError(f"Could not load items: {exc}") from exc
        if self.is_finished:
            return
        if not items:
            self._transition(SessionStatus.CONFIGURING)
            raise LoadError("No items match this configuration")

        items = list(items)[: self.config.item_count]
        if self.strategy.uses_scheduler:
            self.cards = await self._load_cards()
            if self.is_finished:
                return
            self.strategy.ensure_cards(items, self.cards, self.clock())
        self.items = self.strategy.order(items, self.cards)
        session_id = await self._create_record()
        self.id = session_id
        if self.is_finished:
            # Ended while the record was being created; close it out too.
            self.summary.session_id = session_id
            await self._persist_summary()
            return

        self.current_index = 0
        self.elapsed_seconds = 0
        self._item_started_at = 0
        self._hints_used = 0
        self._transition(SessionStatus.PRESENTING)
        self._ticker = self.ticker_factory(self.tick)
        self._ticker.start()
        logger.info(
            "Session %s started: %d %s items, limit %ss",
            self.id, len(self.items), self.config.subject.value, self.time_limit_seconds,
        )

    async def tick(self):
        if self.paused or self.status not in (SessionStatus.PRESENTING, SessionStatus.FEEDBACK):
            return
        self.elapsed_seconds += 1
        if self.time_limit_seconds and self.elapsed_seconds >= self.time_limit_seconds:
            logger.info("Session %s hit its %ss time limit", self.id, self.time_limit_seconds)
            await self.end(reason="timeout")

    def pause(self):
        if self.paused:
            raise SessionStateError("Session is already paused")
        self._require(SessionStatus.PRESENTING)
        self.paused = True
        logger.debug("Session %s paused at %ss", self.id, self.elapsed_seconds)

    def resume(self):
        if not self.paused:
            raise SessionStateError("Session is not paused")
        self.paused = False
        logger.debug("Session %s resumed", self.id)

    async def submit_answer(self, value):
        """Grade or self-rate the current item.

        Returns the new AnswerRecord, or None when the session was ended
        while the answer was being graded.
        """
        if self.paused:
            raise SessionStateError("Cannot submit while paused")
        self._require(SessionStatus.PRESENTING)
        item = self.current_item
        answer = self.strategy.validate(item, value)
        mode = self.strategy.mode_for(item)
        time_spent = self.elapsed_seconds - self._item_started_at

        if mode == "flashcards":
            record = AnswerRecord(
                item_id=item.id,
                submitted_value=answer.value,
                time_spent_seconds=time_spent,
                rating=answer,
                hints_used=self._hints_used,
                mode=mode,
            )
            self._transition(SessionStatus.SUBMITTING)
            await self._record(record, rating=answer)
            return record

        if self.pipeline is None:
            raise SessionStateError("No grader is configured for this session")
        self._transition(SessionStatus.SUBMITTING)
        self.last_error = None
        task = asyncio.ensure_future(self.pipeline.submit(item.id, answer, time_spent))
        self._inflight = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self.is_finished:
                logger.info("Discarded in-flight grading of %s", item.id)
                return None
            self._transition(SessionStatus.PRESENTING)
            raise
        except GradingError as exc:
            self.last_error = exc
            if self.status is SessionStatus.SUBMITTING:
                self._transition(SessionStatus.PRESENTING)
            raise
        finally:
            self._inflight = None

        if self.status is not SessionStatus.SUBMITTING:
            logger.info("Discarded late grading result for %s", item.id)
            return None
        record = AnswerRecord(
            item_id=item.id,
            submitted_value=answer,
            time_spent_seconds=time_spent,
            correct=result.correct,
            hints_used=self._hints_used,
            mode=mode,
        )
        self.last_feedback = result
        rating = None
        if mode == "quiz":
            rating = Rating.MEDIUM if result.correct else Rating.AGAIN
        await self._record(record, rating=rating)
        await self._report_progress()
        return record

    async def advance(self):
        """Move to the next item, or finish the session after the last one."""
        self._require(SessionStatus.FEEDBACK)
        if self.current_index + 1 < len(self.items):
            self.current_index += 1
            self._item_started_at = self.elapsed_seconds
            self._hints_used = 0
            self.last_feedback = None
            self._transition(SessionStatus.PRESENTING)
            return self.current_item
        self.current_index = len(self.items)
        await self.end(reason="completed")
        return None

    async def request_hint(self) -> str:
        if self.paused:
            raise SessionStateError("Cannot request hints while paused")
        self._require(SessionStatus.PRESENTING)
        item = self.current_item
        if self._hints_used >= min(MAX_HINTS_PER_ITEM, len(item.hints)):
            raise SessionStateError("No more hints for this item")
        index = self._hints_used
        self._hints_used += 1
        if self.hint_tracker is not None and self.id:
            try:
                await self.hint_tracker.record_hint_usage(
                    self.id, item.id, index, self.elapsed_seconds - self._item_started_at,
                )
            except Exception as exc:
                logger.warning("Hint usage for %s not recorded: %s", item.id, exc)
        return item.hints[index]

    async def end(self, reason: str = "user") -> SessionSummary:
        """Finish the session with whatever answers exist. Never blocked."""
        if self.is_finished:
            return self.summary
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
        self.paused = False
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._transition(SessionStatus.FINALIZING)

        answers = tuple(self._answers)
        self._answers = answers
        self.summary = SessionSummary(
            session_id=self.id,
            subject=self.config.subject,
            questions_attempted=len(answers),
            questions_correct=sum(1 for a in answers if a.correct),
            elapsed_seconds=self.elapsed_seconds,
            end_reason=reason,
            answers=answers,
            failed_submissions=self.failed_submissions,
        )
        await self._persist_summary()
        self._transition(SessionStatus.COMPLETED)
        logger.info(
            "Session %s completed (%s): %d/%d correct in %ss",
            self.id, reason, self.summary.questions_correct,
            self.summary.questions_attempted, self.elapsed_seconds,
        )
        return self.summary

    # -- internals --

    def _require(self, *statuses):
        if self.status not in statuses:
            allowed = ", ".join(s.value for s in statuses)
            raise SessionStateError(
                f"Not allowed while {self.status.value} (requires {allowed})"
            )

    def _transition(self, status: SessionStatus):
        logger.debug("Session %s: %s -> %s", self.id, self.status.value, status.value)
        self.status = status

    async def _record(self, record: AnswerRecord, rating=None):
        self._answers.append(record)
        self._transition(SessionStatus.FEEDBACK)
        if rating is not None:
            await self._rate_card(record.item_id, rating)

    async def _rate_card(self, item_id: str, rating):
        now = self.clock()
        card = self.cards.get(item_id) or ReviewCard.new(item_id, now)
        card = rate(card, rating, now)
        self.cards[item_id] = card
        if self.card_store is None:
            return
        try:
            await self.card_store.save(self.config.user_id, card)
        except Exception as exc:
            logger.warning("Review card %s not saved: %s", item_id, exc)

    async def _load_cards(self) -> dict:
        if self.card_store is None:
            return {}
        try:
            cards = await self.card_store.load_all(self.config.user_id)
        except Exception as exc:
            logger.warning("Review cards for %s not loaded: %s", self.config.user_id, exc)
            return {}
        return {card.item_id: card for card in cards}

    async def _create_record(self) -> str:
        if self.persistence is not None:
            try:
                return await self.persistence.create(self.config)
            except Exception as exc:
                logger.warning("Session record not created, continuing locally: %s", exc)
        return str(uuid.uuid4())

    async def _persist_summary(self):
        if self.persistence is None or not self.id:
            return
        try:
            finalized = await self.persistence.end(self.id, self.summary)
        except Exception as exc:
            logger.warning("Session %s summary not persisted: %s", self.id, exc)
        else:
            if finalized is not None:
                self.summary = finalized
            self.summary.persisted = True

    async def _report_progress(self):
        if self.persistence is None:
            return
        try:
            await self.persistence.update(self.id, self.progress())
        except Exception as exc:
            logger.warning("Progress update for %s failed: %s", self.id, exc)
