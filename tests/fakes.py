"""In-memory collaborators shared by the test modules."""
import asyncio
from datetime import datetime

from prep_tutor.errors import PersistenceError
from prep_tutor.models import GradeResult, Item, Subject

NOW = datetime(2026, 3, 1, 9, 0, 0)


class FakeTicker:
    """Stands in for the real one-second ticker; tests call session.tick()."""

    def __init__(self, callback):
        self.callback = callback
        self.running = False

    def start(self):
        self.running = True

    def stop(self):
        self.running = False


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)

    @property
    def total(self):
        return sum(self.delays)


class FakeGrader:
    """Grades against ``answers``; raises queued ``failures`` first."""

    def __init__(self, answers=None, failures=()):
        self.answers = answers or {}
        self.failures = list(failures)
        self.calls = []

    async def submit(self, item_id, answer, time_spent):
        self.calls.append((item_id, answer, time_spent))
        if self.failures:
            raise self.failures.pop(0)
        expected = self.answers.get(item_id)
        return GradeResult(
            correct=answer == expected, explanation=f"explains {item_id}", correct_answer=expected,
        )


class BlockingGrader:
    """Never answers until ``release`` is set."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def submit(self, item_id, answer, time_spent):
        self.started.set()
        await self.release.wait()
        return GradeResult(correct=True)


class ListProvider:
    def __init__(self, items):
        self.items = items
        self.configs = []

    async def fetch_items(self, config):
        self.configs.append(config)
        return list(self.items)


class FailingProvider:
    async def fetch_items(self, config):
        raise ConnectionError("item service unavailable")


class FakePersistence:
    def __init__(self, fail_create=False, fail_update=False, fail_end=False):
        self.fail_create = fail_create
        self.fail_update = fail_update
        self.fail_end = fail_end
        self.created = []
        self.updates = []
        self.ended = []

    async def create(self, config):
        if self.fail_create:
            raise PersistenceError("create failed")
        self.created.append(config)
        return f"session-{len(self.created)}"

    async def update(self, session_id, progress):
        if self.fail_update:
            raise PersistenceError("update failed")
        self.updates.append((session_id, dict(progress)))

    async def end(self, session_id, summary):
        if self.fail_end:
            raise PersistenceError("end failed")
        self.ended.append((session_id, summary))
        return summary


class BlockingPersistence(FakePersistence):
    """``create`` waits until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def create(self, config):
        self.started.set()
        await self.release.wait()
        return await super().create(config)


class FakeCardStore:
    def __init__(self, cards=(), fail_load=False, fail_save=False):
        self.cards = list(cards)
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saved = []

    async def load_all(self, user_id):
        if self.fail_load:
            raise PersistenceError("load failed")
        return list(self.cards)

    async def save(self, user_id, card):
        if self.fail_save:
            raise PersistenceError("save failed")
        self.saved.append((user_id, card))


class FakeHintTracker:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def record_hint_usage(self, session_id, item_id, hint_index, time_spent=None):
        if self.fail:
            raise RuntimeError("tracker down")
        self.calls.append((session_id, item_id, hint_index, time_spent))


def make_items(count, subject=Subject.MATH, kind="numeric"):
    return [
        Item(
            id=f"{subject.value}-{i}",
            subject=subject,
            prompt=f"What is {i} + 1?",
            correct_answer=str(i + 1),
            kind=kind,
            hints=[f"hint {i}.{n}" for n in range(4)],
        )
        for i in range(count)
    ]


def answer_key(items):
    return {item.id: item.correct_answer for item in items}

