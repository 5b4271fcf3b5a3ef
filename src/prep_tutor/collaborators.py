"""Contracts for the engine's external collaborators."""
from typing import Optional, Protocol

from prep_tutor.models import GradeResult, Item, ReviewCard, SessionConfig, SessionSummary


class ItemProvider(Protocol):
    async def fetch_items(self, config: SessionConfig) -> list[Item]: ...


class Grader(Protocol):
    async def submit(self, item_id: str, answer: str, time_spent: int) -> GradeResult: ...


class SessionPersistence(Protocol):
    async def create(self, config: SessionConfig) -> str: ...

    async def update(self, session_id: str, progress: dict) -> None: ...

    async def end(self, session_id: str, summary: SessionSummary) -> SessionSummary: ...


class ReviewCardStore(Protocol):
    async def load_all(self, user_id: str) -> list[ReviewCard]: ...

    async def save(self, user_id: str, card: ReviewCard) -> None: ...


class HintTracker(Protocol):
    async def record_hint_usage(
        self, session_id: str, item_id: str, hint_index: int, time_spent: Optional[int] = None,
    ) -> None: ...
