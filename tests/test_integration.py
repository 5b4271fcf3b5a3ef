# tests/test_integration.py
"""End-to-end tests of the session engine over the SQLite stores."""
import pytest

from fakes import NOW, FakeTicker, RecordingSleep
from prep_tutor.db import get_connection, init_db
from prep_tutor.errors import TransientGradingError
from prep_tutor.models import ReviewMode, SessionConfig, SessionStatus, Subject
from prep_tutor.seed import seed_all
from prep_tutor.session import PracticeSession
from prep_tutor.stores import (
    AnswerKeyGrader, SqliteItemProvider, SqliteReviewCardStore, SqliteSessionPersistence,
)


class OfflineGrader:
    async def submit(self, item_id, answer, time_spent):
        raise ConnectionError("grader offline")


def engine(db_path, config, grader=None, sleep=None):
    return PracticeSession(
        config,
        grader=grader or AnswerKeyGrader(db_path),
        persistence=SqliteSessionPersistence(db_path, clock=lambda: NOW),
        card_store=SqliteReviewCardStore(db_path),
        sleep=sleep or RecordingSleep(),
        clock=lambda: NOW,
        ticker_factory=FakeTicker,
    )


@pytest.fixture
def seeded_db(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    return tmp_db


@pytest.mark.asyncio
async def test_timed_math_session_is_saved(seeded_db):
    """Answer two items, then run out of time with items left."""
    session = engine(seeded_db, SessionConfig(subject=Subject.MATH, item_count=5, time_limit_seconds=30))
    await session.start(SqliteItemProvider(seeded_db))

    for _ in range(2):
        for _ in range(10):
            await session.tick()
        await session.submit_answer(session.current_item.correct_answer)
        await session.advance()
    for _ in range(10):
        await session.tick()

    assert session.status is SessionStatus.COMPLETED
    assert session.summary.end_reason == "timeout"
    assert session.summary.persisted is True

    [row] = SqliteSessionPersistence(seeded_db).list_sessions("guest")
    assert row["questions_attempted"] == 2
    assert row["questions_correct"] == 2
    assert row["elapsed_seconds"] == 30
    conn = get_connection(seeded_db)
    times = [r["time_spent"] for r in conn.execute("SELECT time_spent FROM answer_results")]
    conn.close()
    assert times == [10, 10]


@pytest.mark.asyncio
async def test_failed_grading_is_kept_for_later(seeded_db):
    sleep = RecordingSleep()
    config = SessionConfig(subject=Subject.MATH, item_count=2, time_limit_seconds=0)
    session = engine(seeded_db, config, grader=OfflineGrader(), sleep=sleep)
    await session.start(SqliteItemProvider(seeded_db))

    with pytest.raises(TransientGradingError):
        await session.submit_answer("42")
    assert sleep.delays == [1.0, 2.0]
    assert session.status is SessionStatus.PRESENTING

    summary = await session.end()
    assert summary.questions_attempted == 0
    conn = get_connection(seeded_db)
    rows = conn.execute("SELECT answer, error FROM failed_submissions").fetchall()
    conn.close()
    assert [r["answer"] for r in rows] == ["42"]
    assert "grader offline" in rows[0]["error"]


@pytest.mark.asyncio
async def test_vocabulary_reviews_carry_over_between_sessions(seeded_db):
    config = SessionConfig(
        subject=Subject.VOCABULARY, item_count=8, time_limit_seconds=0,
        review_mode=ReviewMode.FLASHCARDS,
    )
    first = engine(seeded_db, config)
    await first.start(SqliteItemProvider(seeded_db))
    reviewed = first.current_item.id
    await first.submit_answer("easy")
    await first.end()

    second = engine(seeded_db, config)
    await second.start(SqliteItemProvider(seeded_db))
    # The reviewed word is now due tomorrow, behind every unseen word.
    assert second.items[-1].id == reviewed
    assert second.cards[reviewed].repetitions == 1
