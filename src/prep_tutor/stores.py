"""SQLite-backed collaborators: items, grading, sessions, review cards, hints."""
import json
import sqlite3
import uuid
from dataclasses import asdict
from datetime import datetime
from fractions import Fraction

from prep_tutor.db import get_connection
from prep_tutor.errors import PermanentGradingError, PersistenceError
from prep_tutor.models import GradeResult, Item, ReviewCard, SessionConfig, SessionSummary, Subject


def _item_from_row(row, hints: list) -> Item:
    return Item(
        id=row["id"],
        subject=Subject(row["subject"]),
        kind=row["kind"],
        prompt=row["prompt"],
        choices=json.loads(row["choices"] or "{}"),
        correct_answer=row["correct_answer"],
        explanation=row["explanation"] or "",
        hints=hints,
        topic=row["topic"],
        difficulty=row["difficulty"],
        grade_level=row["grade_level"],
    )


def get_item(db_path: str, item_id: str) -> Item | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
    if row is None:
        conn.close()
        return None
    hints = [
        r["hint"] for r in conn.execute(
            "SELECT hint FROM item_hints WHERE item_id = ? ORDER BY position", (item_id,)
        )
    ]
    conn.close()
    return _item_from_row(row, hints)


class SqliteItemProvider:
    def __init__(self, db_path: str):
        self.db_path = db_path

    async def fetch_items(self, config: SessionConfig) -> list[Item]:
        clauses = ["subject = ?"]
        params = [config.subject.value]
        if config.topic:
            clauses.append("topic = ?")
            params.append(config.topic)
        if config.difficulty is not None:
            clauses.append("difficulty = ?")
            params.append(config.difficulty)
        if config.grade_level is not None:
            clauses.append("grade_level = ?")
            params.append(config.grade_level)
        params.append(config.item_count)
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT id FROM items WHERE {' AND '.join(clauses)} ORDER BY RANDOM() LIMIT ?",
                params,
            ).fetchall()
        finally:
            conn.close()
        return [get_item(self.db_path, row["id"]) for row in rows]


def _normalize(answer: str) -> str:
    return " ".join(answer.lower().split())


def answers_match(given: str, expected: str) -> bool:
    """Case and whitespace insensitive; numbers compare by value (0.5 == 1/2)."""
    if _normalize(given) == _normalize(expected):
        return True
    try:
        return Fraction(given.replace(" ", "")) == Fraction(expected.replace(" ", ""))
    except (ValueError, ZeroDivisionError):
        return False


class AnswerKeyGrader:
    """Grades against the answer key stored with each item."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def submit(self, item_id: str, answer: str, time_spent: int) -> GradeResult:
        item = get_item(self.db_path, item_id)
        if item is None:
            raise PermanentGradingError(f"Unknown item {item_id}", status=404, code="NOT_FOUND")
        correct_text = item.choices.get(item.correct_answer, item.correct_answer)
        return GradeResult(
            correct=answers_match(answer, item.correct_answer),
            explanation=item.explanation,
            correct_answer=correct_text,
        )


class SqliteSessionPersistence:
    def __init__(self, db_path: str, clock=None):
        self.db_path = db_path
        self.clock = clock or datetime.now

    async def create(self, config: SessionConfig) -> str:
        session_id = str(uuid.uuid4())
        payload = {k: getattr(v, "value", v) for k, v in asdict(config).items()}
        self._execute(
            """INSERT INTO sessions (id, user_id, subject, config, started_at)
            VALUES (?, ?, ?, ?, ?)""",
            (session_id, config.user_id, config.subject.value, json.dumps(payload),
             self.clock().isoformat()),
        )
        return session_id

    async def update(self, session_id: str, progress: dict) -> None:
        self._execute(
            """UPDATE sessions SET questions_attempted = ?, questions_correct = ?,
            elapsed_seconds = ? WHERE id = ?""",
            (progress["questions_attempted"], progress["questions_correct"],
             progress["elapsed_seconds"], session_id),
        )

    async def end(self, session_id: str, summary: SessionSummary) -> SessionSummary:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    """UPDATE sessions SET status = 'completed', questions_attempted = ?,
                    questions_correct = ?, elapsed_seconds = ?, end_reason = ?, ended_at = ?
                    WHERE id = ?""",
                    (summary.questions_attempted, summary.questions_correct,
                     summary.elapsed_seconds, summary.end_reason,
                     self.clock().isoformat(), session_id),
                )
                conn.executemany(
                    """INSERT OR IGNORE INTO answer_results (session_id, item_id, submitted_value,
                    is_correct, rating, time_spent, hints_used, mode)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    [
                        (session_id, a.item_id, a.submitted_value,
                         None if a.correct is None else int(a.correct),
                         a.rating.value if a.rating else None,
                         a.time_spent_seconds, a.hints_used, a.mode)
                        for a in summary.answers
                    ],
                )
                conn.executemany(
                    """INSERT INTO failed_submissions (session_id, item_id, answer, time_spent,
                    error, failed_at) VALUES (?, ?, ?, ?, ?, ?)""",
                    [
                        (session_id, f.item_id, f.answer, f.time_spent_seconds, f.error,
                         f.timestamp.isoformat())
                        for f in summary.failed_submissions
                    ],
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not finalize session {session_id}: {exc}") from exc
        return summary

    def list_sessions(self, user_id: str, limit: int = 10) -> list[dict]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            """SELECT * FROM sessions WHERE user_id = ? AND status = 'completed'
            ORDER BY ended_at DESC LIMIT ?""",
            (user_id, limit),
        ).fetchall()
        conn.close()
        return [dict(r) for r in rows]

    def _execute(self, sql: str, params: tuple) -> None:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(sql, params)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc


class SqliteReviewCardStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    async def load_all(self, user_id: str) -> list[ReviewCard]:
        try:
            conn = get_connection(self.db_path)
            try:
                rows = conn.execute(
                    "SELECT * FROM review_cards WHERE user_id = ?", (user_id,)
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not load review cards: {exc}") from exc
        return [
            ReviewCard(
                item_id=r["item_id"],
                interval_days=r["interval_days"],
                repetitions=r["repetitions"],
                ease_factor=r["ease_factor"],
                next_review_date=datetime.fromisoformat(r["next_review_date"]),
                last_reviewed_at=(
                    datetime.fromisoformat(r["last_reviewed_at"]) if r["last_reviewed_at"] else None
                ),
            )
            for r in rows
        ]

    async def save(self, user_id: str, card: ReviewCard) -> None:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    """INSERT INTO review_cards (user_id, item_id, interval_days, repetitions,
                    ease_factor, next_review_date, last_reviewed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, item_id) DO UPDATE SET
                        interval_days=excluded.interval_days,
                        repetitions=excluded.repetitions,
                        ease_factor=excluded.ease_factor,
                        next_review_date=excluded.next_review_date,
                        last_reviewed_at=excluded.last_reviewed_at""",
                    (user_id, card.item_id, card.interval_days, card.repetitions,
                     card.ease_factor, card.next_review_date.isoformat(),
                     card.last_reviewed_at.isoformat() if card.last_reviewed_at else None),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not save card {card.item_id}: {exc}") from exc


class SqliteHintTracker:
    def __init__(self, db_path: str, clock=None):
        self.db_path = db_path
        self.clock = clock or datetime.now

    async def record_hint_usage(self, session_id, item_id, hint_index, time_spent=None) -> None:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    """INSERT INTO hint_usage (session_id, item_id, hint_index, time_spent, used_at)
                    VALUES (?, ?, ?, ?, ?)""",
                    (session_id, item_id, hint_index, time_spent, self.clock().isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not record hint for {item_id}: {exc}") from exc
