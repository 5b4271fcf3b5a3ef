"""Seed the database with sample math, reading and vocabulary items."""
import json
from pathlib import Path

from prep_tutor.db import get_connection

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already holds practice items."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    conn.close()
    return count > 0


def load_content() -> dict:
    return json.loads((CONTENT_DIR / "items.json").read_text())


def seed_items(db_path: str, subject: str, items: list[dict]) -> None:
    """Insert items and their hints. Existing ids are left untouched."""
    conn = get_connection(db_path)
    for item in items:
        conn.execute(
            """INSERT OR IGNORE INTO items (id, subject, kind, prompt, choices, correct_answer,
            explanation, topic, difficulty, grade_level) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                item["id"], subject, item.get("kind", "text"), item["prompt"],
                json.dumps(item.get("choices", {})), item["correct_answer"],
                item.get("explanation", ""), item.get("topic"), item.get("difficulty"),
                item.get("grade_level"),
            ),
        )
        for position, hint in enumerate(item.get("hints", [])):
            conn.execute(
                "INSERT OR IGNORE INTO item_hints (item_id, position, hint) VALUES (?, ?, ?)",
                (item["id"], position, hint),
            )
    conn.commit()
    conn.close()


def seed_all(db_path: str) -> None:
    """Seed every subject. Safe to call on every startup."""
    content = load_content()
    for subject, items in content.items():
        seed_items(db_path, subject, items)
