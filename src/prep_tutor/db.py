"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".prep_tutor" / "tutor.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    subject TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'text',
    prompt TEXT NOT NULL,
    choices TEXT DEFAULT '{}',  -- JSON
    correct_answer TEXT NOT NULL,
    explanation TEXT,
    topic TEXT,
    difficulty INTEGER,
    grade_level INTEGER
);

CREATE TABLE IF NOT EXISTS item_hints (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL REFERENCES items(id),
    position INTEGER NOT NULL,
    hint TEXT NOT NULL,
    UNIQUE(item_id, position)
);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    subject TEXT NOT NULL,
    config TEXT,  -- JSON
    status TEXT DEFAULT 'active',
    questions_attempted INTEGER DEFAULT 0,
    questions_correct INTEGER DEFAULT 0,
    elapsed_seconds INTEGER DEFAULT 0,
    end_reason TEXT,
    started_at TEXT,
    ended_at TEXT
);

CREATE TABLE IF NOT EXISTS answer_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL REFERENCES sessions(id),
    item_id TEXT NOT NULL,
    submitted_value TEXT NOT NULL,
    is_correct INTEGER,
    rating TEXT,
    time_spent INTEGER NOT NULL,
    hints_used INTEGER DEFAULT 0,
    mode TEXT,
    UNIQUE(session_id, item_id)
);

CREATE TABLE IF NOT EXISTS failed_submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL REFERENCES sessions(id),
    item_id TEXT NOT NULL,
    answer TEXT NOT NULL,
    time_spent INTEGER NOT NULL,
    error TEXT,
    failed_at TEXT
);

CREATE TABLE IF NOT EXISTS review_cards (
    user_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    interval_days INTEGER NOT NULL DEFAULT 1,
    repetitions INTEGER NOT NULL DEFAULT 0,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    next_review_date TEXT NOT NULL,
    last_reviewed_at TEXT,
    PRIMARY KEY (user_id, item_id)
);

CREATE TABLE IF NOT EXISTS hint_usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    hint_index INTEGER NOT NULL,
    time_spent INTEGER,
    used_at TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
