"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from cert_tutor.config import DB_PATH

DEFAULT_DB_PATH = DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS certifications (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS domains (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    certification_id TEXT NOT NULL REFERENCES certifications(id),
    code TEXT NOT NULL,
    name TEXT NOT NULL,
    exam_weight REAL NOT NULL,
    UNIQUE(certification_id, code)
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    content_id TEXT NOT NULL,
    certification_id TEXT NOT NULL REFERENCES certifications(id),
    language TEXT NOT NULL,
    domain TEXT NOT NULL,
    tier TEXT DEFAULT 'FREE',
    difficulty TEXT DEFAULT 'medium',
    active INTEGER DEFAULT 1,
    question_text TEXT NOT NULL,
    option_a TEXT,
    option_b TEXT,
    option_c TEXT,
    option_d TEXT,
    option_e TEXT,
    correct_answers TEXT,
    required_selection_count INTEGER,
    explanation_basic TEXT,
    explanation_detailed TEXT,
    incorrect_explanations TEXT,
    times_answered INTEGER DEFAULT 0,
    times_correct INTEGER DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_questions_lookup
    ON questions (certification_id, language, active);

CREATE TABLE IF NOT EXISTS quiz_attempts (
    id TEXT PRIMARY KEY,
    certification_id TEXT NOT NULL,
    quiz_type TEXT NOT NULL,
    questions_count INTEGER NOT NULL,
    time_limit_seconds INTEGER,
    questions_answered INTEGER DEFAULT 0,
    correct_answers INTEGER DEFAULT 0,
    score INTEGER DEFAULT 0,
    domain_breakdown TEXT,
    started_at TEXT,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS user_answers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    attempt_id TEXT NOT NULL REFERENCES quiz_attempts(id),
    content_id TEXT NOT NULL,
    selected_answer TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    time_spent_seconds INTEGER DEFAULT 0,
    answered_at TEXT,
    UNIQUE(attempt_id, content_id)
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
