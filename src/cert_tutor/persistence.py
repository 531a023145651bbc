"""Attempt and answer storage."""
import json
from datetime import datetime

from cert_tutor.db import get_connection


def create_attempt(
    db_path: str,
    attempt_id: str,
    certification_id: str,
    quiz_type: str,
    total_questions: int,
    time_limit: int | None = None,
) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO quiz_attempts
        (id, certification_id, quiz_type, questions_count, time_limit_seconds, started_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (attempt_id, certification_id, quiz_type, total_questions, time_limit, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()


def record_answer(
    db_path: str,
    attempt_id: str,
    content_id: str,
    selection,
    is_correct: bool,
    elapsed: int = 0,
) -> bool:
    """Upsert one answer. Returns True when it was the first for this question."""
    conn = get_connection(db_path)
    existing = conn.execute(
        "SELECT id FROM user_answers WHERE attempt_id = ? AND content_id = ?",
        (attempt_id, content_id),
    ).fetchone()
    conn.execute(
        """INSERT INTO user_answers
        (attempt_id, content_id, selected_answer, is_correct, time_spent_seconds, answered_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(attempt_id, content_id) DO UPDATE SET
            selected_answer = excluded.selected_answer,
            is_correct = excluded.is_correct,
            time_spent_seconds = excluded.time_spent_seconds,
            answered_at = excluded.answered_at""",
        (attempt_id, content_id, ",".join(selection), int(is_correct), elapsed, datetime.now().isoformat()),
    )
    first = existing is None
    if first:
        # Question statistics count only the first answer of an attempt.
        conn.execute(
            """UPDATE questions SET times_answered = times_answered + 1,
            times_correct = times_correct + ?
            WHERE content_id = ?""",
            (int(is_correct), content_id),
        )
    conn.commit()
    conn.close()
    return first


def complete_attempt(db_path: str, attempt_id: str, correct: int, score: int, domain_breakdown: dict) -> None:
    conn = get_connection(db_path)
    answered = conn.execute(
        "SELECT COUNT(*) FROM user_answers WHERE attempt_id = ?", (attempt_id,)
    ).fetchone()[0]
    conn.execute(
        """UPDATE quiz_attempts SET questions_answered = ?, correct_answers = ?, score = ?,
        domain_breakdown = ?, completed_at = ? WHERE id = ?""",
        (answered, correct, score, json.dumps(domain_breakdown), datetime.now().isoformat(), attempt_id),
    )
    conn.commit()
    conn.close()


def get_attempt_history(db_path: str, certification_id: str | None = None, limit: int = 20) -> list[dict]:
    """Completed attempts, most recent first."""
    sql = "SELECT * FROM quiz_attempts WHERE completed_at IS NOT NULL"
    params = []
    if certification_id:
        sql += " AND certification_id = ?"
        params.append(certification_id)
    sql += " ORDER BY completed_at DESC LIMIT ?"
    params.append(limit)
    conn = get_connection(db_path)
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    history = []
    for row in rows:
        attempt = dict(row)
        attempt["domain_breakdown"] = json.loads(attempt["domain_breakdown"] or "{}")
        history.append(attempt)
    return history


def get_attempt_answers(db_path: str, attempt_id: str) -> list:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM user_answers WHERE attempt_id = ? ORDER BY answered_at ASC",
        (attempt_id,),
    ).fetchall()
    conn.close()
    return rows


class SqliteAttemptRecorder:
    """Persistence collaborator handed to ``QuizSession``."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def record_answer(self, attempt_id, content_id, selection, is_correct, elapsed) -> None:
        record_answer(self.db_path, attempt_id, content_id, selection, is_correct, elapsed)

    def complete_attempt(self, attempt_id, correct, score, domain_breakdown) -> None:
        complete_attempt(self.db_path, attempt_id, correct, score, domain_breakdown)
