"""Attempt history statistics and score banding."""
import json

from cert_tutor.config import PASSING_SCORE
from cert_tutor.db import get_connection


def get_score_label(score: float) -> str:
    if score >= 850:
        return "READY"
    elif score >= PASSING_SCORE:
        return "PASSING"
    elif score >= 600:
        return "NEEDS WORK"
    return "NOT READY"


def get_score_color(score: float) -> str:
    if score >= 850:
        return "green"
    elif score >= PASSING_SCORE:
        return "yellow"
    elif score >= 600:
        return "dark_orange"
    return "red"


def get_attempt_stats(db_path: str, certification_id: str | None = None) -> dict:
    sql = """SELECT COUNT(*) as attempts, AVG(score) as avg_score, MAX(score) as best_score,
        SUM(questions_answered) as answered
        FROM quiz_attempts WHERE completed_at IS NOT NULL"""
    params = []
    if certification_id:
        sql += " AND certification_id = ?"
        params.append(certification_id)
    conn = get_connection(db_path)
    row = conn.execute(sql, params).fetchone()
    conn.close()
    return {
        "attempts_completed": row["attempts"],
        "avg_score": round(row["avg_score"], 1) if row["avg_score"] else 0.0,
        "best_score": row["best_score"] or 0,
        "questions_answered": row["answered"] or 0,
    }


def get_domain_accuracy(db_path: str, certification_id: str) -> dict:
    """Per-domain correctness summed over completed attempts, as percentages."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT domain_breakdown FROM quiz_attempts
        WHERE completed_at IS NOT NULL AND certification_id = ?""",
        (certification_id,),
    ).fetchall()
    conn.close()
    totals = {}
    for row in rows:
        for domain, counts in json.loads(row["domain_breakdown"] or "{}").items():
            correct, total = totals.get(domain, (0, 0))
            totals[domain] = (correct + counts.get("correct", 0), total + counts.get("total", 0))
    return {
        domain: round(correct / total * 100, 1)
        for domain, (correct, total) in totals.items()
        if total
    }
