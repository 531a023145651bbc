"""Question bank queries."""
import asyncio
import json
import random
from datetime import date

from cert_tutor.db import get_connection
from cert_tutor.models import Certification

_JSON_COLUMNS = ("correct_answers", "incorrect_explanations")


def _row_to_record(row) -> dict:
    record = dict(row)
    for column in _JSON_COLUMNS:
        value = record.get(column)
        if isinstance(value, str):
            try:
                record[column] = json.loads(value)
            except ValueError:
                pass  # a plain delimited string is a valid answer shape
    return record


def seeded_shuffle(items: list, seed: str) -> list:
    """Shuffle deterministically: the same seed always gives the same order."""
    shuffled = list(items)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def get_weekly_seed(certification_id: str, user_id: str | None = None, today: date | None = None) -> str:
    year, week, _ = (today or date.today()).isocalendar()
    return f"{certification_id}-{year}-W{week:02d}-{user_id or 'guest'}"


def select_content_ids(db_path: str, question_filter) -> list[str]:
    """Pick and order the content ids of a quiz across every language.

    Language is ignored here so that each language's fetch projects the same
    selection. Fetches only agree on a shuffled pick when they share a seed.
    """
    sql = "SELECT DISTINCT content_id FROM questions WHERE certification_id = ? AND active = 1"
    params = [question_filter.certification_id]
    if question_filter.domains:
        sql += f" AND domain IN ({', '.join('?' for _ in question_filter.domains)})"
        params.extend(question_filter.domains)
    if question_filter.tier and question_filter.tier != "ALL":
        sql += " AND tier = ?"
        params.append(question_filter.tier)
    sql += " ORDER BY content_id"

    conn = get_connection(db_path)
    content_ids = [row["content_id"] for row in conn.execute(sql, params).fetchall()]
    conn.close()

    if question_filter.seed:
        content_ids = seeded_shuffle(content_ids, question_filter.seed)
    elif question_filter.shuffle:
        random.shuffle(content_ids)
    if question_filter.limit and len(content_ids) > question_filter.limit:
        content_ids = content_ids[: question_filter.limit]
    return content_ids


def fetch_questions(db_path: str, question_filter) -> list[dict]:
    """Raw records in the filter's language for the selected content ids."""
    content_ids = select_content_ids(db_path, question_filter)
    if not content_ids:
        return []
    position = {content_id: i for i, content_id in enumerate(content_ids)}

    conn = get_connection(db_path)
    rows = conn.execute(
        f"""SELECT * FROM questions
        WHERE certification_id = ? AND language = ? AND active = 1
        AND content_id IN ({', '.join('?' for _ in content_ids)})
        ORDER BY id""",
        [question_filter.certification_id, question_filter.language, *content_ids],
    ).fetchall()
    conn.close()
    records = [_row_to_record(r) for r in rows]
    records.sort(key=lambda r: position[r["content_id"]])
    return records


def make_fetcher(db_path: str):
    """Async fetch callable for ``BilingualQuestionCache``."""
    async def fetch(question_filter) -> list[dict]:
        return await asyncio.to_thread(fetch_questions, db_path, question_filter)
    return fetch


def list_certifications(db_path: str) -> list:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM certifications ORDER BY id").fetchall()
    conn.close()
    return rows


def get_certification(db_path: str, certification_id: str) -> Certification | None:
    conn = get_connection(db_path)
    cert = conn.execute("SELECT * FROM certifications WHERE id = ?", (certification_id,)).fetchone()
    if cert is None:
        conn.close()
        return None
    domains = conn.execute(
        "SELECT code, name, exam_weight FROM domains WHERE certification_id = ? ORDER BY id",
        (certification_id,),
    ).fetchall()
    conn.close()
    return Certification(
        id=cert["id"],
        name=cert["name"],
        domain_weights={d["code"]: d["exam_weight"] for d in domains},
        domain_labels={d["code"]: d["name"] for d in domains},
    )
