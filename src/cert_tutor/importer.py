"""Import question banks from JSON or YAML files."""
import json
import logging
from pathlib import Path

import yaml

from cert_tutor.db import get_connection
from cert_tutor.normalizer import content_id_for, language_for

logger = logging.getLogger(__name__)

PT_SUFFIX = "-br"


def read_question_file(file_path: str) -> list[dict]:
    """Load raw question records from a .json, .yaml or .yml file."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"Unsupported question file type: {suffix or path.name}")

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name} does not contain a list of questions")
    return data


def _raw_id(record: dict, language: str) -> str:
    raw_id = str(record.get("id", "")).strip()
    if language == "pt-BR" and not raw_id.lower().endswith(PT_SUFFIX):
        raw_id += PT_SUFFIX
    return raw_id


def _option(record: dict, label: str):
    options = record.get("options")
    if isinstance(options, dict):
        return options.get(label.upper()) or options.get(label)
    return record.get(f"option_{label}")


def import_questions(db_path: str, records: list, certification_id: str, language: str | None = None) -> int:
    """Insert or replace question records. Returns the number stored.

    The answer field is stored as JSON so that its original shape (single
    label, delimited string or list) reaches the normalizer unchanged.
    """
    conn = get_connection(db_path)
    stored = 0
    for record in records:
        if not isinstance(record, dict) or not str(record.get("id", "")).strip():
            logger.warning("Skipping question record without an id")
            continue
        lang = language or language_for(record["id"])
        raw_id = _raw_id(record, lang)
        answers = record.get("correct_answers")
        if answers is None:
            answers = record.get("correct_answer")
        conn.execute(
            """INSERT OR REPLACE INTO questions
            (id, content_id, certification_id, language, domain, tier, difficulty, active,
             question_text, option_a, option_b, option_c, option_d, option_e,
             correct_answers, required_selection_count,
             explanation_basic, explanation_detailed, incorrect_explanations)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                raw_id, content_id_for(raw_id), certification_id, lang,
                record.get("domain", ""), record.get("tier") or "FREE",
                record.get("difficulty") or "medium", int(record.get("active", True) is not False),
                record.get("question_text") or record.get("stem") or "",
                *(_option(record, label) for label in "abcde"),
                json.dumps(answers), record.get("required_selection_count"),
                record.get("explanation_basic", ""), record.get("explanation_detailed", ""),
                json.dumps(record.get("incorrect_explanations") or {}),
            ),
        )
        stored += 1
    conn.commit()
    conn.close()
    return stored


def import_file(db_path: str, file_path: str, certification_id: str, language: str | None = None) -> dict:
    """Import a question file. Language defaults to each record's id suffix."""
    records = read_question_file(file_path)
    count = import_questions(db_path, records, certification_id, language=language)
    logger.info("Imported %d questions from %s", count, file_path)
    return {"filename": Path(file_path).name, "certification_id": certification_id, "count": count}
