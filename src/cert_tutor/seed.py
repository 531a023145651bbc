"""Seed the database with certifications, domain weights and sample questions."""
import json
from pathlib import Path

from cert_tutor.db import get_connection
from cert_tutor.importer import import_questions

CONTENT_DIR = Path(__file__).parent / "content"
QUESTION_FILES = ("questions-en.json", "questions-pt.json")


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with certifications."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM certifications").fetchone()[0]
    conn.close()
    return count > 0


def seed_certifications(db_path: str) -> None:
    """Insert certifications and their weighted domains from certifications.json."""
    data = json.loads((CONTENT_DIR / "certifications.json").read_text(encoding="utf-8"))
    conn = get_connection(db_path)
    for cert in data["certifications"]:
        conn.execute(
            "INSERT OR IGNORE INTO certifications (id, name) VALUES (?, ?)",
            (cert["id"], cert["name"]),
        )
        for domain in cert["domains"]:
            conn.execute(
                "INSERT OR IGNORE INTO domains (certification_id, code, name, exam_weight) VALUES (?, ?, ?, ?)",
                (cert["id"], domain["code"], domain["name"], domain["exam_weight"]),
            )
    conn.commit()
    conn.close()


def seed_questions(db_path: str) -> None:
    """Insert the bundled sample question banks, one file per language."""
    for name in QUESTION_FILES:
        data = json.loads((CONTENT_DIR / name).read_text(encoding="utf-8"))
        import_questions(db_path, data["questions"], data["certification_id"], language=data["language"])


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_certifications(db_path)
    seed_questions(db_path)
