import json

import pytest

from cert_tutor.db import get_connection
from cert_tutor.importer import import_file, import_questions, read_question_file


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_read_json_list(tmp_path):
    path = _write(tmp_path / "bank.json", json.dumps([{"id": "x-1"}]))
    assert read_question_file(path) == [{"id": "x-1"}]


def test_read_yaml_questions_key(tmp_path):
    path = _write(tmp_path / "bank.yaml", "questions:\n  - id: x-1\n    domain: COST\n")
    assert read_question_file(path) == [{"id": "x-1", "domain": "COST"}]


def test_read_rejects_unknown_extension(tmp_path):
    path = _write(tmp_path / "bank.txt", "id: x-1")
    with pytest.raises(ValueError):
        read_question_file(path)


def test_read_rejects_non_list(tmp_path):
    path = _write(tmp_path / "bank.json", json.dumps("nope"))
    with pytest.raises(ValueError):
        read_question_file(path)


def test_import_questions_detects_language(seeded_db):
    records = [
        {"id": "x-001", "domain": "COST", "question_text": "Q", "option_a": "1", "option_b": "2",
         "correct_answer": "a"},
        {"id": "x-001-br", "domain": "COST", "question_text": "P", "option_a": "1", "option_b": "2",
         "correct_answers": ["A"]},
        {"domain": "COST"},
    ]
    assert import_questions(seeded_db, records, "SAA-C03") == 2
    conn = get_connection(seeded_db)
    rows = conn.execute(
        "SELECT id, content_id, language, correct_answers FROM questions WHERE content_id = 'x-001' ORDER BY id"
    ).fetchall()
    conn.close()
    assert [(r["id"], r["language"]) for r in rows] == [("x-001", "en"), ("x-001-br", "pt-BR")]
    assert json.loads(rows[0]["correct_answers"]) == "a"
    assert json.loads(rows[1]["correct_answers"]) == ["A"]


def test_import_forced_language_adds_suffix(seeded_db):
    records = [{"id": "x-002", "domain": "SECURE", "stem": "S", "options": {"A": "1", "B": "2"},
                "correct_answer": "B"}]
    import_questions(seeded_db, records, "SAA-C03", language="pt-BR")
    conn = get_connection(seeded_db)
    row = conn.execute("SELECT * FROM questions WHERE id = 'x-002-br'").fetchone()
    conn.close()
    assert row["content_id"] == "x-002"
    assert row["question_text"] == "S"
    assert row["option_b"] == "2"
    assert row["option_c"] is None


def test_import_file_replaces_existing(seeded_db, tmp_path):
    path = _write(tmp_path / "update.yml", "- id: saa-001\n  domain: SECURE\n  question_text: Updated\n"
                                          "  option_a: one\n  option_b: two\n  correct_answer: B\n")
    result = import_file(seeded_db, path, "SAA-C03")
    assert result == {"filename": "update.yml", "certification_id": "SAA-C03", "count": 1}
    conn = get_connection(seeded_db)
    row = conn.execute("SELECT question_text FROM questions WHERE id = 'saa-001'").fetchone()
    count = conn.execute("SELECT COUNT(*) FROM questions WHERE language = 'en'").fetchone()[0]
    conn.close()
    assert row["question_text"] == "Updated"
    assert count == 8
