import pytest

from cert_tutor.db import init_db
from cert_tutor.models import Question
from cert_tutor.scheduler import ManualScheduler
from cert_tutor.seed import seed_all

SAA_WEIGHTS = {"SECURE": 0.30, "RESILIENT": 0.26, "PERFORMANCE": 0.24, "COST": 0.20}


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def seeded_db(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    return tmp_db


@pytest.fixture
def weights():
    return dict(SAA_WEIGHTS)


@pytest.fixture
def scheduler():
    return ManualScheduler()


def make_question(content_id, domain="SECURE", answer=("A",), language="en", required=None, stem=None):
    raw_id = content_id if language == "en" else f"{content_id}-br"
    return Question(
        content_id=content_id,
        raw_id=raw_id,
        domain=domain,
        stem=stem or f"Question {content_id} ({language})",
        options={"A": "one", "B": "two", "C": "three", "D": "four"},
        answer_key=frozenset(answer),
        required_selection_count=required or max(1, len(answer)),
        language=language,
    )


@pytest.fixture
def questions():
    return [
        make_question("q1", "SECURE", ("A",)),
        make_question("q2", "RESILIENT", ("B", "C")),
        make_question("q3", "COST", ("D",)),
    ]
