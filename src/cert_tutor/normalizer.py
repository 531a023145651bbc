"""Convert raw question records into canonical Question objects."""
import logging
import math
import re

from cert_tutor.models import Question

logger = logging.getLogger(__name__)

OPTION_LABELS = ("A", "B", "C", "D", "E")

# Raw ids carry a language suffix; the remainder is the content identity.
LANGUAGE_SUFFIXES = {"-br": "pt-BR", "-pt": "pt-BR", "-en": "en"}

_ANSWER_SPLIT = re.compile(r"[,|;]+")


def _split_suffix(raw_id: str) -> tuple[str, str | None]:
    lowered = raw_id.lower()
    for suffix, language in LANGUAGE_SUFFIXES.items():
        if lowered.endswith(suffix) and len(raw_id) > len(suffix):
            return raw_id[: -len(suffix)], language
    return raw_id, None


def content_id_for(raw_id) -> str:
    """Language-invariant identity of a raw question id."""
    return _split_suffix(str(raw_id).strip())[0]


def language_for(raw_id, default: str = "en") -> str:
    return _split_suffix(str(raw_id).strip())[1] or default


def parse_answers(raw) -> list[str]:
    """Parse a correct-answer field of any supported shape into labels.

    Lists are trimmed element-wise, strings are split on commas, pipes or
    semicolons. Any other shape yields no labels.
    """
    if isinstance(raw, (list, tuple)):
        values = [str(value).strip() for value in raw]
    elif isinstance(raw, str):
        values = [value.strip() for value in _ANSWER_SPLIT.split(raw)]
    else:
        return []
    labels = []
    for value in values:
        label = value.upper()
        if label and label not in labels:
            labels.append(label)
    return labels


def parse_required_count(raw, answer_count: int) -> int:
    if raw is not None and not isinstance(raw, bool):
        try:
            override = float(raw)
        except (TypeError, ValueError):
            override = None
        if override is not None and math.isfinite(override):
            return max(1, int(override))
    return max(1, answer_count)


def _options_from(record: dict) -> dict:
    source = record.get("options")
    options = {}
    for label in OPTION_LABELS:
        if isinstance(source, dict):
            text = source.get(label) or source.get(label.lower())
        else:
            text = record.get(f"option_{label.lower()}")
        if text:
            options[label] = str(text)
    return options


def _first_present(record: dict, *keys):
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def normalize_question(record: dict, language: str | None = None) -> Question:
    raw_id = str(record.get("id", "")).strip()
    options = _options_from(record)

    labels = parse_answers(_first_present(record, "correct_answers", "correct_answer"))
    if not labels and record.get("correct_answers") is not None:
        # An unusable correct_answers field falls back to the single-answer column.
        labels = parse_answers(record.get("correct_answer"))
    answer_key = frozenset(label for label in labels if label in options)

    required = parse_required_count(
        _first_present(record, "required_selection_count", "required_selections"),
        len(answer_key),
    )

    incorrect = record.get("incorrect_explanations") or record.get("incorrect") or {}
    if not isinstance(incorrect, dict):
        incorrect = {}

    return Question(
        content_id=content_id_for(raw_id),
        raw_id=raw_id,
        domain=str(record.get("domain") or "").strip(),
        stem=str(_first_present(record, "question_text", "stem") or ""),
        options=options,
        answer_key=answer_key,
        required_selection_count=required,
        language=language or language_for(raw_id),
        explanation_basic=str(record.get("explanation_basic") or ""),
        explanation_detailed=str(_first_present(record, "explanation_detailed", "explanation") or ""),
        incorrect_explanations={str(k).upper(): str(v) for k, v in incorrect.items() if v},
    )


def normalize_questions(records, language: str | None = None) -> list[Question]:
    questions = []
    for record in records or []:
        if not isinstance(record, dict) or not str(record.get("id", "")).strip():
            logger.warning("Skipping question record without an id: %r", record)
            continue
        questions.append(normalize_question(record, language=language))
    return questions
