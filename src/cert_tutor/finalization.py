"""Fault boundary around session scoring."""
import logging

from cert_tutor.models import ResultSummary
from cert_tutor.scoring import MAX_SCORE, MIN_SCORE, score_session

logger = logging.getLogger(__name__)


def empty_summary(total: int) -> ResultSummary:
    """The neutral result shown when scoring fails."""
    return ResultSummary(correct=0, total=total, score=MIN_SCORE)


def _is_well_formed(summary, total: int) -> bool:
    return (
        isinstance(summary, ResultSummary)
        and summary.total == total
        and MIN_SCORE <= summary.score <= MAX_SCORE
        and 0 <= summary.correct <= total
    )


def guarded_score(questions, answers: dict, domain_weights: dict, scorer=score_session) -> ResultSummary:
    """Score a finished session without ever raising."""
    total = len(questions)
    try:
        summary = scorer(questions, answers, domain_weights)
        well_formed = _is_well_formed(summary, total)
    except Exception:
        logger.exception("Scoring failed for a session of %d questions", total)
        return empty_summary(total)
    if not well_formed:
        logger.error("Scorer returned a malformed summary: %r", summary)
        return empty_summary(total)
    return summary
