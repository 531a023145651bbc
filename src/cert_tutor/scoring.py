"""Domain-weighted scoring on the 100-1000 exam scale."""
import math

from cert_tutor.models import AnswerReview, ResultSummary

MIN_SCORE = 100
MAX_SCORE = 1000


def normalize_selection(labels) -> tuple:
    """Trimmed, upper-cased, de-duplicated and sorted option labels."""
    return tuple(sorted({str(label).strip().upper() for label in labels or () if str(label).strip()}))


def is_correct(question, selection) -> bool:
    """Exact set match against the answer key. There is no partial credit."""
    expected = normalize_selection(question.answer_key)
    if not expected:
        return False
    return normalize_selection(selection) == expected


def tally_domains(questions, answers: dict) -> tuple[dict, dict]:
    by_domain_correct = {}
    by_domain_total = {}
    for q in questions:
        by_domain_total[q.domain] = by_domain_total.get(q.domain, 0) + 1
        if is_correct(q, answers.get(q.content_id)):
            by_domain_correct[q.domain] = by_domain_correct.get(q.domain, 0) + 1
    return by_domain_correct, by_domain_total


def weighted_accuracy(by_domain_correct: dict, by_domain_total: dict, domain_weights: dict) -> float:
    """Average of per-domain accuracy weighted by exam weight.

    Domains with no questions contribute to neither the numerator nor the
    denominator. A domain without a configured weight counts as weight 0.
    """
    weight_sum = 0.0
    acc = 0.0
    for domain, total in by_domain_total.items():
        if total <= 0:
            continue
        weight = domain_weights.get(domain) or 0
        weight_sum += weight
        acc += weight * (by_domain_correct.get(domain, 0) / total)
    if weight_sum <= 0:
        return 0.0
    return acc / weight_sum


def scaled_score(accuracy: float) -> int:
    # Half-up, not banker's rounding.
    score = MIN_SCORE + int(math.floor(900 * accuracy + 0.5))
    return max(MIN_SCORE, min(MAX_SCORE, score))


def score_session(questions, answers: dict, domain_weights: dict) -> ResultSummary:
    by_domain_correct, by_domain_total = tally_domains(questions, answers)
    reviews = []
    correct = 0
    for q in questions:
        user_answer = normalize_selection(answers.get(q.content_id))
        ok = is_correct(q, user_answer)
        correct += ok
        reviews.append(AnswerReview(
            content_id=q.content_id,
            domain=q.domain,
            user_answer=user_answer,
            correct_answer=normalize_selection(q.answer_key),
            is_correct=ok,
        ))
    accuracy = weighted_accuracy(by_domain_correct, by_domain_total, domain_weights)
    return ResultSummary(
        correct=correct,
        total=len(questions),
        score=scaled_score(accuracy),
        by_domain_correct=by_domain_correct,
        by_domain_total=by_domain_total,
        reviews=tuple(reviews),
    )
