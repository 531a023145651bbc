"""Data classes for the quiz domain model."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class SessionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FINALIZING = "finalizing"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Question:
    content_id: str
    raw_id: str
    domain: str
    stem: str
    options: dict
    answer_key: frozenset
    required_selection_count: int = 1
    language: str = "en"
    explanation_basic: str = ""
    explanation_detailed: str = ""
    incorrect_explanations: dict = field(default_factory=dict)

    @property
    def is_multi_select(self) -> bool:
        return self.required_selection_count > 1


@dataclass(frozen=True)
class QuestionFilter:
    """Repository query for one certification's question bank."""
    certification_id: str
    domains: Optional[tuple] = None
    tier: str = "ALL"
    limit: Optional[int] = None
    shuffle: bool = True
    seed: Optional[str] = None
    language: str = "en"

    def with_language(self, language: str) -> "QuestionFilter":
        return replace(self, language=language)

    def cache_key(self) -> tuple:
        """Every filter parameter except the language."""
        domains = tuple(sorted(self.domains)) if self.domains else None
        return (self.certification_id, domains, self.tier, self.limit, self.shuffle, self.seed)


@dataclass(frozen=True)
class AnswerReview:
    content_id: str
    domain: str
    user_answer: tuple
    correct_answer: tuple
    is_correct: bool


@dataclass(frozen=True)
class ResultSummary:
    correct: int
    total: int
    score: int
    by_domain_correct: dict = field(default_factory=dict)
    by_domain_total: dict = field(default_factory=dict)
    reviews: tuple = ()

    @property
    def percentage(self) -> float:
        if not self.total:
            return 0.0
        return round(self.correct / self.total * 100, 1)

    def domain_breakdown(self) -> dict:
        return {
            domain: {"correct": self.by_domain_correct.get(domain, 0), "total": total}
            for domain, total in self.by_domain_total.items()
        }


@dataclass
class Certification:
    id: str
    name: str
    domain_weights: dict = field(default_factory=dict)
    domain_labels: dict = field(default_factory=dict)
