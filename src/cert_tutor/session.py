"""Quiz session state machine.

A session owns the navigation index, the answers and review marks (keyed by
content id, never by position) and the countdown timer of one practice
attempt. All timing goes through a scheduler: an asyncio event loop or a
``ManualScheduler``. Persistence calls are queued on the same scheduler after
local state has changed, and their failures are logged, never raised.
"""
import logging
import uuid

from cert_tutor.finalization import guarded_score
from cert_tutor.models import SessionState
from cert_tutor.scoring import is_correct, normalize_selection, score_session

logger = logging.getLogger(__name__)


class QuizSession:
    def __init__(
        self,
        scheduler,
        recorder=None,
        session_id: str | None = None,
        on_finalize=None,
        tick_interval: float = 1.0,
        scorer=score_session,
    ):
        self.scheduler = scheduler
        self.recorder = recorder
        self.session_id = session_id or uuid.uuid4().hex
        self.on_finalize = on_finalize
        self.tick_interval = tick_interval
        self.scorer = scorer

        self.state = SessionState.IDLE
        self.questions = []
        self.domain_weights = {}
        self.current_index = 0
        self.started_at = None
        self.finished_at = None
        self.duration_limit = None
        self.remaining_seconds = None
        self.summary = None

        self._answers = {}
        self._marked = {}
        self._by_content_id = {}
        self._timer = None
        self._question_shown_at = None

    # -- lifecycle -----------------------------------------------------

    def start(self, questions, domain_weights: dict, duration_limit: int | None = None) -> None:
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session {self.session_id} was already started")
        questions = list(questions)
        if not questions:
            raise ValueError("A session needs at least one question")

        self.questions = questions
        self.domain_weights = dict(domain_weights or {})
        self._by_content_id = {q.content_id: q for q in questions}
        self._answers = {}
        self._marked = {}
        self.current_index = 0
        self.started_at = self.scheduler.time()
        self._question_shown_at = self.started_at
        self.state = SessionState.ACTIVE

        if duration_limit:
            self.duration_limit = int(duration_limit)
            self.remaining_seconds = self.duration_limit
            self._timer = self.scheduler.call_later(self.tick_interval, self._tick)
        logger.info(
            "Session %s started with %d questions (limit=%s)",
            self.session_id, len(questions), duration_limit,
        )

    def _tick(self) -> None:
        self._timer = None
        if self.state is not SessionState.ACTIVE:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            logger.info("Session %s ran out of time", self.session_id)
            self.finalize()
            return
        self._timer = self.scheduler.call_later(self.tick_interval, self._tick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        """Tear the session down without scoring it."""
        self._cancel_timer()

    def finalize(self):
        if self.state is SessionState.TERMINAL:
            return self.summary
        if self.state is not SessionState.ACTIVE:
            return None

        self.state = SessionState.FINALIZING
        self._cancel_timer()
        self.finished_at = self.scheduler.time()
        summary = guarded_score(self.questions, dict(self._answers), self.domain_weights, scorer=self.scorer)
        self.summary = summary
        self.state = SessionState.TERMINAL
        logger.info(
            "Session %s finalized: %d/%d, score %d",
            self.session_id, summary.correct, summary.total, summary.score,
        )

        if self.recorder is not None:
            self.scheduler.call_soon(
                self._deliver, "complete_attempt",
                self.session_id, summary.correct, summary.score, summary.domain_breakdown(),
            )
        if self.on_finalize is not None:
            try:
                self.on_finalize(summary)
            except Exception:
                logger.exception("on_finalize callback failed for session %s", self.session_id)
        return summary

    # -- answers and marks ---------------------------------------------

    def answer(self, content_id: str, selection) -> bool:
        """Store a selection if it has exactly the required number of labels."""
        if self.state is not SessionState.ACTIVE:
            return False
        question = self._by_content_id.get(content_id)
        if question is None:
            return False
        normalized = normalize_selection(selection)
        if len(normalized) != question.required_selection_count:
            return False
        if any(label not in question.options for label in normalized):
            return False

        self._answers[content_id] = normalized
        if self.recorder is not None:
            now = self.scheduler.time()
            shown_at = self._question_shown_at if self._question_shown_at is not None else now
            elapsed = max(0, int(now - shown_at))
            self.scheduler.call_soon(
                self._deliver, "record_answer",
                self.session_id, content_id, normalized, is_correct(question, normalized), elapsed,
            )
        return True

    def clear_answer(self, content_id: str) -> bool:
        if self.state is not SessionState.ACTIVE:
            return False
        return self._answers.pop(content_id, None) is not None

    def mark(self, content_id: str, flag: bool) -> bool:
        if self.state is not SessionState.ACTIVE or content_id not in self._by_content_id:
            return False
        if flag:
            self._marked[content_id] = True
        else:
            self._marked.pop(content_id, None)
        return True

    def toggle_mark(self, content_id: str) -> bool:
        return self.mark(content_id, not self.is_marked(content_id))

    def _deliver(self, method: str, *args) -> None:
        try:
            getattr(self.recorder, method)(*args)
        except Exception:
            logger.warning("Persistence call %s failed for session %s", method, self.session_id, exc_info=True)

    # -- navigation ----------------------------------------------------

    def _move_to(self, index: int) -> bool:
        if self.state is not SessionState.ACTIVE:
            return False
        index = max(0, min(len(self.questions) - 1, index))
        if index != self.current_index:
            self.current_index = index
            self._question_shown_at = self.scheduler.time()
        return True

    def next(self) -> bool:
        return self._move_to(self.current_index + 1)

    def prev(self) -> bool:
        return self._move_to(self.current_index - 1)

    def jump_to(self, index: int) -> bool:
        return self._move_to(index)

    def relocalize(self, questions) -> bool:
        """Swap in another language's list with the same content order."""
        if self.state is not SessionState.ACTIVE:
            return False
        questions = list(questions)
        if [q.content_id for q in questions] != [q.content_id for q in self.questions]:
            logger.warning("Session %s: refusing a question list with a different order", self.session_id)
            return False
        self.questions = questions
        self._by_content_id = {q.content_id: q for q in questions}
        return True

    # -- read accessors ------------------------------------------------

    @property
    def current_question(self):
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def current_answer(self):
        q = self.current_question
        return self._answers.get(q.content_id) if q else None

    @property
    def is_current_marked(self) -> bool:
        q = self.current_question
        return self.is_marked(q.content_id) if q else False

    def answer_for(self, content_id: str):
        return self._answers.get(content_id)

    def is_marked(self, content_id: str) -> bool:
        return self._marked.get(content_id, False)

    def question_status(self, index: int) -> str:
        if not 0 <= index < len(self.questions):
            return "pending"
        content_id = self.questions[index].content_id
        if self.is_marked(content_id):
            return "marked"
        if content_id in self._answers:
            return "answered"
        return "pending"

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def marked_count(self) -> int:
        return len(self._marked)

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else self.scheduler.time()
        return end - self.started_at

    def __len__(self) -> int:
        return len(self.questions)
