"""
Quiz Scorer - per-attempt scoring of a lesson's multiple-choice questions
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import threading
import uuid

from config import settings
from models.lesson import QuizPhase, QuizQuestion, QuizState, Reveal
from utils.errors import ContractViolation, QuizStateError

logger = logging.getLogger(__name__)


class QuizScorer:
    """
    State machine over an ordered, finite sequence of questions.

    ANSWERING(i) --select--> ANSWERING(i) --reveal--> REVEALED(i)
    REVEALED(i) --advance--> ANSWERING(i+1) | FINISHED(score)

    A question is scored only when advancing past it, so each question
    contributes to the score exactly once. The score reported at FINISHED is
    kept as the final total and never recomputed. Restarting needs a new
    scorer.
    """

    def __init__(self, questions: Sequence[QuizQuestion]):
        if not questions:
            raise ContractViolation("A quiz needs at least one question")
        lesson_ids = {q.lesson_id for q in questions}
        if len(lesson_ids) != 1:
            raise ContractViolation("All quiz questions must belong to one lesson")

        self._questions: Tuple[QuizQuestion, ...] = tuple(questions)
        self.lesson_id: str = self._questions[0].lesson_id
        self._index = 0
        self._selected: Optional[int] = None
        self._phase = QuizPhase.ANSWERING
        self._score = 0
        self._final_score: Optional[int] = None

    @property
    def phase(self) -> QuizPhase:
        return self._phase

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def score(self) -> int:
        return self._score

    @property
    def final_score(self) -> Optional[int]:
        return self._final_score

    @property
    def selected_option(self) -> Optional[int]:
        return self._selected

    @property
    def is_finished(self) -> bool:
        return self._phase is QuizPhase.FINISHED

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.is_finished:
            return None
        return self._questions[self._index]

    def select(self, option: int) -> None:
        """Record the chosen option for the current question (no scoring yet)"""
        if self._phase is not QuizPhase.ANSWERING:
            raise QuizStateError(f"Cannot select an option while {self._phase.value}")

        question = self._questions[self._index]
        if not 0 <= option < len(question.options):
            raise ContractViolation(
                f"Option {option} is outside {len(question.options)} options"
            )
        self._selected = option

    def reveal(self) -> Reveal:
        """Lock the selected option and expose the correct answer"""
        if self._phase is not QuizPhase.ANSWERING:
            raise QuizStateError(f"Cannot reveal while {self._phase.value}")
        if self._selected is None:
            raise QuizStateError("Select an option before revealing the answer")

        self._phase = QuizPhase.REVEALED
        question = self._questions[self._index]
        return Reveal(
            question_id=question.id,
            selected_option=self._selected,
            correct_answer=question.correct_answer,
            is_correct=self._selected == question.correct_answer,
            explanation=question.explanation
        )

    def advance(self) -> Optional[int]:
        """
        Score the revealed question and move on.

        Returns the final score when the last question has been scored,
        otherwise None.
        """
        if self._phase is not QuizPhase.REVEALED:
            raise QuizStateError(f"Cannot advance while {self._phase.value}")

        question = self._questions[self._index]
        self._score += 1 if self._selected == question.correct_answer else 0

        if self._index == len(self._questions) - 1:
            self._final_score = self._score
            self._phase = QuizPhase.FINISHED
            return self._final_score

        self._index += 1
        self._selected = None
        self._phase = QuizPhase.ANSWERING
        return None

    def state(self, session_id: Optional[str] = None) -> QuizState:
        question = self.current_question
        return QuizState(
            session_id=session_id,
            lesson_id=self.lesson_id,
            phase=self._phase,
            current_index=self._index,
            total_questions=self.total,
            score=self._score,
            selected_option=self._selected,
            final_score=self._final_score,
            question=question.public_view(self._index, self.total) if question else None
        )


class QuizSession:
    def __init__(self, session_id: str, user_id: str, scorer: QuizScorer,
                 started_at: datetime):
        self.session_id = session_id
        self.user_id = user_id
        self.scorer = scorer
        self.started_at = started_at

    @property
    def lesson_id(self) -> str:
        return self.scorer.lesson_id


class QuizSessionRegistry:
    """In-memory home of the quiz attempts currently in progress"""

    def __init__(self, ttl_seconds: int = None):
        self._ttl = timedelta(seconds=ttl_seconds or settings.QUIZ_SESSION_TTL_SECONDS)
        self._sessions: Dict[str, QuizSession] = {}
        self._lock = threading.Lock()

    def start(self, user_id: str, questions: List[QuizQuestion]) -> QuizSession:
        """Open a fresh attempt, replacing any open attempt at the same lesson"""
        scorer = QuizScorer(questions)
        session = QuizSession(uuid.uuid4().hex, user_id, scorer, datetime.now())
        with self._lock:
            self._purge_expired()
            stale = [
                sid for sid, s in self._sessions.items()
                if s.user_id == user_id and s.lesson_id == scorer.lesson_id
            ]
            for sid in stale:
                del self._sessions[sid]
            self._sessions[session.session_id] = session
        logger.info(f"Quiz session started for lesson_id={scorer.lesson_id} ({scorer.total} questions)")
        return session

    def get(self, session_id: str, user_id: str) -> Optional[QuizSession]:
        """Look up an attempt; other users' attempts are invisible"""
        with self._lock:
            self._purge_expired()
            session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _purge_expired(self) -> None:
        cutoff = datetime.now() - self._ttl
        expired = [sid for sid, s in self._sessions.items() if s.started_at < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Discarded {len(expired)} abandoned quiz session(s)")
