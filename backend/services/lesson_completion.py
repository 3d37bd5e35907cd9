"""
Lesson Completion Service - quiz score -> completion gate -> XP ledger
"""
from typing import Optional
import logging

from models.lesson import Lesson
from models.progress import CompletionOutcome, CompletionStatus
from models.user import Session
from services.completion_gate import CompletionGate
from services.xp_ledger import XPLedger
from utils.messages import render

logger = logging.getLogger(__name__)

_SEVERITY = {
    CompletionStatus.COMPLETED: "success",
    CompletionStatus.REPAIRED: "success",
    CompletionStatus.ALREADY_COMPLETED: "info",
    CompletionStatus.PARTIAL: "warning",
    CompletionStatus.FAILED: "error",
    CompletionStatus.REJECTED: "error",
    CompletionStatus.QUIZ_FAILED: "warning",
}


class LessonCompletionService:

    def __init__(self, ledger: XPLedger, gate: CompletionGate = None):
        self.ledger = ledger
        self.gate = gate or CompletionGate()

    def submit_quiz_score(self, session: Optional[Session], lesson: Optional[Lesson],
                          score: int, total: int) -> CompletionOutcome:
        """Apply the pass rule to a finished quiz and complete the lesson if it passed"""
        if session is None or lesson is None:
            return self._localize(self.ledger.complete_lesson(None, lesson), None)

        decision = self.gate.evaluate(score, total)
        if not decision.passed:
            logger.info(f"Quiz not passed: {score}/{total} ({decision.percentage}%), need {decision.min_score}")
            outcome = CompletionOutcome(
                status=CompletionStatus.QUIZ_FAILED,
                lesson_id=lesson.id,
                xp_reward=lesson.xp_reward,
                gate=decision
            )
            return self._localize(outcome, session.locale)

        logger.info(f"Quiz passed: {score}/{total} ({decision.percentage}%)")
        outcome = self.ledger.complete_lesson(session.user_id, lesson, score=score)
        outcome.gate = decision
        return self._localize(outcome, session.locale)

    def complete_without_quiz(self, session: Optional[Session], lesson: Optional[Lesson]) -> CompletionOutcome:
        """Explicit "mark as done" for lessons that have no quiz"""
        user_id = session.user_id if session else None
        outcome = self.ledger.complete_lesson(user_id, lesson)
        return self._localize(outcome, session.locale if session else None)

    def _localize(self, outcome: CompletionOutcome, locale: Optional[str]) -> CompletionOutcome:
        level_up = ""
        if outcome.level_up and outcome.award and outcome.award.new_level:
            level_up = render("level_up", locale, level=outcome.award.new_level)[1]

        values = {
            "xp": outcome.xp_awarded or outcome.xp_reward,
            "level_up": level_up,
            "reason": outcome.reason or "Unknown error",
        }
        if outcome.gate is not None:
            values.update(
                score=outcome.gate.score,
                total=outcome.gate.total,
                percentage=outcome.gate.percentage,
                min_score=outcome.gate.min_score
            )

        outcome.title, outcome.message = render(outcome.status.value, locale, **values)
        outcome.severity = _SEVERITY[outcome.status]
        return outcome
