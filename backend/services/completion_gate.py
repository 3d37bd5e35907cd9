"""
Completion Gate - pass/fail policy for a finished quiz
"""
from fractions import Fraction
import math

from config import settings
from models.progress import GateDecision
from utils.errors import ContractViolation


class CompletionGate:
    """
    A quiz counts as "lesson completed" when

        score >= ceil(total * pass_ratio)  or  score == total

    The ratio is kept as an exact fraction so 10 * 0.7 is 7, not 7.000000000000001.
    """

    def __init__(self, pass_ratio: float = None):
        ratio = settings.QUIZ_PASS_RATIO if pass_ratio is None else pass_ratio
        if not 0 <= ratio <= 1:
            raise ValueError(f"pass_ratio must be within [0, 1], got {ratio}")
        self.pass_ratio = Fraction(str(ratio))

    def min_score(self, total: int) -> int:
        return math.ceil(total * self.pass_ratio)

    @staticmethod
    def percentage(score: int, total: int) -> int:
        """Score as a whole percentage, halves rounded up"""
        return math.floor(Fraction(score * 100, total) + Fraction(1, 2))

    def evaluate(self, score: int, total: int) -> GateDecision:
        if total < 1:
            raise ContractViolation("A lesson without questions is completed directly, not through the quiz gate")
        if not 0 <= score <= total:
            raise ContractViolation(f"Score {score} is outside 0..{total}")

        min_score = self.min_score(total)
        return GateDecision(
            passed=score >= min_score or score == total,
            score=score,
            total=total,
            min_score=min_score,
            percentage=self.percentage(score, total)
        )
