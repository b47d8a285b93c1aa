"""Session-level score aggregation."""

from typing import Sequence

from ..models.results import SessionScores
from ..models.session import Answer


CONFIDENCE_TIME_THRESHOLD = 300
CONFIDENCE_TIME_BONUS = 10
HINT_PENALTY = 5


class ScoreAggregator:
    """Computes overall accuracy and confidence scores for a session."""

    def answer_confidence(self, answer: Answer) -> int:
        """Confidence contribution of a single answer."""
        base = 100 if answer.is_correct else 0
        time_bonus = CONFIDENCE_TIME_BONUS if answer.time_spent_seconds < CONFIDENCE_TIME_THRESHOLD else 0
        return max(0, base + time_bonus - HINT_PENALTY * len(answer.hints_used))

    def aggregate(self, answers: Sequence[Answer]) -> SessionScores:
        """Aggregate scores over all answers.

        ``overall_score`` is the percentage of correct answers.
        ``confidence_score`` averages the per-answer confidence and is
        clamped to 100. Both are 0 when there are no answers.
        """
        if not answers:
            return SessionScores(overall_score=0, confidence_score=0)

        total = len(answers)
        correct = sum(1 for answer in answers if answer.is_correct)
        overall = round(100 * correct / total)

        confidence_points = sum(self.answer_confidence(answer) for answer in answers)
        confidence = round(100 * confidence_points / (100 * total))

        return SessionScores(
            overall_score=min(100, max(0, overall)),
            confidence_score=min(100, max(0, confidence)),
        )
