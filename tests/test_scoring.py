"""Tests for score aggregation and session feedback."""

from assessment_engine.models import Answer, HintUsage
from assessment_engine.services.feedback_generator import FeedbackGenerator
from assessment_engine.services.score_aggregator import ScoreAggregator


def answer(is_correct=True, time_spent=30, hints=0, score=100) -> Answer:
    return Answer(
        question_id="q",
        user_answer="answer",
        is_correct=is_correct,
        time_spent_seconds=time_spent,
        score=score,
        hints_used=[HintUsage(hint_text=f"hint {i}") for i in range(hints)],
    )


class TestScoreAggregator:
    def setup_method(self):
        self.aggregator = ScoreAggregator()

    def test_no_answers(self):
        scores = self.aggregator.aggregate([])
        assert scores.overall_score == 0
        assert scores.confidence_score == 0

    def test_overall_is_percentage_correct(self):
        scores = self.aggregator.aggregate([answer(), answer(is_correct=False), answer(), answer()])
        assert scores.overall_score == 75

    def test_confidence_is_clamped(self):
        scores = self.aggregator.aggregate([answer(time_spent=10), answer(time_spent=20)])
        assert scores.confidence_score == 100

    def test_confidence_with_hints_and_slow_answers(self):
        assert self.aggregator.answer_confidence(answer(time_spent=400, hints=2)) == 90
        assert self.aggregator.answer_confidence(answer(is_correct=False, time_spent=400, hints=1)) == 0

        scores = self.aggregator.aggregate([
            answer(time_spent=400, hints=2),
            answer(is_correct=False, time_spent=100),
        ])
        assert scores.confidence_score == 50

    def test_unknown_correctness_counts_as_incorrect(self):
        scores = self.aggregator.aggregate([answer(is_correct=None), answer()])
        assert scores.overall_score == 50


class TestFeedbackGenerator:
    def setup_method(self):
        self.generator = FeedbackGenerator()

    def test_high_accuracy_fast(self):
        feedback = self.generator.generate([answer(), answer()])
        assert feedback.strengths == ["Excellent accuracy in answering questions", "Efficient time management"]
        assert feedback.improvements == []
        assert feedback.recommendations == []

    def test_good_accuracy_band(self):
        answers = [answer(), answer(), answer(is_correct=False), answer(time_spent=200), answer(is_correct=False)]
        feedback = self.generator.generate(answers)
        assert "Good understanding of concepts" in feedback.strengths
        assert "Review fundamental concepts before next session" in feedback.recommendations

    def test_low_accuracy_slow_with_hints(self):
        feedback = self.generator.generate([
            answer(is_correct=False, time_spent=400, hints=1),
            answer(is_correct=False, time_spent=350),
        ])
        assert feedback.strengths == []
        assert feedback.improvements == ["Focus on improving accuracy", "Work on time management skills"]
        assert feedback.recommendations == [
            "Review fundamental concepts before next session",
            "Try to solve problems without hints to build confidence",
        ]

    def test_middle_time_band_is_silent(self):
        feedback = self.generator.generate([answer(time_spent=200)])
        assert "Efficient time management" not in feedback.strengths
        assert "Work on time management skills" not in feedback.improvements

    def test_time_bands_use_unrounded_average(self):
        slow = self.generator.generate([answer(time_spent=300.4)])
        fast = self.generator.generate([answer(time_spent=119.6)])

        assert "Work on time management skills" in slow.improvements
        assert "Efficient time management" in fast.strengths

    def test_empty(self):
        feedback = self.generator.generate([])
        assert feedback.strengths == [] and feedback.improvements == [] and feedback.recommendations == []
