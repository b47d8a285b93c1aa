"""Rule-based session feedback."""

from typing import Sequence

from ..models.session import Answer, SessionFeedback


class FeedbackGenerator:
    """Builds strengths, improvements and recommendations from session answers."""

    def generate(self, answers: Sequence[Answer]) -> SessionFeedback:
        feedback = SessionFeedback()
        if not answers:
            return feedback

        total = len(answers)
        accuracy = sum(1 for answer in answers if answer.is_correct) / total * 100
        average_time = sum(answer.time_spent_seconds for answer in answers) / total

        if accuracy >= 80:
            feedback.strengths.append("Excellent accuracy in answering questions")
        elif accuracy >= 60:
            feedback.strengths.append("Good understanding of concepts")
        else:
            feedback.improvements.append("Focus on improving accuracy")

        if average_time < 120:
            feedback.strengths.append("Efficient time management")
        elif average_time > 300:
            feedback.improvements.append("Work on time management skills")

        if accuracy < 70:
            feedback.recommendations.append("Review fundamental concepts before next session")

        if any(answer.hints_used for answer in answers):
            feedback.recommendations.append("Try to solve problems without hints to build confidence")

        return feedback
