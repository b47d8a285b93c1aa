"""Evaluator Agent for scoring candidate answers to assessment questions."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..agents.base_agent import BaseAgent
from ..models.enums import EvaluationMode
from ..models.question import Question
from ..models.results import ScoredAnswer
from ..models.session import AIEvaluation
from ..services.llm_manager import ANSWER_EVALUATION, LLMProviderManager, LLMRequest
from ..utils.exceptions import UpstreamEvaluationUnavailableError


GENERIC_FEEDBACK = "Thank you for your answer"

DEFAULT_AI_SCORE = 70
PASSING_SCORE = 70
FAST_ANSWER_SCORE = 80
FAST_ANSWER_SECONDS = 120
FAST_ANSWER_BONUS = 10

CLOSED_FORM_SCORE = 100
CLOSED_FORM_TIME_BONUSES = ((60, 10), (120, 5))


def clamp_score(score: float) -> int:
    """Round a score and clamp it to 0..100."""
    return max(0, min(100, int(round(score))))


@dataclass
class EvaluationContext:
    """Inputs for evaluating one answer."""

    question: Question
    answer_text: str
    time_spent_seconds: float = 0
    use_ai: bool = True
    show_solution: bool = True


class EvaluationStrategy(ABC):
    """Scores an answer for one evaluation mode."""

    mode: EvaluationMode

    @abstractmethod
    async def evaluate(self, context: EvaluationContext) -> ScoredAnswer:
        pass


class ClosedFormEvaluationStrategy(EvaluationStrategy):
    """Deterministic scoring against the question's correct options.

    A question without a correct option gives participation credit.
    """

    mode = EvaluationMode.CLOSED_FORM

    async def evaluate(self, context: EvaluationContext) -> ScoredAnswer:
        question = context.question
        is_correct = question.check_answer(context.answer_text)
        if is_correct is None:
            is_correct = True

        score = 0
        if is_correct:
            score = CLOSED_FORM_SCORE
            for threshold, bonus in CLOSED_FORM_TIME_BONUSES:
                if context.time_spent_seconds < threshold:
                    score += bonus
                    break

        feedback = GENERIC_FEEDBACK
        if context.show_solution:
            feedback = question.feedback_text() or GENERIC_FEEDBACK

        return ScoredAnswer(score=clamp_score(score), is_correct=is_correct, feedback=feedback)


class OpenEndedEvaluationStrategy(EvaluationStrategy):
    """AI judgment of free-text answers with a fixed fallback."""

    mode = EvaluationMode.OPEN_ENDED

    def __init__(self, llm_manager: Optional[LLMProviderManager], timeout: float, logger):
        self.llm_manager = llm_manager
        self.timeout = timeout
        self.logger = logger

    async def evaluate(self, context: EvaluationContext) -> ScoredAnswer:
        try:
            result = await self._request_evaluation(context)
        except UpstreamEvaluationUnavailableError as e:
            self.logger.warning(f"AI evaluation unavailable, using fallback: {e}")
            return self.fallback()

        raw_score = self._parse_score(result.get("score"))
        score = DEFAULT_AI_SCORE if raw_score is None else clamp_score(raw_score)
        is_correct = score >= PASSING_SCORE
        if score >= FAST_ANSWER_SCORE and context.time_spent_seconds < FAST_ANSWER_SECONDS:
            score = min(score + FAST_ANSWER_BONUS, 100)

        feedback = result.get("feedback")
        if not isinstance(feedback, str) or not feedback.strip():
            feedback = GENERIC_FEEDBACK

        return ScoredAnswer(
            score=score,
            is_correct=is_correct,
            feedback=feedback.strip(),
            ai_evaluation=AIEvaluation(
                strengths=self._string_list(result.get("strengths")),
                improvements=self._string_list(result.get("improvements")),
                suggestions=self._string_list(result.get("suggestions")),
            ),
        )

    @staticmethod
    def fallback() -> ScoredAnswer:
        return ScoredAnswer(score=DEFAULT_AI_SCORE, is_correct=True, feedback=GENERIC_FEEDBACK)

    async def _request_evaluation(self, context: EvaluationContext) -> Dict[str, Any]:
        """Ask the LLM for a judgment.

        Raises:
            UpstreamEvaluationUnavailableError: On any failure of the LLM call or an unusable response.
        """
        question = context.question
        if self.llm_manager is None or not self.llm_manager.is_available:
            raise UpstreamEvaluationUnavailableError("No LLM provider available", question_id=question.question_id)

        request = LLMRequest(
            type=ANSWER_EVALUATION,
            context={
                "question": question.content,
                "question_type": question.type.value,
                "answer": context.answer_text,
            },
            timeout=self.timeout,
        )
        try:
            response = await self.llm_manager.make_request(request)
        except Exception as e:
            raise UpstreamEvaluationUnavailableError(str(e), question_id=question.question_id) from e

        result = (response.metadata or {}).get("evaluation_data")
        if not isinstance(result, dict):
            raise UpstreamEvaluationUnavailableError("Malformed evaluation response", question_id=question.question_id)
        return result

    @staticmethod
    def _parse_score(value: Any) -> Optional[float]:
        if isinstance(value, bool) or value is None:
            return None
        try:
            score = float(value)
        except (TypeError, ValueError):
            return None
        return score if math.isfinite(score) else None

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item]


class AnswerEvaluatorAgent(BaseAgent):
    """Dispatches answers to the evaluation strategy of their question type."""

    def __init__(self, llm_manager: Optional[LLMProviderManager] = None, ai_timeout_seconds: float = 20):
        super().__init__("answer_evaluator")
        self.closed_form = ClosedFormEvaluationStrategy()
        self.open_ended = OpenEndedEvaluationStrategy(llm_manager, ai_timeout_seconds, self.logger)

    async def process(self, input_data: EvaluationContext) -> ScoredAnswer:
        return await self._strategy_for(input_data).evaluate(input_data)

    async def evaluate(
        self,
        question: Question,
        answer_text: str,
        time_spent_seconds: float = 0,
        use_ai: bool = True,
        show_solution: bool = True,
    ) -> ScoredAnswer:
        """Score an answer.

        Open-ended questions go to the AI strategy when ``use_ai`` is set,
        everything else is scored as closed-form. Never raises for AI
        failures.
        """
        context = EvaluationContext(
            question=question,
            answer_text=answer_text,
            time_spent_seconds=time_spent_seconds,
            use_ai=use_ai,
            show_solution=show_solution,
        )
        result = await self.process(context)
        self.log_operation("answer_evaluated", {
            "question_id": question.question_id,
            "evaluation_mode": self._strategy_for(context).mode.value,
            "score": result.score,
        })
        return result

    def _strategy_for(self, context: EvaluationContext) -> EvaluationStrategy:
        if context.use_ai and context.question.evaluation_mode == EvaluationMode.OPEN_ENDED:
            return self.open_ended
        return self.closed_form
