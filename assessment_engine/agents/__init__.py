"""Agents for the Assessment Session Engine."""

from .base_agent import BaseAgent
from .evaluator_agent import (
    AnswerEvaluatorAgent,
    ClosedFormEvaluationStrategy,
    EvaluationContext,
    EvaluationStrategy,
    OpenEndedEvaluationStrategy,
)
from .question_source_agent import QuestionRequest, QuestionSourceAgent

__all__ = [
    "BaseAgent",
    "AnswerEvaluatorAgent",
    "ClosedFormEvaluationStrategy",
    "EvaluationContext",
    "EvaluationStrategy",
    "OpenEndedEvaluationStrategy",
    "QuestionRequest",
    "QuestionSourceAgent",
]
