"""Data models for the Assessment Session Engine."""

from .base import BaseModel, new_identifier
from .enums import (
    AnalyticsEventType,
    Difficulty,
    EvaluationMode,
    QuestionDifficulty,
    QuestionType,
    SessionStatus,
    SessionType,
)
from .question import (
    EphemeralQuestionRef,
    PersistedQuestionRef,
    Question,
    QuestionOption,
    QuestionRef,
    QuestionView,
    make_question_ref,
)
from .session import (
    AIEvaluation,
    Answer,
    AssessmentSession,
    HintUsage,
    SessionFeedback,
    SessionSettings,
)
from .results import (
    CurrentQuestionResult,
    HintResult,
    Pagination,
    QuestionMetadata,
    RecentSession,
    ScoredAnswer,
    SessionDetails,
    SessionPage,
    SessionScores,
    SessionSummary,
    SessionTypeStats,
    StartSessionResult,
    SubmissionResult,
    UserStats,
)

__all__ = [
    "BaseModel",
    "new_identifier",
    "AnalyticsEventType",
    "Difficulty",
    "EvaluationMode",
    "QuestionDifficulty",
    "QuestionType",
    "SessionStatus",
    "SessionType",
    "EphemeralQuestionRef",
    "PersistedQuestionRef",
    "Question",
    "QuestionOption",
    "QuestionRef",
    "QuestionView",
    "make_question_ref",
    "AIEvaluation",
    "Answer",
    "AssessmentSession",
    "HintUsage",
    "SessionFeedback",
    "SessionSettings",
    "CurrentQuestionResult",
    "HintResult",
    "Pagination",
    "QuestionMetadata",
    "RecentSession",
    "ScoredAnswer",
    "SessionDetails",
    "SessionPage",
    "SessionScores",
    "SessionSummary",
    "SessionTypeStats",
    "StartSessionResult",
    "SubmissionResult",
    "UserStats",
]
