"""Enumeration types for the Assessment Session Engine."""

from enum import Enum
from typing import List


class _LenientEnum(str, Enum):
    """String enum that also accepts member names and ``Class.MEMBER`` forms."""

    @classmethod
    def _missing_(cls, value):
        """Handle alternative string spellings during deserialization."""
        if isinstance(value, str):
            # Handle cases like "SessionStatus.COMPLETED", "COMPLETED" or "Completed"
            if value.startswith(f"{cls.__name__}."):
                value = value.split(".", 1)[1]
            normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
            try:
                return cls[normalized]
            except KeyError:
                pass
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class SessionType(_LenientEnum):
    """Kinds of assessment sessions a candidate can start."""

    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    SYSTEM_DESIGN = "system-design"
    MIXED = "mixed"
    COMPANY_SPECIFIC = "company-specific"

    @property
    def question_types(self) -> List["QuestionType"]:
        """Question types drawn from the question bank, empty meaning any."""
        return {
            SessionType.TECHNICAL: [QuestionType.TECHNICAL],
            SessionType.BEHAVIORAL: [QuestionType.BEHAVIORAL],
            SessionType.SYSTEM_DESIGN: [QuestionType.SYSTEM_DESIGN],
            SessionType.MIXED: [],
            SessionType.COMPANY_SPECIFIC: [],
        }[self]


class Difficulty(_LenientEnum):
    """Difficulty requested for a session."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"

    @property
    def question_difficulties(self) -> List["QuestionDifficulty"]:
        """Question difficulties that satisfy this session difficulty."""
        if self == Difficulty.MIXED:
            return list(QuestionDifficulty)
        return [QuestionDifficulty(self.value)]


class QuestionDifficulty(_LenientEnum):
    """Difficulty of a single question."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class EvaluationMode(Enum):
    """How answers to a question type are scored."""

    OPEN_ENDED = "open-ended"
    CLOSED_FORM = "closed-form"


class QuestionType(_LenientEnum):
    """Question types known to the engine."""

    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    CODING = "coding"
    SYSTEM_DESIGN = "system-design"
    MULTIPLE_CHOICE = "multiple-choice"

    @property
    def evaluation_mode(self) -> EvaluationMode:
        """Get the evaluation mode used for this question type."""
        if self in (QuestionType.TECHNICAL, QuestionType.BEHAVIORAL, QuestionType.CODING):
            return EvaluationMode.OPEN_ENDED
        return EvaluationMode.CLOSED_FORM


class SessionStatus(_LenientEnum):
    """Assessment session status."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        """Check whether no further transitions are allowed."""
        return self in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)


class AnalyticsEventType(Enum):
    """Session lifecycle events sent to the analytics recorder."""

    SESSION_STARTED = "interview_started"
    ANSWER_SUBMITTED = "interview_answered"
    SESSION_COMPLETED = "interview_completed"
    SESSION_ABANDONED = "interview_abandoned"
