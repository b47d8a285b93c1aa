"""Question models for the Assessment Session Engine."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from .base import BaseModel, FrozenModel
from .enums import EvaluationMode, QuestionDifficulty, QuestionType


class QuestionOption(FrozenModel):
    """A selectable option of a multiple-choice question."""

    option_id: str = Field(..., description="Option identifier submitted as the answer")
    text: str = Field(..., description="Option text")
    is_correct: bool = Field(default=False, description="Whether this option is a correct answer")


class Question(FrozenModel):
    """Represents an assessment question."""

    question_id: str = Field(..., description="Unique question identifier")
    content: str = Field(..., min_length=1, max_length=2000, description="Question content")
    type: QuestionType = Field(..., description="Question type")
    difficulty: QuestionDifficulty = Field(default=QuestionDifficulty.MEDIUM, description="Question difficulty")
    category: Optional[str] = Field(default=None, description="Question category")
    hints: List[str] = Field(default_factory=list, description="Hints in reveal order")
    suggested_answer: Optional[str] = Field(default=None, description="Suggested answer or key points")
    explanation: Optional[str] = Field(default=None, description="Explanation shown after answering")
    options: List[QuestionOption] = Field(default_factory=list, description="Options for multiple-choice questions")
    company: Optional[str] = Field(default=None, description="Company the question is associated with")
    role: Optional[str] = Field(default=None, description="Role the question is associated with")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    estimated_time_minutes: Optional[int] = Field(default=None, ge=1, le=120, description="Estimated answering time")
    is_active: bool = Field(default=True, description="Whether the question may be drawn")
    is_ai_generated: bool = Field(default=False, description="Whether the question came from AI generation")

    @property
    def evaluation_mode(self) -> EvaluationMode:
        """Get the evaluation mode for this question."""
        return self.type.evaluation_mode

    @property
    def has_correctness_predicate(self) -> bool:
        """Check whether the question can objectively judge an answer."""
        return any(option.is_correct for option in self.options)

    def check_answer(self, answer: str) -> Optional[bool]:
        """Check an answer against the correct options.

        Returns:
            True/False when a correct option is defined, None otherwise.
        """
        if not self.has_correctness_predicate:
            return None

        normalized = answer.strip()
        for option in self.options:
            if not option.is_correct:
                continue
            if normalized == option.option_id or normalized.lower() == option.text.strip().lower():
                return True
        return False

    def feedback_text(self) -> Optional[str]:
        """Get the explanation or suggested answer, whichever exists first."""
        return self.explanation or self.suggested_answer

    def to_view(self) -> "QuestionView":
        """Get the question in display form, without answer material."""
        return QuestionView(
            question_id=self.question_id,
            content=self.content,
            type=self.type,
            difficulty=self.difficulty,
            category=self.category,
            options=[QuestionOptionView(option_id=o.option_id, text=o.text) for o in self.options],
            hints_available=len(self.hints),
            is_ai_generated=self.is_ai_generated,
        )


class QuestionOptionView(FrozenModel):
    """Option as shown to the candidate."""

    option_id: str
    text: str


class QuestionView(FrozenModel):
    """Question as shown to the candidate."""

    question_id: str
    content: str
    type: QuestionType
    difficulty: QuestionDifficulty
    category: Optional[str] = None
    options: List[QuestionOptionView] = Field(default_factory=list)
    hints_available: int = 0
    is_ai_generated: bool = False


class EphemeralQuestionRef(BaseModel):
    """AI-generated question stored inline on the session."""

    kind: Literal["ephemeral"] = "ephemeral"
    question: Question

    @property
    def question_id(self) -> str:
        return self.question.question_id


class PersistedQuestionRef(BaseModel):
    """Reference to a question held by the question bank."""

    kind: Literal["persisted"] = "persisted"
    question_id: str


QuestionRef = Annotated[Union[EphemeralQuestionRef, PersistedQuestionRef], Field(discriminator="kind")]


def make_question_ref(question: Question) -> Union[EphemeralQuestionRef, PersistedQuestionRef]:
    """Build the session reference for a resolved question."""
    if question.is_ai_generated:
        return EphemeralQuestionRef(question=question)
    return PersistedQuestionRef(question_id=question.question_id)
