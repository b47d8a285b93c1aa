"""Assessment session models for the Assessment Session Engine."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import BaseModel, FrozenModel, TimestampedModel
from .enums import Difficulty, SessionStatus, SessionType
from .question import QuestionRef
from ..utils.exceptions import DataIntegrityError


class HintUsage(FrozenModel):
    """A hint revealed while answering a question."""

    hint_text: str = Field(..., description="Hint text")
    used_at: datetime = Field(default_factory=datetime.now, description="When the hint was revealed")


class AIEvaluation(FrozenModel):
    """Qualitative AI judgment attached to an answer."""

    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class Answer(FrozenModel):
    """A scored answer to one session question."""

    question_id: str = Field(..., description="Identifier of the answered question")
    user_answer: str = Field(..., min_length=1, description="Sanitised answer text")
    time_spent_seconds: float = Field(default=0, ge=0, description="Time spent answering")
    is_correct: Optional[bool] = Field(default=None, description="Correctness, None when not applicable")
    score: int = Field(..., ge=0, le=100, description="Answer score")
    feedback: str = Field(default="", description="Feedback text")
    ai_evaluation: Optional[AIEvaluation] = Field(default=None, description="AI evaluation details")
    hints_used: List[HintUsage] = Field(default_factory=list, description="Hints revealed before answering")
    answered_at: datetime = Field(default_factory=datetime.now, description="Submission time")


class SessionFeedback(BaseModel):
    """Rule-based feedback for a completed session."""

    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class SessionSettings(BaseModel):
    """Per-session behaviour settings."""

    time_limit_minutes: int = Field(default=60, ge=1, description="Time limit for the session")
    hints_enabled: bool = Field(default=True, description="Whether hints may be revealed")
    show_correct_answers: bool = Field(default=True, description="Whether explanations are shown as feedback")


class AssessmentSession(TimestampedModel):
    """Represents one run of N questions by one candidate."""

    session_id: str = Field(..., description="Unique session identifier")
    user_id: Optional[str] = Field(default=None, description="Owner identifier")
    session_type: SessionType = Field(..., description="Session type")
    company: Optional[str] = Field(default=None, description="Company filter")
    role: Optional[str] = Field(default=None, description="Role filter")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM, description="Requested difficulty")
    questions: List[QuestionRef] = Field(..., min_length=1, description="Question snapshot")
    answers: List[Answer] = Field(default_factory=list, description="Submitted answers")
    status: SessionStatus = Field(default=SessionStatus.IN_PROGRESS, description="Session status")
    started_at: datetime = Field(default_factory=datetime.now, description="Session start time")
    completed_at: Optional[datetime] = Field(default=None, description="Completion time")
    last_activity_at: datetime = Field(default_factory=datetime.now, description="Last request touching the session")
    overall_score: Optional[int] = Field(default=None, ge=0, le=100, description="Accuracy score")
    confidence_score: Optional[int] = Field(default=None, ge=0, le=100, description="Confidence score")
    total_time_spent: float = Field(default=0, ge=0, description="Total answering time in seconds")
    feedback: Optional[SessionFeedback] = Field(default=None, description="Session feedback")
    settings: SessionSettings = Field(default_factory=SessionSettings, description="Session settings")
    ai_generated: bool = Field(default=False, description="Whether questions came from AI generation")
    pending_hints: List[HintUsage] = Field(default_factory=list, description="Hints revealed for the active question")

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answered_questions(self) -> int:
        return len(self.answers)

    @property
    def current_index(self) -> int:
        """Zero-based index of the active question."""
        return len(self.answers)

    @property
    def all_answered(self) -> bool:
        return len(self.answers) >= len(self.questions)

    @property
    def progress_percentage(self) -> int:
        """Calculate session completion percentage."""
        if not self.questions:
            return 0
        return round(len(self.answers) / len(self.questions) * 100)

    @property
    def average_time_per_question(self) -> int:
        """Average answering time in whole seconds."""
        if not self.answers:
            return 0
        return round(sum(answer.time_spent_seconds for answer in self.answers) / len(self.answers))

    @property
    def correct_answers(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Seconds elapsed since the session started."""
        now = now or datetime.now()
        return max(0, int((now - self.started_at).total_seconds()))

    def touch(self) -> None:
        """Record activity on the session."""
        self.last_activity_at = datetime.now()
        self.update_timestamp()

    def add_answer(self, answer: Answer) -> None:
        """Append the answer for the active question.

        Raises:
            DataIntegrityError: If the session is not accepting answers.
        """
        if self.status != SessionStatus.IN_PROGRESS:
            raise DataIntegrityError(
                f"Session {self.session_id} is {self.status.value}",
                data_type="AssessmentSession",
                constraint="status == in-progress",
            )
        if self.all_answered:
            raise DataIntegrityError(
                f"Session {self.session_id} already has an answer for every question",
                data_type="AssessmentSession",
                constraint="len(answers) <= len(questions)",
            )
        expected_id = self.questions[self.current_index].question_id
        if answer.question_id != expected_id:
            raise DataIntegrityError(
                f"Answer for {answer.question_id} does not match active question {expected_id}",
                data_type="Answer",
                constraint="answers follow question order",
            )
        self.answers = [*self.answers, answer]
        self.pending_hints = []
        self.touch()
