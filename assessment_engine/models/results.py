"""Result models returned by the session manager operations."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from .base import BaseModel
from .enums import Difficulty, SessionStatus, SessionType
from .question import QuestionView
from .session import AIEvaluation, AssessmentSession, SessionFeedback


class ScoredAnswer(BaseModel):
    """Outcome of evaluating one answer."""

    score: int = Field(..., ge=0, le=100)
    is_correct: Optional[bool] = None
    feedback: str = ""
    ai_evaluation: Optional[AIEvaluation] = None


class SessionScores(BaseModel):
    """Aggregate scores of a session."""

    overall_score: int = Field(default=0, ge=0, le=100)
    confidence_score: int = Field(default=0, ge=0, le=100)


class StartSessionResult(BaseModel):
    """Returned when a session is started."""

    session_id: str
    total_questions: int
    first_question: QuestionView
    ai_generated: bool = False
    started_at: datetime
    session: AssessmentSession


class CurrentQuestionResult(BaseModel):
    """Active question with session progress."""

    session_id: str
    question_index: int = Field(..., description="1-based position of the active question")
    total_questions: int
    elapsed_seconds: int
    question: QuestionView


class HintResult(BaseModel):
    """A revealed hint."""

    session_id: str
    question_id: str
    hint: str
    hint_number: int = Field(..., description="1-based position of the hint")
    hints_remaining: int


class SessionSummary(BaseModel):
    """Summary attached to the final answer submission."""

    total_questions: int
    correct_answers: int
    overall_score: int
    confidence_score: int
    total_time_spent: float
    ai_enhanced: bool
    feedback: SessionFeedback

    @classmethod
    def from_session(cls, session: AssessmentSession) -> "SessionSummary":
        return cls(
            total_questions=session.total_questions,
            correct_answers=session.correct_answers,
            overall_score=session.overall_score or 0,
            confidence_score=session.confidence_score or 0,
            total_time_spent=session.total_time_spent,
            ai_enhanced=session.ai_generated,
            feedback=session.feedback or SessionFeedback(),
        )


class SubmissionResult(BaseModel):
    """Returned after an answer is submitted."""

    is_correct: Optional[bool]
    score: int
    feedback: str
    ai_evaluation: Optional[AIEvaluation] = None
    session_complete: bool
    session_summary: Optional[SessionSummary] = None
    next_question: Optional[QuestionView] = None


class SessionDetails(BaseModel):
    """Read-only session metadata and progress."""

    session_id: str
    user_id: Optional[str] = None
    session_type: SessionType
    company: Optional[str] = None
    role: Optional[str] = None
    difficulty: Difficulty
    status: SessionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_questions: int
    answered_questions: int
    overall_score: Optional[int] = None
    confidence_score: Optional[int] = None
    total_time_spent: float = 0
    feedback: Optional[SessionFeedback] = None
    progress_percentage: int = 0
    ai_generated: bool = False

    @classmethod
    def from_session(cls, session: AssessmentSession) -> "SessionDetails":
        return cls(
            session_id=session.session_id,
            user_id=session.user_id,
            session_type=session.session_type,
            company=session.company,
            role=session.role,
            difficulty=session.difficulty,
            status=session.status,
            started_at=session.started_at,
            completed_at=session.completed_at,
            total_questions=session.total_questions,
            answered_questions=session.answered_questions,
            overall_score=session.overall_score,
            confidence_score=session.confidence_score,
            total_time_spent=session.total_time_spent,
            feedback=session.feedback,
            progress_percentage=session.progress_percentage,
            ai_generated=session.ai_generated,
        )


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_sessions: int
    has_next: bool
    has_prev: bool


class SessionPage(BaseModel):
    """A page of a user's sessions, newest first."""

    sessions: List[SessionDetails] = Field(default_factory=list)
    pagination: Pagination


class SessionTypeStats(BaseModel):
    count: int = 0
    average_score: float = 0.0


class RecentSession(BaseModel):
    session_id: str
    session_type: SessionType
    overall_score: int
    confidence_score: int
    completed_at: Optional[datetime] = None


class UserStats(BaseModel):
    """Aggregate statistics across a user's completed sessions."""

    user_id: str
    total_sessions: int = 0
    average_score: float = 0.0
    average_confidence: float = 0.0
    total_time_spent: float = 0.0
    sessions_by_type: Dict[str, SessionTypeStats] = Field(default_factory=dict)
    recent_sessions: List[RecentSession] = Field(default_factory=list)
    improvement_trend: float = 0.0


class QuestionMetadata(BaseModel):
    """Distinct values available for filtering the question bank."""

    types: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    companies: List[str] = Field(default_factory=list)
    roles: List[str] = Field(default_factory=list)
    difficulties: List[str] = Field(default_factory=list)
