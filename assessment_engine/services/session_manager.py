"""Session Manager driving the assessment session state machine."""

import asyncio
import math
import weakref
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from ..agents.evaluator_agent import AnswerEvaluatorAgent
from ..agents.question_source_agent import QuestionSourceAgent
from ..models.base import new_identifier
from ..models.enums import AnalyticsEventType, Difficulty, SessionStatus, SessionType
from ..models.question import EphemeralQuestionRef, Question, make_question_ref
from ..models.results import (
    CurrentQuestionResult,
    HintResult,
    Pagination,
    QuestionMetadata,
    RecentSession,
    SessionDetails,
    SessionPage,
    SessionSummary,
    SessionTypeStats,
    StartSessionResult,
    SubmissionResult,
    UserStats,
)
from ..models.session import Answer, AssessmentSession, HintUsage, SessionSettings
from ..utils.exceptions import (
    InvalidRequestError,
    NotFoundError,
    SessionAlreadyCompleteError,
)
from ..utils.logging import get_logger, set_correlation_id
from ..utils.sanitization import sanitize_input, sanitize_optional
from .analytics_recorder import AnalyticsEvent, AnalyticsRecorder, NullAnalyticsRecorder, create_analytics_recorder
from .configuration_manager import ConfigurationManager, EngineConfig
from .feedback_generator import FeedbackGenerator
from .llm_manager import LLMProviderManager
from .question_bank import QuestionBank
from .score_aggregator import ScoreAggregator
from .storage_manager import StorageManager


RECENT_SESSIONS_LIMIT = 5
MAX_PAGE_SIZE = 100


class SessionManager:
    """Creates sessions, serves questions, records answers and completes sessions.

    Every operation that reads and then writes one session runs under a lock
    keyed by the session id, so concurrent submissions for the same session
    are applied one at a time.
    """

    def __init__(
        self,
        storage_manager: StorageManager,
        question_source: QuestionSourceAgent,
        evaluator: AnswerEvaluatorAgent,
        analytics_recorder: Optional[AnalyticsRecorder] = None,
        engine_config: Optional[EngineConfig] = None,
        score_aggregator: Optional[ScoreAggregator] = None,
        feedback_generator: Optional[FeedbackGenerator] = None,
        llm_manager: Optional[LLMProviderManager] = None,
        hints_enabled: bool = True,
    ):
        self.storage_manager = storage_manager
        self.question_source = question_source
        self.evaluator = evaluator
        self.analytics_recorder = analytics_recorder or NullAnalyticsRecorder()
        self.engine_config = engine_config or EngineConfig()
        self.score_aggregator = score_aggregator or ScoreAggregator()
        self.feedback_generator = feedback_generator or FeedbackGenerator()
        self.llm_manager = llm_manager
        self.hints_enabled = hints_enabled
        self.logger = get_logger("session_manager")

        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._pending_events: Set[asyncio.Task] = set()

    @classmethod
    async def from_config(cls, config_manager: ConfigurationManager) -> "SessionManager":
        """Build a fully wired session manager from loaded configuration."""
        config = config_manager.get_config()
        engine = config.engine

        storage_manager = StorageManager(
            config.storage.backend,
            **({"base_path": config.storage.base_path} if config.storage.backend == "file" else {}),
        )
        await storage_manager.initialize()

        question_bank = await QuestionBank.from_yaml(engine.question_bank_path)

        llm_manager = LLMProviderManager(config_manager)
        await llm_manager.initialize()
        use_llm = llm_manager if llm_manager.providers else None

        question_source = QuestionSourceAgent(
            question_bank,
            llm_manager=use_llm if config_manager.is_feature_enabled("ai_questions") else None,
            ai_question_cap=engine.ai_question_cap,
            ai_timeout_seconds=engine.ai_timeout_seconds,
        )
        evaluator = AnswerEvaluatorAgent(
            llm_manager=use_llm if config_manager.is_feature_enabled("ai_evaluation") else None,
            ai_timeout_seconds=engine.ai_timeout_seconds,
        )
        question_source.initialize()
        evaluator.initialize()

        return cls(
            storage_manager=storage_manager,
            question_source=question_source,
            evaluator=evaluator,
            analytics_recorder=create_analytics_recorder(engine.analytics_backend, engine.analytics_path),
            engine_config=engine,
            llm_manager=llm_manager,
            hints_enabled=config_manager.is_feature_enabled("hints"),
        )

    @property
    def question_bank(self) -> QuestionBank:
        return self.question_source.question_bank

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def start_session(
        self,
        session_type: Any,
        difficulty: Any = Difficulty.MEDIUM,
        question_count: Optional[int] = None,
        company: Optional[str] = None,
        role: Optional[str] = None,
        use_ai: bool = True,
        user_id: Optional[str] = None,
        settings: Optional[SessionSettings] = None,
    ) -> StartSessionResult:
        """Create a new session with a fixed question list.

        Raises:
            InvalidRequestError: If the type, difficulty or count is invalid.
            NoQuestionsAvailableError: If no question matches the request.
        """
        session_type = self._parse_enum(SessionType, session_type, "session_type")
        difficulty = self._parse_enum(Difficulty, difficulty if difficulty is not None else Difficulty.MEDIUM, "difficulty")
        question_count = self._validate_question_count(question_count)
        company = sanitize_optional(company)
        role = sanitize_optional(role)
        settings = settings or SessionSettings()
        if not self.hints_enabled:
            settings = settings.model_copy(update={"hints_enabled": False})

        questions = await self.question_source.resolve(
            session_type=session_type,
            difficulty=difficulty,
            count=question_count,
            company=company,
            role=role,
            use_ai=use_ai,
        )
        ai_generated = any(q.is_ai_generated for q in questions)

        now = datetime.now()
        session = AssessmentSession(
            session_id=new_identifier(),
            user_id=user_id,
            session_type=session_type,
            company=company,
            role=role,
            difficulty=difficulty,
            questions=[make_question_ref(q) for q in questions],
            started_at=now,
            last_activity_at=now,
            settings=settings,
            ai_generated=ai_generated,
        )
        set_correlation_id(session.session_id)

        await self.storage_manager.save_session(session)
        self.logger.info(
            f"Started {session_type.value} session with {len(questions)} questions",
            extra={"session_id": session.session_id, "ai_generated": ai_generated},
        )
        self._emit(AnalyticsEventType.SESSION_STARTED, session, {
            "session_type": session_type.value,
            "difficulty": difficulty.value,
            "question_count": len(questions),
            "ai_generated": ai_generated,
        })

        return StartSessionResult(
            session_id=session.session_id,
            total_questions=session.total_questions,
            first_question=questions[0].to_view(),
            ai_generated=ai_generated,
            started_at=session.started_at,
            session=session,
        )

    async def get_current_question(self, session_id: str) -> CurrentQuestionResult:
        """Get the active question of an in-progress session.

        Raises:
            NotFoundError: If the session does not exist or is not in progress.
            SessionAlreadyCompleteError: If every question has been answered.
        """
        set_correlation_id(session_id)
        async with self._lock_for(session_id):
            session = await self._load_active(session_id)
            question = self._resolve_question(session, session.current_index)
            session.touch()
            await self.storage_manager.save_session(session)

            return CurrentQuestionResult(
                session_id=session.session_id,
                question_index=session.current_index + 1,
                total_questions=session.total_questions,
                elapsed_seconds=session.elapsed_seconds(),
                question=question.to_view(),
            )

    async def reveal_hint(self, session_id: str) -> HintResult:
        """Reveal the next hint of the active question.

        Raises:
            NotFoundError: If the session does not exist or is not in progress.
            InvalidRequestError: If hints are disabled or all hints are revealed.
        """
        set_correlation_id(session_id)
        async with self._lock_for(session_id):
            session = await self._load_active(session_id)
            if not session.settings.hints_enabled:
                raise InvalidRequestError("Hints are disabled for this session", field_name="hints_enabled")

            question = self._resolve_question(session, session.current_index)
            revealed = len(session.pending_hints)
            if revealed >= len(question.hints):
                raise InvalidRequestError("No more hints available for this question", field_name="hints")

            hint = question.hints[revealed]
            session.pending_hints = [*session.pending_hints, HintUsage(hint_text=hint)]
            session.touch()
            await self.storage_manager.save_session(session)

            return HintResult(
                session_id=session.session_id,
                question_id=question.question_id,
                hint=hint,
                hint_number=revealed + 1,
                hints_remaining=len(question.hints) - revealed - 1,
            )

    async def submit_answer(
        self,
        session_id: str,
        answer_text: Any,
        time_spent_seconds: Optional[float] = 0,
        use_ai: bool = True,
    ) -> SubmissionResult:
        """Score an answer to the active question and advance the session.

        Raises:
            InvalidRequestError: If the answer is empty or the time is invalid.
            NotFoundError: If the session does not exist or is not in progress.
            SessionAlreadyCompleteError: If every question has been answered.
        """
        answer = sanitize_input(answer_text)
        if not answer:
            raise InvalidRequestError("Answer is required", field_name="answer")
        time_spent = self._validate_time_spent(time_spent_seconds)

        set_correlation_id(session_id)
        async with self._lock_for(session_id):
            session = await self._load_active(session_id)
            question = self._resolve_question(session, session.current_index)

            scored = await self.evaluator.evaluate(
                question,
                answer,
                time_spent_seconds=time_spent,
                use_ai=use_ai,
                show_solution=session.settings.show_correct_answers,
            )
            session.add_answer(Answer(
                question_id=question.question_id,
                user_answer=answer,
                time_spent_seconds=time_spent,
                is_correct=scored.is_correct,
                score=scored.score,
                feedback=scored.feedback,
                ai_evaluation=scored.ai_evaluation,
                hints_used=list(session.pending_hints),
            ))

            session_complete = session.all_answered
            if session_complete:
                self._complete(session)

            await self.storage_manager.save_session(session)

            self._emit(AnalyticsEventType.ANSWER_SUBMITTED, session, {
                "question_id": question.question_id,
                "score": scored.score,
                "is_correct": scored.is_correct,
                "ai_evaluated": scored.ai_evaluation is not None,
            })

            if session_complete:
                self.logger.info(
                    f"Session completed with score {session.overall_score}",
                    extra={"session_id": session.session_id},
                )
                self._emit(AnalyticsEventType.SESSION_COMPLETED, session, {
                    "final_score": session.overall_score,
                    "confidence_score": session.confidence_score,
                    "ai_used": any(a.ai_evaluation is not None for a in session.answers),
                })
                return SubmissionResult(
                    is_correct=scored.is_correct,
                    score=scored.score,
                    feedback=scored.feedback,
                    ai_evaluation=scored.ai_evaluation,
                    session_complete=True,
                    session_summary=SessionSummary.from_session(session),
                )

            next_question = self._resolve_question(session, session.current_index)
            return SubmissionResult(
                is_correct=scored.is_correct,
                score=scored.score,
                feedback=scored.feedback,
                ai_evaluation=scored.ai_evaluation,
                session_complete=False,
                next_question=next_question.to_view(),
            )

    async def get_session(self, session_id: str) -> SessionDetails:
        """Get session metadata and progress in any status.

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self.storage_manager.load_session(session_id)
        if session is None:
            raise NotFoundError("Session not found", resource_type="AssessmentSession", resource_id=session_id)
        return SessionDetails.from_session(session)

    async def list_user_sessions(
        self,
        user_id: str,
        status: Any = None,
        session_type: Any = None,
        page: int = 1,
        limit: int = 10,
    ) -> SessionPage:
        """List a user's sessions, newest first.

        Raises:
            InvalidRequestError: If a filter or the pagination is invalid.
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidRequestError("page must be a positive integer", field_name="page")
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidRequestError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field_name="limit")

        status_filter = self._parse_enum(SessionStatus, status, "status") if status else None
        type_filter = self._parse_enum(SessionType, session_type, "session_type") if session_type else None

        sessions = await self.storage_manager.list_sessions(user_id=user_id, status=status_filter)
        if type_filter is not None:
            sessions = [s for s in sessions if s.session_type == type_filter]
        sessions.sort(key=lambda s: s.started_at, reverse=True)

        total = len(sessions)
        total_pages = math.ceil(total / limit)
        start = (page - 1) * limit

        return SessionPage(
            sessions=[SessionDetails.from_session(s) for s in sessions[start:start + limit]],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_sessions=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    async def get_user_stats(self, user_id: str) -> UserStats:
        """Aggregate statistics across a user's completed sessions."""
        sessions = await self.storage_manager.list_sessions(user_id=user_id, status=SessionStatus.COMPLETED)
        if not sessions:
            return UserStats(user_id=user_id)

        total = len(sessions)
        by_type: Dict[str, List[int]] = {}
        for session in sessions:
            by_type.setdefault(session.session_type.value, []).append(session.overall_score or 0)

        recent = sorted(sessions, key=lambda s: s.completed_at or s.started_at, reverse=True)[:RECENT_SESSIONS_LIMIT]
        trend = 0.0
        if len(recent) >= 2:
            trend = float((recent[0].overall_score or 0) - (recent[-1].overall_score or 0))

        return UserStats(
            user_id=user_id,
            total_sessions=total,
            average_score=round(sum(s.overall_score or 0 for s in sessions) / total, 1),
            average_confidence=round(sum(s.confidence_score or 0 for s in sessions) / total, 1),
            total_time_spent=sum(s.total_time_spent for s in sessions),
            sessions_by_type={
                name: SessionTypeStats(count=len(scores), average_score=round(sum(scores) / len(scores), 1))
                for name, scores in by_type.items()
            },
            recent_sessions=[
                RecentSession(
                    session_id=s.session_id,
                    session_type=s.session_type,
                    overall_score=s.overall_score or 0,
                    confidence_score=s.confidence_score or 0,
                    completed_at=s.completed_at,
                )
                for s in recent
            ],
            improvement_trend=trend,
        )

    def get_question_metadata(self) -> QuestionMetadata:
        """Distinct filter values available in the question bank."""
        return self.question_bank.metadata()

    async def abandon_idle_sessions(
        self,
        idle_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Mark in-progress sessions without recent activity as abandoned.

        Answers are left untouched. Returns the ids of abandoned sessions.
        """
        idle_minutes = idle_minutes if idle_minutes is not None else self.engine_config.idle_timeout_minutes
        if idle_minutes < 0:
            raise InvalidRequestError("idle_minutes cannot be negative", field_name="idle_minutes")
        cutoff = (now or datetime.now()) - timedelta(minutes=idle_minutes)

        abandoned = []
        for candidate in await self.storage_manager.list_sessions(status=SessionStatus.IN_PROGRESS):
            async with self._lock_for(candidate.session_id):
                session = await self.storage_manager.load_session(candidate.session_id)
                if session is None or session.status != SessionStatus.IN_PROGRESS:
                    continue
                if session.last_activity_at >= cutoff:
                    continue

                session.status = SessionStatus.ABANDONED
                session.pending_hints = []
                session.update_timestamp()
                await self.storage_manager.save_session(session)
                abandoned.append(session.session_id)

                self._emit(AnalyticsEventType.SESSION_ABANDONED, session, {
                    "answered_questions": session.answered_questions,
                    "total_questions": session.total_questions,
                })

        if abandoned:
            self.logger.info(f"Abandoned {len(abandoned)} idle sessions")
        return abandoned

    async def drain(self) -> None:
        """Wait for scheduled analytics events to finish."""
        if self._pending_events:
            await asyncio.gather(*list(self._pending_events), return_exceptions=True)

    async def close(self) -> None:
        """Drain analytics and release agent, provider and recorder resources."""
        await self.drain()
        await self.analytics_recorder.close()
        await self.question_source.cleanup()
        await self.evaluator.cleanup()
        if self.llm_manager is not None:
            await self.llm_manager.cleanup()

    async def _load_active(self, session_id: str) -> AssessmentSession:
        session = await self.storage_manager.load_session(session_id)
        if session is None or session.status != SessionStatus.IN_PROGRESS:
            raise NotFoundError(
                "Session not found or not in progress",
                resource_type="AssessmentSession",
                resource_id=session_id,
            )
        if session.all_answered:
            raise SessionAlreadyCompleteError("All questions have been answered", session_id=session_id)
        return session

    def _resolve_question(self, session: AssessmentSession, index: int) -> Question:
        ref = session.questions[index]
        if isinstance(ref, EphemeralQuestionRef):
            return ref.question

        question = self.question_bank.get(ref.question_id)
        if question is None:
            raise NotFoundError("Question not found", resource_type="Question", resource_id=ref.question_id)
        return question

    def _complete(self, session: AssessmentSession) -> None:
        scores = self.score_aggregator.aggregate(session.answers)
        session.overall_score = scores.overall_score
        session.confidence_score = scores.confidence_score
        session.feedback = self.feedback_generator.generate(session.answers)
        session.total_time_spent = sum(answer.time_spent_seconds for answer in session.answers)
        session.completed_at = datetime.now()
        session.status = SessionStatus.COMPLETED

    def _emit(self, event_type: AnalyticsEventType, session: AssessmentSession, payload: Dict[str, Any]) -> None:
        event = AnalyticsEvent(
            event_type=event_type,
            session_id=session.session_id,
            user_id=session.user_id,
            payload=payload,
        )
        task = asyncio.create_task(self._record(event))
        self._pending_events.add(task)
        task.add_done_callback(self._pending_events.discard)

    async def _record(self, event: AnalyticsEvent) -> None:
        try:
            await self.analytics_recorder.record(event)
        except Exception as e:
            self.logger.warning(
                f"Analytics recorder failed for {event.event_type.value}: {e}",
                extra={"session_id": event.session_id},
            )

    def _validate_question_count(self, question_count: Any) -> int:
        if question_count is None:
            return self.engine_config.default_question_count
        if isinstance(question_count, bool) or not isinstance(question_count, int):
            raise InvalidRequestError("question_count must be an integer", field_name="question_count")
        if not 1 <= question_count <= self.engine_config.max_question_count:
            raise InvalidRequestError(
                f"question_count must be between 1 and {self.engine_config.max_question_count}",
                field_name="question_count",
            )
        return question_count

    @staticmethod
    def _validate_time_spent(time_spent_seconds: Any) -> float:
        if time_spent_seconds is None:
            return 0.0
        if isinstance(time_spent_seconds, bool) or not isinstance(time_spent_seconds, (int, float)):
            raise InvalidRequestError("time_spent_seconds must be a number", field_name="time_spent_seconds")
        if not math.isfinite(time_spent_seconds) or time_spent_seconds < 0:
            raise InvalidRequestError("time_spent_seconds must be a finite, non-negative number", field_name="time_spent_seconds")
        return float(time_spent_seconds)

    @staticmethod
    def _parse_enum(enum_cls, value: Any, field_name: str):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidRequestError(f"{field_name} is required", field_name=field_name)
        try:
            return enum_cls(value)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid {field_name}: {value}", field_name=field_name) from e
