"""Question Source Agent supplying the question list for a new session."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from ..agents.base_agent import BaseAgent
from ..models.enums import Difficulty, QuestionDifficulty, QuestionType, SessionType
from ..models.question import Question
from ..services.llm_manager import QUESTION_GENERATION, LLMProviderManager, LLMRequest
from ..services.question_bank import QuestionBank, QuestionFilter
from ..utils.exceptions import NoQuestionsAvailableError


@dataclass
class QuestionRequest:
    """Parameters for resolving a session's questions."""

    session_type: SessionType
    difficulty: Difficulty
    count: int
    company: Optional[str] = None
    role: Optional[str] = None
    use_ai: bool = True


class QuestionSourceAgent(BaseAgent):
    """Resolves session questions from AI generation or the question bank."""

    def __init__(
        self,
        question_bank: QuestionBank,
        llm_manager: Optional[LLMProviderManager] = None,
        ai_question_cap: int = 8,
        ai_timeout_seconds: float = 20,
    ):
        super().__init__("question_source")
        self.question_bank = question_bank
        self.llm_manager = llm_manager
        self.ai_question_cap = ai_question_cap
        self.ai_timeout_seconds = ai_timeout_seconds

    async def process(self, input_data: QuestionRequest) -> List[Question]:
        """Resolve questions for a :class:`QuestionRequest`."""
        return await self.resolve(
            session_type=input_data.session_type,
            difficulty=input_data.difficulty,
            count=input_data.count,
            company=input_data.company,
            role=input_data.role,
            use_ai=input_data.use_ai,
        )

    @property
    def ai_available(self) -> bool:
        return self.llm_manager is not None and self.llm_manager.is_available

    async def resolve(
        self,
        session_type: SessionType,
        difficulty: Difficulty,
        count: int,
        company: Optional[str] = None,
        role: Optional[str] = None,
        use_ai: bool = True,
    ) -> List[Question]:
        """Get between 1 and ``count`` questions for a session.

        AI generation is attempted first when enabled, a provider is
        available, and both company and role are given. Any AI failure or an
        empty result falls back to the question bank.

        Raises:
            NoQuestionsAvailableError: If neither source yields a question.
        """
        if use_ai and company and role and self.ai_available:
            questions = await self._generate_ai_questions(session_type, difficulty, count, company, role)
            if questions:
                self.log_operation("ai_questions_resolved", {"count": len(questions)})
                return questions

        question_filter = self._build_filter(session_type, difficulty, company, role)
        questions = self.question_bank.sample(question_filter, count)
        if not questions:
            raise NoQuestionsAvailableError(
                "No questions available for the requested criteria",
                filters=question_filter.describe(),
            )

        self.log_operation("bank_questions_resolved", {"count": len(questions)})
        return questions

    @staticmethod
    def _build_filter(
        session_type: SessionType,
        difficulty: Difficulty,
        company: Optional[str],
        role: Optional[str],
    ) -> QuestionFilter:
        return QuestionFilter(
            types=session_type.question_types,
            difficulties=difficulty.question_difficulties,
            company=company,
            role=role,
        )

    async def _generate_ai_questions(
        self,
        session_type: SessionType,
        difficulty: Difficulty,
        count: int,
        company: str,
        role: str,
    ) -> List[Question]:
        requested = min(count, self.ai_question_cap)
        default_type = self._default_question_type(session_type)
        default_difficulty = self._default_question_difficulty(difficulty)

        request = LLMRequest(
            type=QUESTION_GENERATION,
            context={
                "company": company,
                "role": role,
                "difficulty": difficulty.value,
                "question_type": session_type.value,
                "count": requested,
            },
            timeout=self.ai_timeout_seconds,
        )

        try:
            response = await self.llm_manager.make_request(request)
        except Exception as e:
            self.log_error(e, {"stage": "question_generation"})
            return []

        records = (response.metadata or {}).get("questions")
        if records is None:
            try:
                records = json.loads(response.content).get("questions", [])
            except (ValueError, AttributeError) as e:
                self.log_error(e, {"stage": "question_parsing"})
                return []
        if not isinstance(records, list):
            return []

        token = uuid4().hex[:12]
        questions = []
        for record in records[:requested]:
            if not isinstance(record, dict):
                continue
            question = self._to_question(
                record,
                question_id=f"ai_{token}_{len(questions)}",
                default_type=default_type,
                default_difficulty=default_difficulty,
                company=company,
                role=role,
            )
            if question is not None:
                questions.append(question)

        return questions

    def _to_question(
        self,
        record: Dict[str, Any],
        question_id: str,
        default_type: QuestionType,
        default_difficulty: QuestionDifficulty,
        company: str,
        role: str,
    ) -> Optional[Question]:
        """Convert a generated record into a question, or None if it is unusable."""
        content = record.get("content")
        if not isinstance(content, str) or not content.strip():
            return None

        hints = record.get("hints") or []
        if not isinstance(hints, list):
            hints = [hints]

        try:
            return Question(
                question_id=question_id,
                content=content.strip(),
                type=self._coerce(QuestionType, record.get("type"), default_type),
                difficulty=self._coerce(QuestionDifficulty, record.get("difficulty"), default_difficulty),
                category=record.get("category") or None,
                hints=[str(h) for h in hints if h],
                suggested_answer=record.get("suggestedAnswer") or record.get("suggested_answer"),
                company=company,
                role=role,
                is_ai_generated=True,
            )
        except ValidationError as e:
            self.logger.warning(f"Discarding generated question: {e}")
            return None

    @staticmethod
    def _coerce(enum_cls, value, default):
        if value is None:
            return default
        try:
            return enum_cls(value)
        except ValueError:
            return default

    @staticmethod
    def _default_question_type(session_type: SessionType) -> QuestionType:
        return session_type.question_types[0] if session_type.question_types else QuestionType.TECHNICAL

    @staticmethod
    def _default_question_difficulty(difficulty: Difficulty) -> QuestionDifficulty:
        if difficulty == Difficulty.MIXED:
            return QuestionDifficulty.MEDIUM
        return QuestionDifficulty(difficulty.value)
