"""Shared fixtures for the Assessment Session Engine tests."""

import random
from typing import Any, Dict, List, Optional

import pytest

from assessment_engine.agents.evaluator_agent import AnswerEvaluatorAgent
from assessment_engine.agents.question_source_agent import QuestionSourceAgent
from assessment_engine.models.enums import QuestionDifficulty, QuestionType
from assessment_engine.models.question import Question, QuestionOption
from assessment_engine.services.analytics_recorder import AnalyticsEvent, AnalyticsRecorder
from assessment_engine.services.llm_manager import ANSWER_EVALUATION, QUESTION_GENERATION, LLMRequest, LLMResponse
from assessment_engine.services.question_bank import QuestionBank
from assessment_engine.services.session_manager import SessionManager
from assessment_engine.services.storage_manager import StorageManager
from assessment_engine.utils.exceptions import LLMProviderError


class FakeLLMManager:
    """Stands in for LLMProviderManager with canned responses."""

    def __init__(
        self,
        questions: Optional[List[Dict[str, Any]]] = None,
        evaluation: Optional[Dict[str, Any]] = None,
        fail: bool = False,
        available: bool = True,
        error: Optional[Exception] = None,
    ):
        self.questions = questions or []
        self.evaluation = evaluation or {}
        self.fail = fail
        self.available = available
        self.error = error
        self.requests: List[LLMRequest] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def make_request(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise LLMProviderError("provider unavailable", provider_name="fake")

        if request.type == QUESTION_GENERATION:
            metadata = {"questions": self.questions}
        elif request.type == ANSWER_EVALUATION:
            metadata = {"evaluation_data": self.evaluation}
        else:
            raise LLMProviderError(f"Unknown request type: {request.type}")
        return LLMResponse(content="{}", provider="fake", response_time=0.01, metadata=metadata)

    async def cleanup(self) -> None:
        return None


class RecordingAnalyticsRecorder(AnalyticsRecorder):
    """Keeps every event it receives."""

    def __init__(self):
        self.events: List[AnalyticsEvent] = []

    async def record(self, event: AnalyticsEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [event.event_type.value for event in self.events]


class FailingAnalyticsRecorder(AnalyticsRecorder):
    """Raises on every event."""

    async def record(self, event: AnalyticsEvent) -> None:
        raise RuntimeError("analytics backend down")


def make_question(question_id: str, question_type: QuestionType = QuestionType.TECHNICAL, **kwargs) -> Question:
    return Question(
        question_id=question_id,
        content=kwargs.pop("content", f"Question {question_id}?"),
        type=question_type,
        difficulty=kwargs.pop("difficulty", QuestionDifficulty.MEDIUM),
        **kwargs,
    )


def sample_questions() -> List[Question]:
    return [
        make_question("t1", hints=["first hint", "second hint"], suggested_answer="Key points for t1"),
        make_question("t2", suggested_answer="Key points for t2"),
        make_question("t3", category="Concurrency"),
        make_question("b1", QuestionType.BEHAVIORAL, hints=["Use STAR"]),
        make_question("b2", QuestionType.BEHAVIORAL, company="Acme Corp", role="Backend Engineer"),
        make_question("sd1", QuestionType.SYSTEM_DESIGN, explanation="Cache, queue and storage tiers"),
        make_question(
            "mc1",
            QuestionType.MULTIPLE_CHOICE,
            content="Which HTTP method is not idempotent?",
            options=[
                QuestionOption(option_id="a", text="GET"),
                QuestionOption(option_id="b", text="POST", is_correct=True),
            ],
            explanation="POST creates a resource on each call",
        ),
        make_question("easy1", difficulty=QuestionDifficulty.EASY),
        make_question("inactive1", is_active=False),
    ]


@pytest.fixture
def question_bank() -> QuestionBank:
    return QuestionBank(sample_questions(), rng=random.Random(7))


@pytest.fixture
def storage_manager() -> StorageManager:
    return StorageManager("memory")


@pytest.fixture
def recorder() -> RecordingAnalyticsRecorder:
    return RecordingAnalyticsRecorder()


@pytest.fixture
def llm_manager() -> FakeLLMManager:
    return FakeLLMManager(evaluation={
        "score": 85,
        "feedback": "Clear and well structured",
        "strengths": ["Structure"],
        "improvements": ["Depth"],
        "suggestions": ["Add an example"],
    })


def build_manager(question_bank, storage_manager, recorder=None, llm_manager=None, **kwargs) -> SessionManager:
    return SessionManager(
        storage_manager=storage_manager,
        question_source=QuestionSourceAgent(question_bank, llm_manager=llm_manager),
        evaluator=AnswerEvaluatorAgent(llm_manager=llm_manager),
        analytics_recorder=recorder,
        llm_manager=llm_manager,
        **kwargs,
    )


@pytest.fixture
def manager(question_bank, storage_manager, recorder, llm_manager) -> SessionManager:
    return build_manager(question_bank, storage_manager, recorder, llm_manager)
