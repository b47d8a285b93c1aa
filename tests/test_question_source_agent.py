"""Tests for the question source agent."""

import pytest

from assessment_engine.agents.question_source_agent import QuestionRequest, QuestionSourceAgent
from assessment_engine.models import Difficulty, QuestionDifficulty, QuestionType, SessionType
from assessment_engine.services.llm_manager import QUESTION_GENERATION
from assessment_engine.utils.exceptions import NoQuestionsAvailableError
from tests.conftest import FakeLLMManager


GENERATED = [
    {"content": "Explain event loops", "type": "technical", "difficulty": "hard",
     "category": "Async", "hints": ["Think about callbacks"], "suggestedAnswer": "Single thread scheduling"},
    {"content": "Describe a cache eviction policy", "type": "unknown-type"},
    {"content": "   "},
    {"content": "How do you review code?", "type": "behavioral", "difficulty": "extreme"},
]


class TestAIQuestions:
    async def test_generates_when_company_and_role_given(self, question_bank):
        llm = FakeLLMManager(questions=GENERATED)
        agent = QuestionSourceAgent(question_bank, llm_manager=llm)

        questions = await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 5, company="Acme", role="SRE")

        assert [q.content for q in questions] == [
            "Explain event loops",
            "Describe a cache eviction policy",
            "How do you review code?",
        ]
        assert all(q.is_ai_generated for q in questions)
        assert all(q.question_id.startswith("ai_") for q in questions)
        assert len({q.question_id for q in questions}) == 3
        assert questions[0].difficulty == QuestionDifficulty.HARD
        assert questions[0].hints == ["Think about callbacks"]
        assert questions[0].suggested_answer == "Single thread scheduling"
        assert questions[1].type == QuestionType.TECHNICAL
        assert questions[2].difficulty == QuestionDifficulty.MEDIUM
        assert questions[0].company == "Acme"

        request = llm.requests[0]
        assert request.type == QUESTION_GENERATION
        assert request.context["count"] == 5

    async def test_request_is_capped(self, question_bank):
        llm = FakeLLMManager(questions=[{"content": f"Q{i}"} for i in range(12)])
        agent = QuestionSourceAgent(question_bank, llm_manager=llm, ai_question_cap=8)

        questions = await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 20, company="Acme", role="SRE")

        assert llm.requests[0].context["count"] == 8
        assert len(questions) == 8

    async def test_failure_falls_back_to_bank(self, question_bank):
        agent = QuestionSourceAgent(question_bank, llm_manager=FakeLLMManager(fail=True))

        questions = await agent.resolve(SessionType.BEHAVIORAL, Difficulty.MEDIUM, 5, company="Acme", role="Backend")

        assert questions
        assert not any(q.is_ai_generated for q in questions)
        assert {q.type for q in questions} == {QuestionType.BEHAVIORAL}

    async def test_unexpected_client_error_falls_back_to_bank(self, question_bank):
        llm = FakeLLMManager(error=RuntimeError("socket reset"))
        agent = QuestionSourceAgent(question_bank, llm_manager=llm)

        questions = await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 2, company="Acme", role="SRE")

        assert len(questions) == 2
        assert not any(q.is_ai_generated for q in questions)
        assert len(llm.requests) == 1

    async def test_empty_generation_falls_back_to_bank(self, question_bank):
        agent = QuestionSourceAgent(question_bank, llm_manager=FakeLLMManager(questions=[]))

        questions = await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 2, company="Acme", role="SRE")

        assert len(questions) == 2
        assert not any(q.is_ai_generated for q in questions)

    @pytest.mark.parametrize("company, role, use_ai", [
        ("Acme", None, True),
        (None, "SRE", True),
        ("Acme", "SRE", False),
    ])
    async def test_ai_not_attempted(self, question_bank, company, role, use_ai):
        llm = FakeLLMManager(questions=GENERATED)
        agent = QuestionSourceAgent(question_bank, llm_manager=llm)

        await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 2, company=company, role=role, use_ai=use_ai)

        assert llm.requests == []


class TestBankQuestions:
    async def test_filters_type_and_difficulty(self, question_bank):
        agent = QuestionSourceAgent(question_bank)

        questions = await agent.resolve(SessionType.TECHNICAL, Difficulty.MEDIUM, 10)

        assert {q.question_id for q in questions} == {"t1", "t2", "t3"}

    async def test_mixed_session_draws_any_type(self, question_bank):
        agent = QuestionSourceAgent(question_bank)

        questions = await agent.resolve(SessionType.MIXED, Difficulty.MIXED, 50)

        assert len(questions) == 8
        assert "inactive1" not in {q.question_id for q in questions}

    async def test_returns_fewer_than_requested(self, question_bank):
        agent = QuestionSourceAgent(question_bank)

        questions = await agent.resolve(SessionType.SYSTEM_DESIGN, Difficulty.MEDIUM, 5)

        assert [q.question_id for q in questions] == ["sd1"]

    async def test_no_match_raises(self, question_bank):
        agent = QuestionSourceAgent(question_bank)

        with pytest.raises(NoQuestionsAvailableError):
            await agent.resolve(SessionType.SYSTEM_DESIGN, Difficulty.HARD, 5)

    async def test_process_accepts_request(self, question_bank):
        agent = QuestionSourceAgent(question_bank)

        questions = await agent.process(QuestionRequest(SessionType.BEHAVIORAL, Difficulty.MEDIUM, 1))

        assert len(questions) == 1
        assert questions[0].type == QuestionType.BEHAVIORAL
