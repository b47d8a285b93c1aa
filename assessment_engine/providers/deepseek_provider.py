"""DeepSeek Provider implementation for the Assessment Session Engine."""

import asyncio
import random
from typing import Any, Dict, List, Optional, Union

import aiohttp
from pydantic import BaseModel, Field

from ..services.llm_manager import LLMProvider, ProviderHealth, extract_json_payload
from ..utils.exceptions import AuthenticationError, LLMProviderError, RateLimitError
from ..utils.logging import get_logger


QUESTION_SYSTEM_PROMPT = (
    "You are an expert technical interviewer. Generate realistic, challenging interview questions "
    "that companies actually ask. Include difficulty-appropriate questions and provide suggested answers."
)

EVALUATION_SYSTEM_PROMPT = (
    "You are an experienced technical interviewer. Evaluate answers fairly, provide constructive "
    "feedback, and suggest improvements. Be encouraging but honest about areas for improvement."
)


class DeepSeekRequest(BaseModel):
    """DeepSeek API request model."""
    model: str = Field(..., description="Model to use for generation")
    messages: List[Dict[str, str]] = Field(..., description="List of messages")
    max_tokens: int = Field(default=2000, description="Maximum tokens to generate")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    top_p: float = Field(default=0.95, description="Nucleus sampling parameter")
    stream: bool = Field(default=False, description="Whether to stream the response")
    stop: Optional[Union[str, List[str]]] = Field(default=None, description="Stop sequences")


class DeepSeekResponse(BaseModel):
    """DeepSeek API response model."""
    id: str = "unknown"
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Dict[str, Any] = Field(default_factory=dict)


class DeepSeekProvider(LLMProvider):
    """DeepSeek API provider implementation (OpenAI-compatible chat completions)."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.api_key = config.get("api_key")
        self.base_url = (config.get("base_url") or "https://api.deepseek.com/v1").rstrip("/")
        self.model = config.get("model", "deepseek-chat")
        self.max_tokens = config.get("max_tokens", 2000)
        self.temperature = config.get("temperature", 0.7)
        self.retries = config.get("retries", 2)

        self.logger = get_logger("deepseek_provider")
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Initialize the DeepSeek provider."""
        if not self.api_key:
            raise AuthenticationError("DeepSeek API key is required", provider_name=self.provider_name)

        self._session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "User-Agent": "AssessmentEngine/1.0.0",
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        self._health_status = ProviderHealth.HEALTHY
        self.logger.info(f"DeepSeek provider initialized with model: {self.model}")

    async def cleanup(self) -> None:
        """Clean up resources."""
        if self._session:
            await self._session.close()
            self._session = None

    async def generate_text(self, prompt: str, **kwargs) -> str:
        """Generate text using DeepSeek API."""
        messages = []
        if kwargs.get("system_prompt"):
            messages.append({"role": "system", "content": kwargs["system_prompt"]})
        messages.append({"role": "user", "content": prompt})

        request = DeepSeekRequest(
            model=kwargs.get("model", self.model),
            messages=messages,
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
            temperature=kwargs.get("temperature", self.temperature),
            stop=kwargs.get("stop"),
        )

        response = await self._make_request_with_retries(request)
        if not response.choices:
            raise LLMProviderError("DeepSeek response contained no choices", provider_name=self.provider_name)

        return response.choices[0].get("message", {}).get("content", "")

    async def generate_questions(self, context: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Generate interview questions for a company and role.

        Raises:
            LLMProviderError: If the response is not a JSON object with a ``questions`` list.
        """
        prompt = self._build_question_prompt(context)
        text = await self.generate_text(prompt, system_prompt=QUESTION_SYSTEM_PROMPT, temperature=0.8)
        payload = extract_json_payload(text)

        questions = payload.get("questions")
        if not isinstance(questions, list):
            raise LLMProviderError("Question generation response has no questions list", provider_name=self.provider_name)
        return [q for q in questions if isinstance(q, dict)]

    async def evaluate_answer(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Evaluate a candidate answer."""
        prompt = self._build_evaluation_prompt(context)
        text = await self.generate_text(
            prompt,
            system_prompt=EVALUATION_SYSTEM_PROMPT,
            temperature=0.6,
            max_tokens=1024,
        )
        return extract_json_payload(text)

    async def _make_request(self, request: DeepSeekRequest) -> DeepSeekResponse:
        """Make a request to DeepSeek API."""
        if not self._session:
            raise LLMProviderError("Provider not initialized", provider_name=self.provider_name)

        url = f"{self.base_url}/chat/completions"
        payload = request.model_dump(exclude_none=True)

        async with self._session.post(url, json=payload) as response:
            if response.status == 429:
                retry_after = response.headers.get("Retry-After")
                raise RateLimitError(
                    "DeepSeek rate limit exceeded",
                    provider_name=self.provider_name,
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            if response.status == 401:
                raise AuthenticationError("Invalid DeepSeek API key", provider_name=self.provider_name)
            if response.status != 200:
                body = await response.text()
                raise LLMProviderError(
                    f"DeepSeek API returned status {response.status}",
                    provider_name=self.provider_name,
                    details={"body": body[:500]},
                )

            response_data = await response.json()

        return DeepSeekResponse.model_validate(response_data)

    async def _make_request_with_retries(self, request: DeepSeekRequest) -> DeepSeekResponse:
        """Make request with exponential backoff retry logic."""
        last_exception: Optional[Exception] = None

        for attempt in range(self.retries + 1):
            try:
                return await self._make_request(request)
            except (RateLimitError, AuthenticationError):
                raise
            except (aiohttp.ClientError, LLMProviderError) as e:
                last_exception = e
                if attempt < self.retries:
                    wait_time = (2 ** attempt) * 0.5 + random.random() * 0.1
                    self.logger.warning(
                        f"DeepSeek request failed (attempt {attempt + 1}/{self.retries + 1}), "
                        f"retrying in {wait_time:.2f}s: {str(e)}"
                    )
                    await asyncio.sleep(wait_time)
                else:
                    self.logger.error(f"DeepSeek request failed after {self.retries + 1} attempts: {str(e)}")

        if isinstance(last_exception, LLMProviderError):
            raise last_exception
        raise LLMProviderError(
            f"Request failed after retries: {last_exception}",
            provider_name=self.provider_name,
        ) from last_exception

    def _build_question_prompt(self, context: Dict[str, Any]) -> str:
        """Build a prompt for question generation."""
        company = context.get("company", "")
        role = context.get("role", "")
        difficulty = context.get("difficulty", "medium")
        question_type = context.get("question_type", "technical")
        count = context.get("count", 5)

        return f"""Generate {count} realistic {difficulty} level {question_type} interview questions for a {role} position at {company}.

Requirements:
- Questions should be appropriate for {difficulty} difficulty level
- Include questions that {company} might actually ask
- For technical questions, include coding problems or system design scenarios
- For behavioral questions, use STAR method format
- Provide suggested answers or key points to cover

Format your response as JSON:
{{
  "questions": [
    {{
      "content": "Question text here",
      "type": "{question_type}",
      "difficulty": "{difficulty}",
      "suggestedAnswer": "Key points or sample answer",
      "hints": ["hint1", "hint2"],
      "category": "relevant category"
    }}
  ]
}}
Only return the JSON, no other text."""

    def _build_evaluation_prompt(self, context: Dict[str, Any]) -> str:
        """Build a prompt for answer evaluation."""
        return f"""Evaluate this interview answer:

QUESTION: {context.get("question", "")}
QUESTION TYPE: {context.get("question_type", "")}
USER ANSWER: {context.get("answer", "")}

Please provide:
1. Score out of 100
2. Strengths in the answer
3. Areas for improvement
4. Specific suggestions for better answers
5. Overall feedback

Format as JSON:
{{
  "score": 75,
  "strengths": ["strength1", "strength2"],
  "improvements": ["improvement1", "improvement2"],
  "suggestions": ["suggestion1", "suggestion2"],
  "feedback": "Overall constructive feedback"
}}
Only return the JSON, no other text."""
