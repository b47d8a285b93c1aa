"""LLM Provider Management Service."""

import asyncio
import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.exceptions import LLMProviderError
from ..utils.logging import get_logger, log_performance
from .configuration_manager import ConfigurationManager


QUESTION_GENERATION = "question_generation"
ANSWER_EVALUATION = "answer_evaluation"

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ProviderHealth(Enum):
    """LLM provider health status."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class LLMRequest:
    """LLM request data."""
    type: str
    context: Optional[Dict[str, Any]] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    timeout: Optional[float] = None


@dataclass
class LLMResponse:
    """LLM response data."""
    content: str
    provider: str
    response_time: float
    model: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


def extract_json_payload(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of model output.

    Markdown code fences are stripped first. If the text still is not valid
    JSON, the outermost ``{...}`` block is tried.

    Raises:
        LLMProviderError: If no JSON object can be parsed.
    """
    if not isinstance(text, str) or not text.strip():
        raise LLMProviderError("Empty response from LLM provider")

    cleaned = _FENCE_PATTERN.sub("", text.strip())
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", cleaned)
        if not match:
            raise LLMProviderError("LLM response did not contain JSON")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise LLMProviderError(f"Malformed JSON in LLM response: {e}") from e

    if not isinstance(payload, dict):
        raise LLMProviderError("LLM response JSON is not an object")
    return payload


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize LLM provider.

        Args:
            config: Provider configuration
        """
        self.config = config
        self.provider_name = config.get("name", "unknown")
        self.timeout = config.get("timeout", 30)
        self.logger = get_logger(f"llm.provider.{self.provider_name}")
        self._health_status = ProviderHealth.UNKNOWN

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the provider."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up provider resources."""
        pass

    @abstractmethod
    async def generate_text(self, prompt: str, **kwargs) -> str:
        """Generate text using the provider."""
        pass

    @abstractmethod
    async def generate_questions(self, context: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Generate raw question records for a session."""
        pass

    @abstractmethod
    async def evaluate_answer(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Evaluate a candidate answer."""
        pass

    @property
    def health_status(self) -> ProviderHealth:
        """Get current health status."""
        return self._health_status


class CircuitBreaker:
    """Circuit breaker pattern implementation."""

    def __init__(self, failure_threshold: int = 5, timeout: int = 60):
        """Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Seconds to wait before attempting to close circuit
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitState.CLOSED
        self.logger = get_logger("circuit_breaker")

    def can_execute(self) -> bool:
        """Check if operation can be executed."""
        if self.state == CircuitState.OPEN:
            if self.last_failure_time and (datetime.now() - self.last_failure_time).total_seconds() >= self.timeout:
                self.state = CircuitState.HALF_OPEN
                self.logger.info("Circuit breaker transitioning to half-open state")
                return True
            return False

        return True

    def on_success(self) -> None:
        """Handle successful operation."""
        if self.state == CircuitState.HALF_OPEN:
            self.logger.info("Circuit breaker closed after successful operation")
        self.state = CircuitState.CLOSED
        self.failure_count = 0

    def on_failure(self) -> None:
        """Handle failed operation."""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.logger.warning("Circuit breaker reopened after failure in half-open state")
        elif self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.logger.warning(f"Circuit breaker opened after {self.failure_count} failures")

    def get_state(self) -> CircuitState:
        """Get current circuit breaker state."""
        return self.state


class LLMProviderManager:
    """Routes requests to configured LLM providers."""

    def __init__(
        self,
        config_manager: Optional[ConfigurationManager] = None,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
    ):
        """Initialize LLM provider manager.

        Args:
            config_manager: Configuration manager holding provider settings
            failure_threshold: Consecutive failures before a provider's circuit opens
            recovery_timeout: Seconds before an open circuit is retried
        """
        self.config_manager = config_manager
        self.providers: Dict[str, LLMProvider] = {}
        self.circuit_breakers: Dict[str, CircuitBreaker] = {}
        self.logger = get_logger("llm.manager")
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._initialized = False
        self._provider_performance: Dict[str, List[float]] = {}

    async def initialize(self) -> None:
        """Initialize all configured LLM providers."""
        if self._initialized:
            return

        provider_configs = self.config_manager.get_llm_provider_configs() if self.config_manager else {}
        for provider_name, config in provider_configs.items():
            if not config.get("is_enabled", False):
                continue
            provider = self._create_provider(provider_name, config)
            if provider is None:
                continue
            try:
                await provider.initialize()
            except LLMProviderError as e:
                self.logger.error(f"Failed to initialize provider {provider_name}: {e}")
                continue
            self.register_provider(provider)

        self._initialized = True
        self.logger.info(f"Initialized {len(self.providers)} LLM providers")

    def register_provider(self, provider: LLMProvider) -> None:
        """Add an initialized provider to the routing table."""
        self.providers[provider.provider_name] = provider
        self.circuit_breakers[provider.provider_name] = CircuitBreaker(
            failure_threshold=self._failure_threshold,
            timeout=self._recovery_timeout,
        )
        self._provider_performance[provider.provider_name] = []

    def _create_provider(self, provider_name: str, config: Dict[str, Any]) -> Optional[LLMProvider]:
        """Create provider instance based on configuration."""
        if provider_name.lower() == "deepseek":
            from ..providers.deepseek_provider import DeepSeekProvider
            return DeepSeekProvider(config)

        self.logger.warning(f"Unknown provider type: {provider_name}")
        return None

    @property
    def is_available(self) -> bool:
        """Check whether any provider can currently take a request."""
        return any(breaker.can_execute() for breaker in self.circuit_breakers.values())

    def get_best_provider(self) -> LLMProvider:
        """Select the fastest provider whose circuit is not open."""
        if not self.providers:
            raise LLMProviderError("No LLM providers configured")

        available_providers = [
            name for name in self.providers
            if self.circuit_breakers[name].can_execute()
        ]

        if not available_providers:
            raise LLMProviderError("No healthy LLM providers available")

        def average_time(name: str) -> float:
            history = self._provider_performance.get(name, [])
            return sum(history) / len(history) if history else 0.0

        return self.providers[min(available_providers, key=average_time)]

    async def make_request(self, request: LLMRequest) -> LLMResponse:
        """Make request to the best available LLM provider.

        The provider call is bounded by ``request.timeout`` or, when unset,
        the provider's configured timeout.

        Raises:
            LLMProviderError: If no provider is available, the call fails or times out.
        """
        provider = self.get_best_provider()
        circuit_breaker = self.circuit_breakers[provider.provider_name]
        timeout = request.timeout or provider.timeout
        start_time = time.monotonic()

        self.logger.info(f"Making {request.type} request to provider {provider.provider_name}")
        try:
            if request.type == QUESTION_GENERATION:
                questions = await asyncio.wait_for(provider.generate_questions(request.context or {}), timeout)
                content = json.dumps({"questions": questions}, ensure_ascii=False)
                metadata = {"request_type": request.type, "questions": questions}
            elif request.type == ANSWER_EVALUATION:
                evaluation = await asyncio.wait_for(provider.evaluate_answer(request.context or {}), timeout)
                content = json.dumps(evaluation, ensure_ascii=False)
                metadata = {"request_type": request.type, "evaluation_data": evaluation}
            else:
                raise LLMProviderError(f"Unknown request type: {request.type}", provider_name=provider.provider_name)
        except asyncio.TimeoutError as e:
            circuit_breaker.on_failure()
            self.logger.warning(f"LLM request to {provider.provider_name} timed out after {timeout}s")
            raise LLMProviderError(
                f"LLM request timed out after {timeout}s",
                provider_name=provider.provider_name,
            ) from e
        except LLMProviderError:
            circuit_breaker.on_failure()
            raise
        except Exception as e:
            circuit_breaker.on_failure()
            self.logger.error(f"LLM request failed: {type(e).__name__}: {e}")
            raise LLMProviderError(f"LLM request failed: {e}", provider_name=provider.provider_name) from e

        response_time = time.monotonic() - start_time
        self._update_provider_performance(provider.provider_name, response_time)
        circuit_breaker.on_success()
        log_performance(f"llm.{request.type}", response_time, {"provider": provider.provider_name})

        return LLMResponse(
            content=content,
            provider=provider.provider_name,
            response_time=response_time,
            model=provider.config.get("model"),
            metadata=metadata,
        )

    def _update_provider_performance(self, provider_name: str, response_time: float) -> None:
        """Update provider performance metrics."""
        performance_history = self._provider_performance.setdefault(provider_name, [])
        performance_history.append(response_time)

        # Keep only last 10 performance measurements
        if len(performance_history) > 10:
            performance_history.pop(0)

    def get_provider_health(self) -> Dict[str, Dict[str, Any]]:
        """Get health status of all providers."""
        health_status = {}

        for provider_name, provider in self.providers.items():
            circuit_breaker = self.circuit_breakers.get(provider_name)
            performance_history = self._provider_performance.get(provider_name, [])

            health_status[provider_name] = {
                "health_status": provider.health_status.value,
                "circuit_breaker_state": circuit_breaker.get_state().value if circuit_breaker else "unknown",
                "avg_response_time": sum(performance_history) / len(performance_history) if performance_history else 0,
                "total_requests": len(performance_history),
            }

        return health_status

    @property
    def is_initialized(self) -> bool:
        """Check if provider manager is initialized."""
        return self._initialized

    async def cleanup(self) -> None:
        """Clean up all providers and resources."""
        for provider in self.providers.values():
            try:
                await provider.cleanup()
            except Exception as e:
                self.logger.error(f"Failed to cleanup provider {provider.provider_name}: {e}")

        self.providers.clear()
        self.circuit_breakers.clear()
        self._provider_performance.clear()
        self._initialized = False

        self.logger.info("LLM Provider Manager cleaned up successfully")
