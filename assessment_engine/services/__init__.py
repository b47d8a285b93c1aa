"""Service modules for the Assessment Session Engine."""

from .llm_manager import LLMProviderManager, LLMProvider, LLMRequest, LLMResponse
from .storage_manager import StorageManager
from .configuration_manager import ConfigurationManager
from .question_bank import QuestionBank, QuestionFilter
from .analytics_recorder import AnalyticsEvent, AnalyticsRecorder, create_analytics_recorder
from .score_aggregator import ScoreAggregator
from .feedback_generator import FeedbackGenerator

__all__ = [
    "LLMProviderManager",
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
    "StorageManager",
    "ConfigurationManager",
    "QuestionBank",
    "QuestionFilter",
    "AnalyticsEvent",
    "AnalyticsRecorder",
    "create_analytics_recorder",
    "ScoreAggregator",
    "FeedbackGenerator",
]
