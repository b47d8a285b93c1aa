"""Utility modules for the Assessment Session Engine."""

from .logging import setup_logging, get_logger, set_correlation_id, get_correlation_id
from .sanitization import sanitize_input, sanitize_optional
from .exceptions import (
    AssessmentEngineError,
    InvalidRequestError,
    NotFoundError,
    SessionAlreadyCompleteError,
    NoQuestionsAvailableError,
    UpstreamEvaluationUnavailableError,
    ConfigurationError,
    LLMProviderError,
    RateLimitError,
    AuthenticationError,
    StorageError,
    DataIntegrityError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "sanitize_input",
    "sanitize_optional",
    "AssessmentEngineError",
    "InvalidRequestError",
    "NotFoundError",
    "SessionAlreadyCompleteError",
    "NoQuestionsAvailableError",
    "UpstreamEvaluationUnavailableError",
    "ConfigurationError",
    "LLMProviderError",
    "RateLimitError",
    "AuthenticationError",
    "StorageError",
    "DataIntegrityError",
]
