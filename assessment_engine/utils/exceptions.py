"""Custom exceptions for the Assessment Session Engine."""

from typing import Optional, Any, Dict


class AssessmentEngineError(Exception):
    """Base exception for all Assessment Session Engine errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class InvalidRequestError(AssessmentEngineError):
    """Raised when a caller supplies malformed or out-of-range input."""

    def __init__(self, message: str, field_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the invalid request error.

        Args:
            message: Error message
            field_name: Optional name of the offending field
            details: Optional additional error details
        """
        super().__init__(message, "INVALID_REQUEST", details)
        self.field_name = field_name


class NotFoundError(AssessmentEngineError):
    """Raised when a session or question does not exist or is not eligible."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the not found error.

        Args:
            message: Error message
            resource_type: Optional type of resource that was not found
            resource_id: Optional ID of resource that was not found
            details: Optional additional error details
        """
        super().__init__(message, "NOT_FOUND", details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class SessionAlreadyCompleteError(AssessmentEngineError):
    """Raised when every question of a session has already been answered."""

    def __init__(self, message: str, session_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SESSION_COMPLETE", details)
        self.session_id = session_id


class NoQuestionsAvailableError(AssessmentEngineError):
    """Raised when neither AI generation nor the question bank yields questions."""

    def __init__(self, message: str, filters: Optional[Dict[str, Any]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the no questions error.

        Args:
            message: Error message
            filters: Optional filter values used for the failed lookup
            details: Optional additional error details
        """
        super().__init__(message, "NO_QUESTIONS", details)
        self.filters = filters or {}


class UpstreamEvaluationUnavailableError(AssessmentEngineError):
    """Raised internally when AI evaluation cannot produce a result.

    Always absorbed by the deterministic evaluation fallback.
    """

    def __init__(self, message: str, question_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UPSTREAM_EVALUATION_UNAVAILABLE", details)
        self.question_id = question_id


class ConfigurationError(AssessmentEngineError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the configuration error.

        Args:
            message: Error message
            config_key: Optional configuration key that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "CONFIG_ERROR", details)
        self.config_key = config_key


class LLMProviderError(AssessmentEngineError):
    """Exception raised for LLM provider-related errors."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the LLM provider error.

        Args:
            message: Error message
            provider_name: Optional name of the LLM provider that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "LLM_PROVIDER_ERROR", details)
        self.provider_name = provider_name


class RateLimitError(LLMProviderError):
    """Exception raised when a provider rejects a call for rate limiting."""

    def __init__(self, message: str, provider_name: Optional[str] = None, retry_after: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, provider_name, details)
        self.error_code = "RATE_LIMIT_ERROR"
        self.retry_after = retry_after


class AuthenticationError(LLMProviderError):
    """Exception raised when a provider rejects the configured credentials."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, provider_name, details)
        self.error_code = "AUTHENTICATION_ERROR"


class StorageError(AssessmentEngineError):
    """Exception raised for storage-related errors."""

    def __init__(self, message: str, file_path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the storage error.

        Args:
            message: Error message
            file_path: Optional file path that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "STORAGE_ERROR", details)
        self.file_path = file_path


class DataIntegrityError(AssessmentEngineError):
    """Exception raised for data integrity violations."""

    def __init__(self, message: str, data_type: Optional[str] = None, constraint: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the data integrity error.

        Args:
            message: Error message
            data_type: Optional type of data that violated integrity
            constraint: Optional constraint that was violated
            details: Optional additional error details
        """
        super().__init__(message, "DATA_INTEGRITY_ERROR", details)
        self.data_type = data_type
        self.constraint = constraint
