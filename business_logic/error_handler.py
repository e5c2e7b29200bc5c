"""
Centralized error handling and user feedback.

This module classifies failures from plan generation, provides the
primary-then-fallback execution policy for the generation call, and turns
errors into user-facing notifications.
"""

import logging
from collections import Counter, deque
from typing import Dict, Any, Deque, Optional, Callable, List, Tuple
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import openai

from data.parsers import KnowledgeBaseError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PlanGenerationError(Exception):
    """Raised when the text-generation call fails or returns nothing usable."""

    def __init__(self, message: str, error_info: Optional["ErrorInfo"] = None):
        super().__init__(message)
        self.error_info = error_info


class NonJSONContentError(PlanGenerationError):
    """Raised when the model returns content that is not a JSON object."""
    pass


class ErrorSeverity(Enum):
    """How bad a failure is; drives log level and notification style."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Where a failure came from."""
    API_ERROR = "api_error"
    DATA_ERROR = "data_error"
    VALIDATION_ERROR = "validation_error"
    GENERATION_ERROR = "generation_error"
    NETWORK_ERROR = "network_error"
    SYSTEM_ERROR = "system_error"


NOTIFICATION_TYPES = {
    ErrorSeverity.INFO: "info",
    ErrorSeverity.WARNING: "warning",
    ErrorSeverity.ERROR: "error",
    ErrorSeverity.CRITICAL: "error"
}

NOTIFICATION_TITLES = {
    ErrorCategory.API_ERROR: "AI Service Error",
    ErrorCategory.DATA_ERROR: "Knowledge Base Error",
    ErrorCategory.VALIDATION_ERROR: "Validation Error",
    ErrorCategory.GENERATION_ERROR: "Plan Generation Error",
    ErrorCategory.NETWORK_ERROR: "Connection Error",
    ErrorCategory.SYSTEM_ERROR: "System Error"
}

LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL
}


@dataclass
class ErrorInfo:
    """Classified failure, ready for logging and display."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    retry_possible: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AttemptOutcome:
    """Result of running a sequence of attempts."""
    success: bool
    result: Any = None
    error_info: Optional[ErrorInfo] = None
    attempt_label: Optional[str] = None
    attempts_made: int = 0
    error: Optional[Exception] = None


class ErrorHandler:
    """
    Centralized error handling and user feedback system.

    Classifies exceptions, runs the primary/fallback attempt policy,
    and builds user-friendly notifications.
    """

    max_history = 100

    def __init__(self):
        self.error_history: Deque[ErrorInfo] = deque(maxlen=self.max_history)

    def handle_openai_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle text-generation API errors with appropriate user feedback.

        Args:
            error: The OpenAI SDK exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, openai.APITimeoutError):
            return ErrorInfo(
                category=ErrorCategory.NETWORK_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Generation request exceeded its deadline in {context}: {str(error)}",
                user_message="The AI service request timed out. Please try again.",
                suggested_action="Retry the request. Consider raising LLM_TIMEOUT_SECONDS for long briefs.",
                retry_possible=True
            )

        if isinstance(error, openai.APIConnectionError):
            return ErrorInfo(
                category=ErrorCategory.NETWORK_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Failed to connect to the generation provider in {context}: {str(error)}",
                user_message="Cannot connect to the AI service. Please check your internet connection.",
                suggested_action="Check your internet connection and try again.",
                retry_possible=True
            )

        status_code = getattr(error, 'status_code', None)

        if status_code == 401 or isinstance(error, openai.AuthenticationError):
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"Generation provider authentication failed: {str(error)}",
                user_message="API authentication failed. Please check your API key configuration.",
                suggested_action="Verify GROQ_API_KEY / OPENAI_API_KEY in your settings.",
                retry_possible=False
            )

        if status_code == 429:
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Generation provider rate limit exceeded: {str(error)}",
                user_message="API rate limit exceeded. Please wait a moment and try again.",
                suggested_action="Wait a moment and retry.",
                retry_possible=True
            )

        if status_code is not None and status_code >= 500:
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Generation provider server error: {str(error)}",
                user_message="The AI service encountered an internal error. Please try again.",
                suggested_action="Retry the operation. If the problem persists, check the provider's status page.",
                retry_possible=True
            )

        return ErrorInfo(
            category=ErrorCategory.API_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Generation API error in {context}: {str(error)}",
            user_message="An error occurred while communicating with the AI service.",
            technical_details=str(error),
            suggested_action="Please try again. If the problem persists, contact support.",
            retry_possible=True
        )

    def handle_generation_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """Handle unusable model output (empty or non-JSON completions)."""
        if getattr(error, "error_info", None) is not None:
            return error.error_info

        if isinstance(error, NonJSONContentError):
            return ErrorInfo(
                category=ErrorCategory.GENERATION_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Model returned non-JSON content in {context}: {str(error)}",
                user_message="The AI service returned a response that is not a valid plan.",
                technical_details=str(error),
                suggested_action="Try again. If it keeps happening, try a different model.",
                retry_possible=True
            )

        return ErrorInfo(
            category=ErrorCategory.GENERATION_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Plan generation failed in {context}: {str(error)}",
            user_message="The AI service could not generate a plan.",
            technical_details=str(error),
            suggested_action="Try again in a moment.",
            retry_possible=True
        )

    def handle_data_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle knowledge base errors (missing or malformed file).

        Args:
            error: The data exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, FileNotFoundError):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"Knowledge base file not found: {str(error)}",
                user_message="The product knowledge base is missing.",
                suggested_action="Set KNOWLEDGE_BASE_PATH to a valid knowledge base JSON file.",
                retry_possible=False
            )

        if isinstance(error, KnowledgeBaseError):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"Knowledge base corruption detected: {str(error)}",
                user_message="The product knowledge base is corrupted or in an invalid format.",
                technical_details=str(error),
                suggested_action="Fix the knowledge base JSON file and restart the application.",
                retry_possible=False
            )

        return ErrorInfo(
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Data processing error in {context}: {str(error)}",
            user_message="An error occurred while reading the knowledge base.",
            technical_details=str(error),
            suggested_action="Check the knowledge base file and try again.",
            retry_possible=False
        )

    def handle_validation_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle brief/plan validation errors with specific user guidance.

        Args:
            error: The validation exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        return ErrorInfo(
            category=ErrorCategory.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Validation error in {context}: {str(error)}",
            user_message=str(error),  # Validation errors are usually user-friendly
            suggested_action="Please correct the highlighted fields and try again.",
            retry_possible=False
        )

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Map any exception raised while planning to an ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, openai.OpenAIError):
            return self.handle_openai_error(error, context)

        if isinstance(error, PlanGenerationError):
            return self.handle_generation_error(error, context)

        if isinstance(error, (FileNotFoundError, KnowledgeBaseError)):
            return self.handle_data_error(error, context)

        if isinstance(error, (ValueError, TypeError)) and "validation" in str(error).lower():
            return self.handle_validation_error(error, context)

        if isinstance(error, (ConnectionError, TimeoutError)):
            return ErrorInfo(
                category=ErrorCategory.NETWORK_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Network error in {context}: {str(error)}",
                user_message="A network error occurred while communicating with external services.",
                technical_details=str(error),
                suggested_action="Check your internet connection and try again.",
                retry_possible=True
            )

        if isinstance(error, ValueError) and "not set" in str(error):
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"Configuration error in {context}: {str(error)}",
                user_message=str(error),
                suggested_action="Add the missing API key to your .env file or Streamlit secrets.",
                retry_possible=True
            )

        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="An unexpected error occurred. Please try again or contact support.",
            technical_details=str(error),
            suggested_action="Try again. If the problem persists, contact support with the error details.",
            retry_possible=True
        )

    def run_with_fallback(self, attempts: List[Tuple[str, Callable[[], Any]]],
                          context: str = "") -> AttemptOutcome:
        """
        Run attempts in order until one succeeds.

        Each attempt is all-or-nothing; a failed attempt is never resumed.
        Later attempts run after any failure, including non-retryable ones,
        since a fallback typically targets a different provider.

        Args:
            attempts: (label, callable) pairs, primary first
            context: Context for error reporting

        Returns:
            AttemptOutcome with the first successful result, or the last error
        """
        last_error: Optional[Exception] = None
        attempts_made = 0

        for i, (label, attempt) in enumerate(attempts):
            attempts_made += 1
            try:
                result = attempt()
                if i > 0:
                    logger.info(f"{context}: fallback attempt '{label}' succeeded")
                return AttemptOutcome(True, result, None, label, attempts_made)
            except Exception as e:
                last_error = e
                logger.warning(f"Attempt {i + 1}/{len(attempts)} ({label}) failed in {context}: {str(e)}")

        if last_error is None:
            error_info = ErrorInfo(
                category=ErrorCategory.SYSTEM_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"No attempts configured for {context}",
                user_message="The AI service is not configured.",
                retry_possible=False
            )
            return AttemptOutcome(False, None, error_info, None, 0)

        error_info = self.classify_error(last_error, context)
        error_info.technical_details = error_info.technical_details or repr(last_error)
        return AttemptOutcome(False, None, error_info, attempts[-1][0], attempts_made, last_error)

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Build the notification the UI shows for a failed request.

        Technical details are attached only for error and critical severities.
        """
        notification = {
            'type': NOTIFICATION_TYPES[error_info.severity],
            'title': NOTIFICATION_TITLES.get(error_info.category, "Error"),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            'dismissible': error_info.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING),
            'retry_possible': error_info.retry_possible
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action

        if error_info.technical_details and error_info.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            notification['technical_details'] = error_info.technical_details

        return notification

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Record an error in the bounded history and log it at its severity.

        Args:
            error_info: Classified error
            context: Where the error surfaced (e.g. "Campaign Plan")
        """
        self.error_history.append(error_info)
        logger.log(LOG_LEVELS[error_info.severity], f"{context}: {error_info.message}")

    def get_error_statistics(self) -> Dict[str, Any]:
        """Error counts by category and severity, over the last 24 hours."""
        if not self.error_history:
            return {'total_errors': 0}

        cutoff = datetime.now() - timedelta(hours=24)
        recent = [info for info in self.error_history if info.timestamp > cutoff]

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent),
            'category_breakdown': dict(Counter(info.category.value for info in recent)),
            'severity_breakdown': dict(Counter(info.severity.value for info in recent))
        }


error_handler = ErrorHandler()
