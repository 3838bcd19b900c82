"""Error types with structured context.

Every error raised inside taskbridge carries an ErrorContext describing the
tool, component and operation involved, plus a type-specific context model
(configuration key, HTTP request, remote task). Errors raised during a tool
invocation are rendered into a caller-facing result by the executor; only
configuration errors at startup are allowed to propagate.
"""

import logging
import traceback
from datetime import datetime
from typing import Any, Optional

from .models import (
    ConfigurationErrorContext,
    ErrorContextData,
    ProviderErrorContext,
    RequestErrorContext,
    TaskErrorContext,
    ValidationErrorDetail,
)

logger = logging.getLogger(__name__)


class ErrorContext:
    """Structured context information for errors."""

    def __init__(self, context_data: ErrorContextData):
        self._data = context_data

    @classmethod
    def create(
        cls, tool_name: str, error_type: str, error_location: str, component: str, operation: str
    ) -> "ErrorContext":
        """Create a new error context with required data.

        Args:
            tool_name: Name of the tool involved
            error_type: Type of error
            error_location: Location in code
            component: Component raising error
            operation: Operation being performed

        Returns:
            New ErrorContext instance
        """
        context_data = ErrorContextData(
            tool_name=tool_name,
            error_type=error_type,
            error_location=error_location,
            component=component,
            operation=operation,
        )
        return cls(context_data)

    @property
    def data(self) -> ErrorContextData:
        """Get the context data."""
        return self._data

    @property
    def timestamp(self) -> datetime:
        """Get the context creation timestamp."""
        return self._data.timestamp

    def __str__(self) -> str:
        return f"ErrorContext({self._data.model_dump()})"


class BaseError(Exception):
    """Base class for all taskbridge errors.

    Attributes:
        message: Human-readable message, shown to callers as-is
        context: Where the error happened
        cause: Exception that triggered this one, if any
    """

    def __init__(self, message: str, context: ErrorContext, cause: Optional[Exception] = None):
        self.message = message
        self.context = context
        self.cause = cause
        self.timestamp = datetime.now()
        self.traceback = self._capture_traceback()

        super().__init__(message)

    def _capture_traceback(self) -> str:
        return traceback.format_exc()

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary representation of error
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.data.model_dump(),
            "cause": str(self.cause) if self.cause else None,
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        cause_str = f" (caused by: {self.cause})" if self.cause else ""
        return f"{self.__class__.__name__}: {self.message}{cause_str}"


class ValidationError(BaseError):
    """Caller input failed a field's declared constraint."""

    def __init__(
        self,
        message: str,
        validation_errors: list[ValidationErrorDetail],
        context: ErrorContext,
        cause: Optional[Exception] = None,
    ):
        self.validation_errors = validation_errors
        super().__init__(message, context, cause)

    def __str__(self) -> str:
        base_str = super().__str__()
        if self.validation_errors:
            errors_str = "; ".join(f"{e.location}: {e.message}" for e in self.validation_errors[:3])
            if len(self.validation_errors) > 3:
                errors_str += f" (and {len(self.validation_errors) - 3} more)"
            return f"{base_str} - {errors_str}"
        return base_str


class ConfigurationError(BaseError):
    """A tool descriptor or process setting is malformed or inconsistent."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        config_context: ConfigurationErrorContext,
        cause: Optional[Exception] = None,
    ):
        self.config_context = config_context
        super().__init__(message, context, cause)


class ProviderError(BaseError):
    """A provider failed to start or is used before it is ready."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        provider_context: ProviderErrorContext,
        cause: Optional[Exception] = None,
    ):
        self.provider_context = provider_context
        super().__init__(message, context, cause)


class RequestError(BaseError):
    """Base class for failed outbound HTTP requests."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        request_context: RequestErrorContext,
        cause: Optional[Exception] = None,
    ):
        self.request_context = request_context
        super().__init__(message, context, cause)

    @property
    def status_code(self) -> Optional[int]:
        return self.request_context.status_code

    @property
    def response_body(self) -> Optional[str]:
        return self.request_context.response_body


class ApiRequestError(RequestError):
    """Task submission returned a non-success status or an unreadable body."""


class StreamConnectionError(RequestError):
    """The task event stream could not be opened."""


class TaskError(BaseError):
    """Base class for remote tasks that did not complete successfully."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        task_context: TaskErrorContext,
        cause: Optional[Exception] = None,
    ):
        self.task_context = task_context
        super().__init__(message, context, cause)

    @property
    def task_id(self) -> str:
        return self.task_context.task_id


class TaskFailedError(TaskError):
    """The remote task reported FAILED."""


class TaskTimeoutError(TaskError):
    """The event stream ended before the task reached a terminal state."""


ConfigError = ConfigurationError
