"""Structured error types for taskbridge."""

from .errors import (
    ApiRequestError,
    BaseError,
    ConfigError,
    ConfigurationError,
    ErrorContext,
    ProviderError,
    RequestError,
    StreamConnectionError,
    TaskError,
    TaskFailedError,
    TaskTimeoutError,
    ValidationError,
)

__all__ = [
    "ApiRequestError",
    "BaseError",
    "ConfigError",
    "ConfigurationError",
    "ErrorContext",
    "ProviderError",
    "RequestError",
    "StreamConnectionError",
    "TaskError",
    "TaskFailedError",
    "TaskTimeoutError",
    "ValidationError",
]
