"""Strict Pydantic models for error handling."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from taskbridge.core.models import StrictBaseModel


class ErrorContextData(StrictBaseModel):
    """Where and while doing what an error occurred."""

    tool_name: str = Field(..., description="Name of the tool being configured or invoked")
    error_type: str = Field(..., description="Type of error")
    error_location: str = Field(..., description="Location in code where error occurred")
    timestamp: datetime = Field(default_factory=datetime.now, description="When error occurred")

    component: str = Field(..., description="Component that raised the error")
    operation: str = Field(..., description="Operation being performed")


class ValidationErrorDetail(StrictBaseModel):
    """Strict validation error detail."""

    location: str = Field(..., description="Field or location of validation error")
    message: str = Field(..., description="Validation error message")
    error_type: str = Field(..., description="Type of validation error")


class ConfigurationErrorContext(StrictBaseModel):
    """Strict configuration error context."""

    config_key: str = Field(..., description="Configuration key that failed")
    config_section: str = Field(..., description="Configuration section")
    expected_type: str = Field(..., description="Expected type of configuration")
    actual_value: str = Field(..., description="Actual value provided")


class ProviderErrorContext(StrictBaseModel):
    """Strict provider error context."""

    provider_name: str = Field(..., description="Name of the provider")
    provider_type: str = Field(..., description="Type of provider")
    operation: str = Field(..., description="Operation that failed")


class RequestErrorContext(StrictBaseModel):
    """Outbound HTTP request that failed."""

    method: str = Field(..., description="HTTP method")
    url: str = Field(..., description="Request URL")
    status_code: Optional[int] = Field(default=None, description="HTTP status, if a response arrived")
    response_body: Optional[str] = Field(default=None, description="Response body text, if readable")


class TaskErrorContext(StrictBaseModel):
    """Remote task whose monitoring ended unsuccessfully."""

    task_id: str = Field(..., description="Remote task identifier")
    last_status: Optional[str] = Field(default=None, description="Last status observed for the task")
