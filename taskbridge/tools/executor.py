"""Per-tool invocation: validate, submit, monitor, render."""

import logging
from typing import Any, Mapping, Optional

from taskbridge.api.client import TaskApiClient
from taskbridge.api.stream import format_completion_message
from taskbridge.core.errors.errors import BaseError, ErrorContext, TaskError
from taskbridge.core.errors.models import TaskErrorContext

from .mapping import build_request_body
from .models import TaskStatus, ToolDescriptor, ToolInvocationResult
from .validation import build_input_schema, compile_descriptor

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Executes one configured tool against the task API.

    Validators are compiled once, when the executor is created. ``execute``
    never raises: every failure becomes an error result whose text is
    ``"<description> failed: <message>"``.
    """

    def __init__(self, descriptor: ToolDescriptor, client: TaskApiClient):
        self.descriptor = descriptor
        self.client = client
        self.validator = compile_descriptor(descriptor)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def definition(self) -> dict[str, Any]:
        """Tool entry advertised by ``tools/list``."""
        return {
            "name": self.descriptor.name,
            "description": self.descriptor.description,
            "inputSchema": build_input_schema(self.descriptor),
        }

    async def execute(
        self, arguments: Optional[Mapping[str, Any]], api_key: Optional[str] = None
    ) -> ToolInvocationResult:
        try:
            validated = self.validator.validate(arguments)
        except BaseError as e:
            logger.info(f"Rejected input for {self.name}: {e.message}")
            return self._failure(e)
        return await self.do_execute_task(validated, api_key=api_key)

    async def do_execute_task(
        self, validated_input: Mapping[str, Any], api_key: Optional[str] = None
    ) -> ToolInvocationResult:
        """Submit the task and wait for its outcome.

        A submission that already reports FINISHED with a result URL is
        resolved without opening the event stream.
        """
        try:
            payload = build_request_body(self.descriptor, validated_input, source=self.client.settings.source)
            record = await self.client.submit(self.descriptor, payload, api_key=api_key)

            if record.status == TaskStatus.FINISHED and record.result_url:
                logger.info(f"{self.name} finished on submission: {record.result_url}")
                return ToolInvocationResult.success(format_completion_message(record))

            if not record.task_id:
                raise TaskError(
                    message=f"No task ID returned (status {record.status.value})",
                    context=ErrorContext.create(
                        tool_name=self.name,
                        error_type="TaskError",
                        error_location="ToolExecutor.do_execute_task",
                        component="tool_executor",
                        operation="submit",
                    ),
                    task_context=TaskErrorContext(task_id="", last_status=record.status.value),
                )

            message = await self.client.monitor_task(record.task_id, api_key=api_key, tool_name=self.name)
            return ToolInvocationResult.success(message)
        except Exception as e:
            logger.error(f"{self.name} invocation failed: {e}")
            return self._failure(e)

    def _failure(self, error: Exception) -> ToolInvocationResult:
        message = error.message if isinstance(error, BaseError) else str(error)
        return ToolInvocationResult.failure(f"{self.descriptor.description} failed: {message}")

    def __repr__(self) -> str:
        return f"ToolExecutor(name={self.name!r}, endpoint={self.descriptor.api_endpoint!r})"
