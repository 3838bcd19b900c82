"""HTTP client for the remote task API.

Submission is a single JSON POST to the tool's endpoint. Completion is
observed over the task's server-sent event stream and resolved by
EventStreamMonitor.
"""

import json
import logging
from typing import Any, Optional

import aiohttp
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from taskbridge.core.errors.errors import ApiRequestError, ErrorContext, StreamConnectionError
from taskbridge.core.errors.models import RequestErrorContext
from taskbridge.providers.base import Provider, ProviderSettings
from taskbridge.tools.mapping import PROVENANCE_VALUE
from taskbridge.tools.models import TaskStatusRecord, ToolDescriptor

from .stream import EventStreamMonitor, ResponseByteStream

logger = logging.getLogger(__name__)

UNREADABLE_BODY = "Unable to read error response"
TASK_STREAM_PATH = "/api/task/{task_id}/sse"


class TaskApiSettings(ProviderSettings):
    """Settings for the task API client.

    Attributes:
        server_host: Host of the task API, with or without a scheme
        api_key: Key sent as ``Authorization: KEY <api_key>``
        source: Provenance value the executor writes into every submission payload
        request_timeout: Total timeout in seconds for submissions; the
            event stream is never timed out client-side
    """

    server_host: str = Field(..., min_length=1)
    api_key: str = ""
    source: str = PROVENANCE_VALUE
    request_timeout: Optional[float] = Field(default=None, gt=0)


def ensure_https_prefix(url: str) -> str:
    """Prepend ``https://`` to a URL that has no scheme."""
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


class TaskApiClient(Provider[TaskApiSettings]):
    """Provider owning the HTTP session used for submissions and event streams."""

    def __init__(self, settings: TaskApiSettings, name: str = "task_api"):
        super().__init__(name=name, provider_type="task_api", settings=settings)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize(self) -> None:
        self._session = aiohttp.ClientSession()
        logger.debug(f"Task API client session opened for {self.settings.server_host}")

    async def _shutdown(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def build_url(self, path: str) -> str:
        return ensure_https_prefix(f"{self.settings.server_host}{path}")

    def _headers(self, accept: str, api_key: Optional[str]) -> dict[str, str]:
        headers = {
            "Accept": accept,
            "Authorization": f"KEY {api_key or self.settings.api_key}",
        }
        if accept == "application/json":
            headers["Content-Type"] = "application/json"
        return headers

    def _require_session(self, operation: str, tool_name: str = "*") -> aiohttp.ClientSession:
        if not self._initialized or self._session is None:
            raise self._not_initialized_error(operation, tool_name)
        return self._session

    async def submit(
        self,
        descriptor: ToolDescriptor,
        payload: dict[str, Any],
        api_key: Optional[str] = None,
    ) -> TaskStatusRecord:
        """Submit one mapped payload as-is and return the initial status record.

        Raises:
            ApiRequestError: Non-success status, unreadable JSON or an
                unrecognized record shape
        """
        session = self._require_session("submit", descriptor.name)
        url = self.build_url(descriptor.api_endpoint)

        kwargs: dict[str, Any] = {}
        if self.settings.request_timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.settings.request_timeout)

        logger.info(f"Submitting task for {descriptor.name} to {url}")
        async with session.post(
            url, json=payload, headers=self._headers("application/json", api_key), **kwargs
        ) as response:
            if response.status >= 400:
                error_text = await self._read_error_body(response)
                logger.error(f"Task submission for {descriptor.name} failed ({response.status}): {error_text}")
                raise self._request_error(
                    ApiRequestError,
                    "submit",
                    f"API request failed({response.status}): {error_text}",
                    "POST",
                    url,
                    descriptor.name,
                    status_code=response.status,
                    response_body=error_text,
                )

            text = await response.text()

        try:
            record = TaskStatusRecord.model_validate(json.loads(text))
        except (ValueError, PydanticValidationError) as e:
            raise self._request_error(
                ApiRequestError,
                "submit",
                f"Invalid response from task API: {e}",
                "POST",
                url,
                descriptor.name,
                status_code=response.status,
                response_body=text,
                cause=e,
            ) from e

        logger.debug(f"Submission for {descriptor.name} returned status {record.status.value}")
        return record

    async def monitor_task(self, task_id: str, api_key: Optional[str] = None, tool_name: str = "*") -> str:
        """Subscribe to a task's event stream and wait for a terminal status.

        Returns:
            The success message of the finished task

        Raises:
            StreamConnectionError: The stream could not be opened
            TaskFailedError: The task reported FAILED
            TaskTimeoutError: The stream ended without a terminal status
        """
        session = self._require_session("monitor_task", tool_name)
        url = self.build_url(TASK_STREAM_PATH.format(task_id=task_id))
        headers = self._headers("text/event-stream", api_key)

        logger.info(f"Monitoring task {task_id} via {url}")
        async with session.get(
            url, headers=headers, timeout=aiohttp.ClientTimeout(total=None, sock_read=None)
        ) as response:
            if response.status >= 400:
                error_text = await self._read_error_body(response)
                raise self._request_error(
                    StreamConnectionError,
                    "monitor_task",
                    f"SSE connection failed({response.status}): {error_text}",
                    "GET",
                    url,
                    tool_name,
                    status_code=response.status,
                    response_body=error_text,
                )
            if response.content is None:
                raise self._request_error(
                    StreamConnectionError,
                    "monitor_task",
                    "SSE response did not provide a data stream",
                    "GET",
                    url,
                    tool_name,
                    status_code=response.status,
                )

            monitor = EventStreamMonitor(task_id, tool_name=tool_name)
            return await monitor.run(ResponseByteStream(response))

    @staticmethod
    async def _read_error_body(response) -> str:
        try:
            return await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read error body: {e}")
            return UNREADABLE_BODY

    def _request_error(
        self,
        error_cls: type,
        operation: str,
        message: str,
        method: str,
        url: str,
        tool_name: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        return error_cls(
            message=message,
            context=ErrorContext.create(
                tool_name=tool_name,
                error_type=error_cls.__name__,
                error_location=f"{self.__class__.__name__}.{operation}",
                component=self.name,
                operation=operation,
            ),
            request_context=RequestErrorContext(
                method=method,
                url=url,
                status_code=status_code,
                response_body=response_body,
            ),
            cause=cause,
        )
