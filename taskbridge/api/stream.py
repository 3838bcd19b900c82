"""Server-sent event parsing and task-completion monitoring.

SSEEventParser turns arbitrarily fragmented bytes into complete events and
knows nothing about the network. EventStreamMonitor drives a task to a
terminal outcome from a ByteStream, closing it on every exit path.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from taskbridge.core.errors.errors import ErrorContext, TaskFailedError, TaskTimeoutError
from taskbridge.core.errors.models import TaskErrorContext
from taskbridge.tools.models import TaskStatus, TaskStatusRecord

logger = logging.getLogger(__name__)

EVENT_SEPARATOR = "\n\n"
DATA_PREFIX = "data:"
EVENT_PREFIX = "event:"
ID_PREFIX = "id:"


@dataclass(frozen=True)
class ServerSentEvent:
    """One complete event from the stream."""

    data: str
    event: Optional[str] = None
    id: Optional[str] = None


def _field_value(line: str, prefix: str) -> str:
    return line[len(prefix):].strip()


def parse_event_block(block: str) -> Optional[ServerSentEvent]:
    """Parse one blank-line-delimited block; None if it carries no data line."""
    data_lines: list[str] = []
    event_name: Optional[str] = None
    event_id: Optional[str] = None
    for line in block.split("\n"):
        if line.startswith(DATA_PREFIX):
            data_lines.append(_field_value(line, DATA_PREFIX))
        elif line.startswith(EVENT_PREFIX):
            event_name = _field_value(line, EVENT_PREFIX)
        elif line.startswith(ID_PREFIX):
            event_id = _field_value(line, ID_PREFIX)
    if not data_lines:
        return None
    return ServerSentEvent(data="\n".join(data_lines), event=event_name, id=event_id)


class SSEEventParser:
    """Incremental parser owning its decode buffer.

    ``feed`` returns the events completed by the new bytes; the trailing
    fragment after the last blank line stays buffered until more bytes
    arrive. ``finish`` flushes the decoder at end of stream and discards
    whatever fragment is still incomplete.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def buffer(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> list[ServerSentEvent]:
        return self._consume(self._decoder.decode(chunk))

    def finish(self) -> list[ServerSentEvent]:
        events = self._consume(self._decoder.decode(b"", final=True))
        if self._buffer.strip():
            logger.debug(f"Discarding incomplete trailing event: {self._buffer!r}")
        self._buffer = ""
        return events

    def _consume(self, text: str) -> list[ServerSentEvent]:
        if not text:
            return []
        # CRLF may straddle two reads, so normalize the whole buffer
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        blocks = self._buffer.split(EVENT_SEPARATOR)
        self._buffer = blocks.pop()

        events = []
        for block in blocks:
            if not block.strip():
                continue
            event = parse_event_block(block)
            if event is not None:
                events.append(event)
        return events


class ByteStream(Protocol):
    """Source of stream bytes that can be torn down early."""

    def iter_chunks(self) -> AsyncIterator[bytes]:
        ...

    def close(self) -> None:
        ...


class ResponseByteStream:
    """ByteStream over an aiohttp response body."""

    def __init__(self, response):
        self._response = response

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.content.iter_any():
            yield chunk

    def close(self) -> None:
        # drops the connection instead of draining the remaining body
        self._response.close()


class MonitorState(str, Enum):
    AWAITING_DATA = "AWAITING_DATA"
    EVENT_READY = "EVENT_READY"
    RESOLVED_SUCCESS = "RESOLVED_SUCCESS"
    RESOLVED_FAILURE = "RESOLVED_FAILURE"
    RESOLVED_TIMEOUT = "RESOLVED_TIMEOUT"

    @property
    def is_resolved(self) -> bool:
        return self in (
            MonitorState.RESOLVED_SUCCESS,
            MonitorState.RESOLVED_FAILURE,
            MonitorState.RESOLVED_TIMEOUT,
        )


def format_completion_message(record: TaskStatusRecord) -> str:
    """Success text for a finished task; optional details only when present."""
    lines = [f"Task completed: {record.result_url}" if record.result_url else "Task completed"]
    if record.duration_seconds:
        lines.append(f"Duration: {record.duration_seconds:g}s")
    if record.mime_type:
        lines.append(f"Mime Type: {record.mime_type}")
    if record.thumbnail_url:
        lines.append(f"Thumbnail: {record.thumbnail_url}")
    return "\n".join(lines)


class EventStreamMonitor:
    """Resolve one task from its status event stream.

    A monitor is single-use: ``run`` consumes the stream until the task
    reaches FINISHED or FAILED, or the stream ends.
    """

    def __init__(self, task_id: str, tool_name: str = "*"):
        self.task_id = task_id
        self.tool_name = tool_name
        self.state = MonitorState.AWAITING_DATA
        self.last_record: Optional[TaskStatusRecord] = None
        self.events_seen = 0
        self._parser = SSEEventParser()

    async def run(self, stream: ByteStream) -> str:
        """Consume the stream and return the success message.

        Raises:
            TaskFailedError: The task reported FAILED
            TaskTimeoutError: The stream ended without a terminal status
        """
        if self.state.is_resolved:
            raise RuntimeError(f"Monitor for task {self.task_id} already resolved ({self.state.value})")

        try:
            async for chunk in stream.iter_chunks():
                result = self._handle_events(self._parser.feed(chunk))
                if result is not None:
                    return result

            result = self._handle_events(self._parser.finish())
            if result is not None:
                return result

            self.state = MonitorState.RESOLVED_TIMEOUT
            logger.warning(f"Event stream for task {self.task_id} ended without a terminal status")
            raise TaskTimeoutError(
                message="Task monitoring timed out",
                context=self._error_context("TaskTimeoutError"),
                task_context=self._task_context(),
            )
        finally:
            stream.close()

    def _handle_events(self, events: list[ServerSentEvent]) -> Optional[str]:
        if not events:
            return None
        self.state = MonitorState.EVENT_READY
        for event in events:
            record = self._decode(event)
            if record is None:
                continue
            self.last_record = record

            if record.status == TaskStatus.FINISHED:
                self.state = MonitorState.RESOLVED_SUCCESS
                logger.info(f"Task {self.task_id} finished: {record.result_url}")
                return format_completion_message(record)

            if record.status == TaskStatus.FAILED:
                self.state = MonitorState.RESOLVED_FAILURE
                logger.info(f"Task {self.task_id} failed")
                raise TaskFailedError(
                    message="Task failed",
                    context=self._error_context("TaskFailedError"),
                    task_context=self._task_context(),
                )

        self.state = MonitorState.AWAITING_DATA
        return None

    def _decode(self, event: ServerSentEvent) -> Optional[TaskStatusRecord]:
        self.events_seen += 1
        logger.debug(f"SSE event received for task {self.task_id}: {event.data}")
        try:
            record = TaskStatusRecord.model_validate(json.loads(event.data))
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Failed to parse SSE data for task {self.task_id}: {e}")
            return None
        logger.info(f"Task status update: task={self.task_id} status={record.status.value}")
        return record

    def _error_context(self, error_type: str) -> ErrorContext:
        return ErrorContext.create(
            tool_name=self.tool_name,
            error_type=error_type,
            error_location="EventStreamMonitor.run",
            component="event_stream_monitor",
            operation="monitor_task",
        )

    def _task_context(self) -> TaskErrorContext:
        return TaskErrorContext(
            task_id=self.task_id,
            last_status=self.last_record.status.value if self.last_record else None,
        )
