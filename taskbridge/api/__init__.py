"""Remote task API: submission client and event-stream monitoring."""

from .client import TaskApiClient, TaskApiSettings, ensure_https_prefix
from .stream import (
    ByteStream,
    EventStreamMonitor,
    MonitorState,
    ResponseByteStream,
    ServerSentEvent,
    SSEEventParser,
    format_completion_message,
)

__all__ = [
    "ByteStream",
    "EventStreamMonitor",
    "MonitorState",
    "ResponseByteStream",
    "ServerSentEvent",
    "SSEEventParser",
    "TaskApiClient",
    "TaskApiSettings",
    "ensure_https_prefix",
    "format_completion_message",
]
