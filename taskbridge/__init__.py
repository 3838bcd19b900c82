"""taskbridge: expose a remote asynchronous task API as MCP tools.

Tools are declared in a configuration file. Each invocation validates the
caller's input, submits one task, and waits for its completion either from
the submission response or from the task's server-sent event stream.
"""

from taskbridge.tools import ToolDescriptor, ToolInvocationResult, ToolRegistry
from taskbridge.tools.executor import ToolExecutor
from taskbridge.api import EventStreamMonitor, SSEEventParser, TaskApiClient, TaskApiSettings
from taskbridge.core.settings import BridgeSettings

__version__ = "0.1.0"

__all__ = [
    "BridgeSettings",
    "EventStreamMonitor",
    "SSEEventParser",
    "TaskApiClient",
    "TaskApiSettings",
    "ToolDescriptor",
    "ToolExecutor",
    "ToolInvocationResult",
    "ToolRegistry",
    "__version__",
]
