"""JSON-RPC 2.0 message models and errors for the MCP endpoint."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[str, int]


class JsonRpcRequest(BaseModel):
    """Incoming request or notification (a notification has no id)."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    method: str = Field(..., min_length=1)
    params: Optional[dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class ToolCallParams(BaseModel):
    """Parameters of ``tools/call``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    arguments: Optional[dict[str, Any]] = None


class MCPError(Exception):
    """Protocol-level error returned as a JSON-RPC error object."""

    def __init__(self, message: str, code: int = INTERNAL_ERROR, data: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary format for MCP messages."""
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


class MCPToolNotFoundError(MCPError):
    """Tool not found error."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool not found: {tool_name}", code=INVALID_PARAMS)
        self.tool_name = tool_name


def success_response(request_id: Optional[RequestId], result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def error_response(request_id: Optional[RequestId], error: MCPError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}
