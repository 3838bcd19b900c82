"""MCP JSON-RPC server adapter."""

from .models import MCPError, MCPToolNotFoundError
from .provider import MCPServerProvider, MCPServerSettings

__all__ = ["MCPError", "MCPServerProvider", "MCPServerSettings", "MCPToolNotFoundError"]
