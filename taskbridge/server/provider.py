"""MCP server provider exposing registered tools over JSON-RPC on aiohttp."""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from taskbridge.api.client import TaskApiClient
from taskbridge.providers.base import Provider, ProviderSettings
from taskbridge.tools.executor import ToolExecutor
from taskbridge.tools.registry import ToolRegistry

from .models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    JsonRpcRequest,
    MCPError,
    MCPToolNotFoundError,
    ToolCallParams,
    error_response,
    success_response,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "api_key"

MethodHandler = Callable[[dict[str, Any], Optional[str]], Awaitable[Any]]


class MCPServerSettings(ProviderSettings):
    """Settings for MCP server provider."""

    server_name: str = Field(default="taskbridge", description="Name reported to MCP clients")
    server_version: str = Field(default="1.0.0", description="Version reported to MCP clients")
    host: str = Field(default="localhost", description="Host to bind server to")
    port: int = Field(default=8080, description="Port to bind server to")


class MCPServerProvider(Provider[MCPServerSettings]):
    """Serves the tools of a ToolRegistry to MCP clients.

    Every registry tool is exposed at construction; ``add_tool`` and
    ``remove_tool`` change the exposed set at runtime. Executors are cached
    per tool and rebuilt whenever the registry holds a different descriptor
    for that name.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        client: TaskApiClient,
        settings: Optional[MCPServerSettings] = None,
        name: str = "mcp-server",
    ):
        super().__init__(name=name, provider_type="mcp_server", settings=settings or MCPServerSettings())
        self.registry = registry
        self.client = client
        self._exposed: list[str] = registry.names()
        self._executors: dict[str, ToolExecutor] = {}
        self._runner: Optional[web.AppRunner] = None
        self._methods: dict[str, MethodHandler] = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
        }

    async def _initialize(self) -> None:
        await self.client.initialize()
        try:
            runner = web.AppRunner(self.create_app())
            await runner.setup()
            site = web.TCPSite(runner, self.settings.host, self.settings.port)
            await site.start()
        except Exception:
            await self.client.shutdown()
            raise
        self._runner = runner
        logger.info(f"MCP server '{self.name}' started on {self.settings.host}:{self.settings.port}")

    async def _shutdown(self) -> None:
        if self._runner:
            try:
                await self._runner.cleanup()
            except Exception as e:
                logger.warning(f"Error stopping HTTP server: {e}")
            finally:
                self._runner = None
        await self.client.shutdown()

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/mcp", self._handle_http_message)
        app.router.add_get("/health", self._handle_health)
        return app

    # Tool management

    def add_tool(self, tool_name: str) -> bool:
        """Expose a registry tool; False if the registry does not know it."""
        if not self.registry.has(tool_name):
            logger.error(f"Tool config not found: {tool_name}")
            return False
        if tool_name in self._exposed:
            logger.info(f"Tool already registered: {tool_name}")
            return True
        self._exposed.append(tool_name)
        logger.info(f"Successfully added tool: {tool_name}")
        return True

    def remove_tool(self, tool_name: str) -> bool:
        """Stop exposing a tool; the registry entry is left untouched."""
        if tool_name not in self._exposed:
            logger.info(f"Tool not found: {tool_name}")
            return False
        self._exposed.remove(tool_name)
        self._executors.pop(tool_name, None)
        logger.info(f"Successfully removed tool: {tool_name}")
        return True

    def get_registered_tools(self) -> list[str]:
        return list(self._exposed)

    def get_executor(self, tool_name: str) -> ToolExecutor:
        """Executor for an exposed tool, rebuilt if its descriptor changed.

        Raises:
            MCPToolNotFoundError: If the tool is not exposed or no longer registered
        """
        if tool_name not in self._exposed:
            raise MCPToolNotFoundError(tool_name)
        descriptor = self.registry.get(tool_name)
        if descriptor is None:
            raise MCPToolNotFoundError(tool_name)

        executor = self._executors.get(tool_name)
        if executor is None or executor.descriptor is not descriptor:
            executor = ToolExecutor(descriptor, self.client)
            self._executors[tool_name] = executor
            logger.debug(f"Built executor for tool: {tool_name}")
        return executor

    # JSON-RPC dispatch

    async def handle_request(self, data: Any, api_key: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Dispatch one JSON-RPC message.

        Returns the response object, or None for notifications.
        """
        try:
            request = JsonRpcRequest.model_validate(data)
        except PydanticValidationError as e:
            request_id = data.get("id") if isinstance(data, dict) else None
            return error_response(request_id, MCPError(f"Invalid request: {e.errors()[0]['msg']}", INVALID_REQUEST))
        if request.jsonrpc != "2.0":
            return error_response(request.id, MCPError("Invalid request: jsonrpc must be '2.0'", INVALID_REQUEST))

        try:
            handler = self._methods.get(request.method)
            if handler is None:
                if request.is_notification:
                    logger.debug(f"Ignoring notification: {request.method}")
                    return None
                raise MCPError(f"Method not found: {request.method}", METHOD_NOT_FOUND)
            result = await handler(request.params or {}, api_key)
        except MCPError as e:
            logger.info(f"MCP request {request.method} rejected: {e.message}")
            return None if request.is_notification else error_response(request.id, e)
        except Exception as e:
            logger.error(f"Error handling request {request.method}: {e}", exc_info=True)
            error = MCPError(f"Internal error: {str(e)}", INTERNAL_ERROR)
            return None if request.is_notification else error_response(request.id, error)

        return None if request.is_notification else success_response(request.id, result)

    async def _handle_initialize(self, params: dict[str, Any], api_key: Optional[str]) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.settings.server_name, "version": self.settings.server_version},
        }

    async def _handle_ping(self, params: dict[str, Any], api_key: Optional[str]) -> dict[str, Any]:
        return {}

    async def _handle_list_tools(self, params: dict[str, Any], api_key: Optional[str]) -> dict[str, Any]:
        tools = []
        for tool_name in self.get_registered_tools():
            try:
                tools.append(self.get_executor(tool_name).definition())
            except MCPToolNotFoundError:
                logger.warning(f"Exposed tool {tool_name} is no longer registered")
        return {"tools": tools}

    async def _handle_call_tool(self, params: dict[str, Any], api_key: Optional[str]) -> dict[str, Any]:
        try:
            call = ToolCallParams.model_validate(params)
        except PydanticValidationError as e:
            raise MCPError(f"Invalid params: {e.errors()[0]['msg']}", INVALID_PARAMS) from e

        executor = self.get_executor(call.name)
        logger.info(f"Calling tool {call.name}")
        result = await executor.execute(call.arguments, api_key=api_key)
        return result.to_wire()

    # HTTP

    async def _handle_http_message(self, request: web.Request) -> web.StreamResponse:
        api_key = request.headers.get(API_KEY_HEADER) or None
        if not api_key and not self.client.settings.api_key:
            return web.json_response(
                error_response(None, MCPError("API key is required", INVALID_REQUEST)), status=401
            )

        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return web.json_response(error_response(None, MCPError(f"Parse error: {e}", PARSE_ERROR)), status=400)

        response = await self.handle_request(data, api_key=api_key)
        if response is None:
            return web.Response(status=202)
        return web.json_response(response)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "healthy" if self.initialized else "unhealthy",
            "server_name": self.settings.server_name,
            "version": self.settings.server_version,
            "tools_count": len(self._exposed),
        })
