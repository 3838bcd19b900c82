"""
Command-line interface for taskbridge.

Subcommands:
    serve     Run the MCP server over HTTP
    validate  Load and validate a tool configuration file
    call      Invoke one tool once and print the result text
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional

from taskbridge.api.client import TaskApiClient, TaskApiSettings
from taskbridge.core.errors.errors import BaseError, ConfigurationError
from taskbridge.core.settings import BridgeSettings
from taskbridge.server.provider import MCPServerProvider, MCPServerSettings
from taskbridge.tools.executor import ToolExecutor
from taskbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_client(settings: BridgeSettings) -> TaskApiClient:
    return TaskApiClient(
        TaskApiSettings(
            server_host=settings.server_host or "",
            api_key=settings.api_key or "",
            request_timeout=settings.request_timeout,
        )
    )


async def serve(settings: BridgeSettings, registry: ToolRegistry) -> None:
    """Run the MCP server until cancelled."""
    server = MCPServerProvider(
        registry,
        build_client(settings),
        MCPServerSettings(host=settings.mcp_host, port=settings.mcp_port),
    )
    await server.initialize()
    print(f"Serving {len(server.get_registered_tools())} tools on http://{settings.mcp_host}:{settings.mcp_port}/mcp")
    try:
        await asyncio.Event().wait()
    finally:
        await server.shutdown()


async def call_tool(
    settings: BridgeSettings, registry: ToolRegistry, tool_name: str, arguments: dict[str, Any]
) -> bool:
    """Invoke one tool and print its result text; True on success."""
    descriptor = registry.get(tool_name)
    if descriptor is None:
        print(f"Unknown tool: {tool_name}. Available: {', '.join(registry.names())}", file=sys.stderr)
        return False

    client = build_client(settings)
    await client.initialize()
    try:
        result = await ToolExecutor(descriptor, client).execute(arguments)
    finally:
        await client.shutdown()

    print(result.text, file=sys.stderr if result.is_error else sys.stdout)
    return not result.is_error


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskbridge", description="Bridge MCP tool calls to a remote task API.")
    parser.add_argument("-c", "--tools-config", help="Path to the tool configuration file (JSON or YAML)")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    serve_parser.add_argument("--host", help="Host to bind (default: TASKBRIDGE_MCP_HOST or localhost)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: TASKBRIDGE_MCP_PORT or 8080)")

    subparsers.add_parser("validate", help="Validate the tool configuration file")

    call_parser = subparsers.add_parser("call", help="Invoke a tool once")
    call_parser.add_argument("tool", help="Tool name")
    call_parser.add_argument("-a", "--args", default="{}", help="Tool input as a JSON object")
    call_parser.add_argument("--api-key", help="API key for this call (default: API_KEY)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.tools_config:
        overrides["tools_config_path"] = args.tools_config
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "host", None):
        overrides["mcp_host"] = args.host
    if getattr(args, "port", None):
        overrides["mcp_port"] = args.port
    if getattr(args, "api_key", None):
        overrides["api_key"] = args.api_key

    try:
        settings = BridgeSettings(**overrides)
    except ValueError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        registry = ToolRegistry.from_file(settings.tools_config_path)

        if args.command == "validate":
            registry.validate_all()
            print(f"{len(registry)} tools valid: {', '.join(registry.names())}")
            return 0

        settings.validate_environment()

        if args.command == "call":
            try:
                arguments = json.loads(args.args)
            except json.JSONDecodeError as e:
                print(f"--args is not valid JSON: {e}", file=sys.stderr)
                return 2
            if not isinstance(arguments, dict):
                print("--args must be a JSON object", file=sys.stderr)
                return 2
            return 0 if asyncio.run(call_tool(settings, registry, args.tool, arguments)) else 1

        asyncio.run(serve(settings, registry))
        return 0
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1
    except BaseError as e:
        logger.error(f"taskbridge failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
