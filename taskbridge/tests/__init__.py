"""
Test suite for taskbridge.

Covers the tool registry, validator compilation, request mapping, the task
API client, event-stream monitoring, the tool executor, the MCP server
adapter and the CLI.
"""

import logging

# Configure test logging
logging.basicConfig(level=logging.WARNING)  # Reduce noise during tests
