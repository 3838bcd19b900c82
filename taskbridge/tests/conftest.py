"""Shared fixtures for taskbridge tests."""

import copy
from typing import Any, AsyncIterator, Optional

import pytest

REMOVE_BG_CONFIG: dict[str, Any] = {
    "name": "remove_bg",
    "description": "Remove image background",
    "apiEndpoint": "/api/remove-bg",
    "inputSchema": {
        "type": "object",
        "properties": {
            "imageUrl": {"type": "string", "description": "Image URL", "validation": "url"},
        },
        "required": ["imageUrl"],
    },
    "requestBodyMapping": {"image_url": "imageUrl"},
    "fieldValidation": {
        "imageUrl": {"type": "string", "validation": "url", "errorMessage": "Invalid image URL"},
    },
}

UPSCALER_CONFIG: dict[str, Any] = {
    "name": "image_upscaler",
    "description": "Upscale image",
    "apiEndpoint": "/api/image-upscaler",
    "inputSchema": {
        "type": "object",
        "properties": {
            "imageUrl": {"type": "string", "description": "Image URL", "validation": "url"},
            "scale": {"type": "number", "description": "Scale factor", "enum": [2, 4, 8, 16]},
        },
        "required": ["imageUrl"],
    },
    "requestBodyMapping": {
        "image_url": {"source": "input", "value": "imageUrl"},
        "scale": "scale",
    },
    "fieldValidation": {
        "imageUrl": {"type": "string", "validation": "url", "errorMessage": "Invalid image URL"},
        "scale": {"type": "union", "values": [2, 4, 8, 16], "errorMessage": "Scale must be 2, 4, 8 or 16"},
    },
    "defaultValues": {"scale": 2},
}


class FakeByteStream:
    """ByteStream yielding pre-split chunks and recording close calls."""

    def __init__(self, chunks: list[bytes], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error
        self.close_calls = 0
        self.chunks_read = 0

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            self.chunks_read += 1
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.close_calls += 1

    @property
    def closed(self) -> bool:
        return self.close_calls > 0


def sse(*payloads: str) -> bytes:
    """Encode payload strings as complete SSE events."""
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode("utf-8")


@pytest.fixture
def remove_bg_config() -> dict[str, Any]:
    return copy.deepcopy(REMOVE_BG_CONFIG)


@pytest.fixture
def upscaler_config() -> dict[str, Any]:
    return copy.deepcopy(UPSCALER_CONFIG)


@pytest.fixture
def remove_bg_descriptor(remove_bg_config):
    from taskbridge.tools.models import ToolDescriptor

    return ToolDescriptor.model_validate(remove_bg_config)


@pytest.fixture
def upscaler_descriptor(upscaler_config):
    from taskbridge.tools.models import ToolDescriptor

    return ToolDescriptor.model_validate(upscaler_config)


@pytest.fixture
def registry(remove_bg_config, upscaler_config):
    from taskbridge.tools.registry import ToolRegistry

    return ToolRegistry([remove_bg_config, upscaler_config])


@pytest.fixture
def api_settings():
    from taskbridge.api.client import TaskApiSettings

    return TaskApiSettings(server_host="api.example.com", api_key="test-key")
