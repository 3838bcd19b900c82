"""Registry that holds tool descriptors and validates their integrity."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from taskbridge.core.errors.errors import ConfigurationError, ErrorContext
from taskbridge.core.errors.models import ConfigurationErrorContext

from .models import ToolDescriptor, ToolsConfig

logger = logging.getLogger(__name__)

DescriptorInput = Union[ToolDescriptor, dict[str, Any]]


def _config_error(
    message: str,
    tool_name: str,
    operation: str,
    config_key: str,
    expected_type: str = "ToolDescriptor",
    actual_value: str = "",
    cause: Optional[Exception] = None,
) -> ConfigurationError:
    return ConfigurationError(
        message=message,
        context=ErrorContext.create(
            tool_name=tool_name,
            error_type="ConfigurationError",
            error_location=f"ToolRegistry.{operation}",
            component="tool_registry",
            operation=operation,
        ),
        config_context=ConfigurationErrorContext(
            config_key=config_key,
            config_section="tools",
            expected_type=expected_type,
            actual_value=actual_value,
        ),
        cause=cause,
    )


def parse_descriptor(raw: DescriptorInput) -> ToolDescriptor:
    """Parse a raw tool configuration into a ToolDescriptor.

    Raises:
        ConfigurationError: If a structurally required field is missing or a
            field has an unsupported shape (e.g. unknown validation type)
    """
    if isinstance(raw, ToolDescriptor):
        return raw

    tool_name = str(raw.get("name", "<unnamed>")) if isinstance(raw, dict) else "<unnamed>"
    try:
        return ToolDescriptor.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        if first["type"] == "missing":
            message = f"Tool config missing required field: {location}"
        elif first["type"] == "union_tag_invalid":
            message = f"Unsupported validation type at {location} in tool {tool_name}"
        else:
            message = f"Invalid tool config field {location} in tool {tool_name}: {first['msg']}"
        raise _config_error(message, tool_name, "parse_descriptor", location, cause=e) from e


def check_descriptor(descriptor: ToolDescriptor) -> None:
    """Check the cross-reference invariants of a descriptor.

    Every required input field must have a field validation entry; every
    default value must have a field validation entry and be referenced by
    the request body mapping.

    Raises:
        ConfigurationError: On the first violation found
    """
    for required_field in descriptor.input_schema.required:
        if required_field not in descriptor.field_validation:
            raise _config_error(
                f"Required field {required_field} missing fieldValidation in tool {descriptor.name}",
                descriptor.name,
                "check_descriptor",
                f"inputSchema.required.{required_field}",
            )

    references = descriptor.mapping_references()
    for default_field in descriptor.default_values:
        if default_field not in descriptor.field_validation:
            raise _config_error(
                f"Default value field {default_field} missing fieldValidation in tool {descriptor.name}",
                descriptor.name,
                "check_descriptor",
                f"defaultValues.{default_field}",
            )
        if default_field not in descriptor.request_body_mapping and default_field not in references:
            raise _config_error(
                f"Default value field {default_field} not found in requestBodyMapping for tool {descriptor.name}",
                descriptor.name,
                "check_descriptor",
                f"defaultValues.{default_field}",
            )


def load_tool_configs(path: Union[str, Path]) -> list[dict[str, Any]]:
    """Read the raw tool entries of a ``{"tools": [...]}`` JSON or YAML file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            document = yaml.safe_load(text) or {}
        else:
            document = json.loads(text)
        config = ToolsConfig.model_validate(document)
    except (OSError, ValueError, yaml.YAMLError, PydanticValidationError) as e:
        raise _config_error(
            f"Failed to load tool configuration from {path}: {e}",
            "*",
            "load_tool_configs",
            str(path),
            expected_type="ToolsConfig",
            cause=e,
        ) from e

    logger.debug(f"Loaded {len(config.tools)} tool entries from {path}")
    return config.tools


class ToolRegistry:
    """In-memory collection of tool descriptors keyed by name.

    Created once at startup and shared by every invocation. Reads and
    mutations are serialized by a single lock; descriptors are immutable, so
    a reader always sees a whole descriptor.
    """

    def __init__(self, descriptors: Optional[Iterable[DescriptorInput]] = None):
        self._tools: dict[str, ToolDescriptor] = {}
        self._lock = threading.RLock()
        for raw in descriptors or ():
            self.register(raw)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ToolRegistry":
        """Build a registry from a tool configuration file."""
        registry = cls(load_tool_configs(path))
        logger.info(f"Tool registry loaded {len(registry)} tools from {path}")
        return registry

    def validate_descriptor(self, descriptor: DescriptorInput) -> ToolDescriptor:
        """Parse and check a descriptor without registering it."""
        parsed = parse_descriptor(descriptor)
        check_descriptor(parsed)
        return parsed

    def register(self, descriptor: DescriptorInput) -> ToolDescriptor:
        """Add a new tool.

        Raises:
            ConfigurationError: If the descriptor is invalid or the name is taken
        """
        parsed = self.validate_descriptor(descriptor)
        with self._lock:
            if parsed.name in self._tools:
                raise _config_error(
                    f"Tool {parsed.name} already exists", parsed.name, "register", "name", actual_value=parsed.name
                )
            self._tools[parsed.name] = parsed
        logger.debug(f"Registered tool config: {parsed.name}")
        return parsed

    def update(self, name: str, descriptor: DescriptorInput) -> ToolDescriptor:
        """Replace the descriptor registered under ``name``.

        Raises:
            ConfigurationError: If ``name`` is unknown or the descriptor is invalid
        """
        parsed = self.validate_descriptor(descriptor)
        with self._lock:
            if name not in self._tools:
                raise _config_error(f"Tool {name} not found", name, "update", "name", actual_value=name)
            if parsed.name != name:
                if parsed.name in self._tools:
                    raise _config_error(
                        f"Tool {parsed.name} already exists", parsed.name, "update", "name", actual_value=parsed.name
                    )
                # keep registration order when renaming
                self._tools = {
                    (parsed.name if key == name else key): (parsed if key == name else value)
                    for key, value in self._tools.items()
                }
            else:
                self._tools[name] = parsed
        logger.debug(f"Updated tool config: {name}")
        return parsed

    def remove(self, name: str) -> bool:
        with self._lock:
            removed = self._tools.pop(name, None) is not None
        if removed:
            logger.debug(f"Removed tool config: {name}")
        return removed

    def get(self, name: str) -> Optional[ToolDescriptor]:
        with self._lock:
            return self._tools.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._tools

    def names(self) -> list[str]:
        with self._lock:
            return list(self._tools)

    def all(self) -> list[ToolDescriptor]:
        """Return all descriptors in registration order."""
        with self._lock:
            return list(self._tools.values())

    def validate_all(self) -> bool:
        """Re-check every descriptor, stopping at the first violation.

        Raises:
            ConfigurationError: On the first invalid descriptor
        """
        for descriptor in self.all():
            check_descriptor(descriptor)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)
