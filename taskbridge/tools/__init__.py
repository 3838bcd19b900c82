"""Tool descriptors, their registry, and input validation and mapping.

The executor lives in ``taskbridge.tools.executor`` and is not imported here,
since it depends on the API client which itself depends on this package.
"""

from .mapping import PROVENANCE_FIELD, PROVENANCE_VALUE, apply_defaults, build_request_body
from .models import (
    FromInput,
    InputSchema,
    NumberValidation,
    Static,
    StringValidation,
    TaskStatus,
    TaskStatusRecord,
    ToolDescriptor,
    ToolInvocationResult,
    UnionValidation,
)
from .registry import ToolRegistry, check_descriptor, load_tool_configs, parse_descriptor
from .validation import (
    FieldValidator,
    InputValidator,
    build_input_schema,
    compile_descriptor,
    compile_field,
    validate_input,
)

__all__ = [
    "PROVENANCE_FIELD",
    "PROVENANCE_VALUE",
    "FieldValidator",
    "FromInput",
    "InputSchema",
    "InputValidator",
    "NumberValidation",
    "Static",
    "StringValidation",
    "TaskStatus",
    "TaskStatusRecord",
    "ToolDescriptor",
    "ToolInvocationResult",
    "ToolRegistry",
    "UnionValidation",
    "apply_defaults",
    "build_input_schema",
    "build_request_body",
    "check_descriptor",
    "compile_descriptor",
    "compile_field",
    "load_tool_configs",
    "parse_descriptor",
    "validate_input",
]
