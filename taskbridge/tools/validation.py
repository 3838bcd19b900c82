"""Compile field-validation rules into reusable input validators.

Each tool descriptor is compiled once, when its executor is created. The
compiled InputValidator is then applied to every invocation's raw input.
"""

import logging
import math
from typing import Any, Callable, Mapping, Optional

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from taskbridge.core.errors.errors import ConfigurationError, ErrorContext, ValidationError
from taskbridge.core.errors.models import ConfigurationErrorContext, ValidationErrorDetail

from .models import NumberValidation, StringValidation, ToolDescriptor, UnionValidation

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)

Check = Callable[[Any], bool]


def _is_absent(value: Any) -> bool:
    return value is None


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def _literal_matches(value: Any, literal: Any) -> bool:
    if _is_number(literal):
        return _is_number(value) and value == literal
    return type(value) is type(literal) and value == literal


class FieldValidator:
    """Validator for one input field.

    Attributes:
        name: Input field name
        required: Whether an absent value is rejected
        message: Message reported when the value is rejected
    """

    def __init__(self, name: str, check: Check, message: str, required: bool, kind: str):
        self.name = name
        self.required = required
        self.message = message
        self.kind = kind
        self._check = check

    def __call__(self, value: Any, tool_name: str = "") -> Any:
        """Return the value if it is acceptable.

        Raises:
            ValidationError: With the configured message
        """
        if _is_absent(value):
            if self.required:
                raise self._error(tool_name, "missing")
            return None
        if not self._check(value):
            raise self._error(tool_name, self.kind)
        return value

    def _error(self, tool_name: str, error_type: str) -> ValidationError:
        return ValidationError(
            message=self.message,
            validation_errors=[
                ValidationErrorDetail(location=self.name, message=self.message, error_type=error_type)
            ],
            context=ErrorContext.create(
                tool_name=tool_name or "*",
                error_type="ValidationError",
                error_location="FieldValidator.__call__",
                component="validator",
                operation="validate_input",
            ),
        )

    def __repr__(self) -> str:
        return f"FieldValidator(name={self.name!r}, kind={self.kind!r}, required={self.required})"


def compile_field(name: str, rule: Any, required: bool, tool_name: str = "*") -> FieldValidator:
    """Compile one field-validation rule.

    Raises:
        ConfigurationError: If the rule kind is not supported
    """
    if isinstance(rule, StringValidation):
        if rule.validation == "url":
            return FieldValidator(name, _is_url, rule.error_message, required, "url")
        return FieldValidator(name, _is_string, rule.error_message, required, "string")

    if isinstance(rule, NumberValidation):
        return FieldValidator(name, _is_number, rule.error_message, required, "number")

    if isinstance(rule, UnionValidation):
        literals = tuple(rule.values)
        return FieldValidator(
            name,
            lambda value: any(_literal_matches(value, literal) for literal in literals),
            rule.error_message,
            required,
            "union",
        )

    raise ConfigurationError(
        message=f"Unsupported validation type for field {name}: {type(rule).__name__}",
        context=ErrorContext.create(
            tool_name=tool_name,
            error_type="ConfigurationError",
            error_location="compile_field",
            component="validator",
            operation="compile",
        ),
        config_context=ConfigurationErrorContext(
            config_key=f"fieldValidation.{name}",
            config_section="tools",
            expected_type="string | number | union",
            actual_value=repr(rule),
        ),
    )


class InputValidator:
    """All compiled field validators of one tool."""

    def __init__(self, tool_name: str, validators: list[FieldValidator]):
        self.tool_name = tool_name
        self.validators = validators

    def __iter__(self):
        return iter(self.validators)

    def __len__(self) -> int:
        return len(self.validators)

    def field(self, name: str) -> Optional[FieldValidator]:
        for validator in self.validators:
            if validator.name == name:
                return validator
        return None

    def validate(self, raw_input: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """Validate raw input, keeping only recognized, provided fields.

        Raises:
            ValidationError: On the first field that fails
        """
        raw_input = raw_input or {}
        validated: dict[str, Any] = {}
        for validator in self.validators:
            value = validator(raw_input.get(validator.name), self.tool_name)
            if value is not None:
                validated[validator.name] = value

        ignored = set(raw_input) - set(validated) - {v.name for v in self.validators}
        if ignored:
            logger.debug(f"Ignoring unrecognized input fields for {self.tool_name}: {sorted(ignored)}")
        return validated


def compile_descriptor(descriptor: ToolDescriptor) -> InputValidator:
    """Compile every field validation of a descriptor."""
    validators = [
        compile_field(name, rule, descriptor.is_required(name), descriptor.name)
        for name, rule in descriptor.field_validation.items()
    ]
    return InputValidator(descriptor.name, validators)


def validate_input(descriptor: ToolDescriptor, raw_input: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Compile and apply a descriptor's validators in one step."""
    return compile_descriptor(descriptor).validate(raw_input)


def build_input_schema(descriptor: ToolDescriptor) -> dict[str, Any]:
    """JSON schema advertised to MCP clients for a tool's input."""
    schema = descriptor.input_schema.model_dump(by_alias=True, exclude_none=True)
    properties = schema.setdefault("properties", {})
    for name, rule in descriptor.field_validation.items():
        prop = properties.setdefault(name, {})
        if isinstance(rule, StringValidation):
            prop.setdefault("type", "string")
            if rule.validation == "url":
                prop.setdefault("format", "uri")
        elif isinstance(rule, NumberValidation):
            prop.setdefault("type", "number")
        elif isinstance(rule, UnionValidation):
            prop.setdefault("enum", list(rule.values))
    return schema
