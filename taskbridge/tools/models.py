"""Tool descriptor, task status and invocation result models.

Descriptors are parsed from the JSON/YAML tool configuration, so their fields
accept the camelCase keys used there (``apiEndpoint``, ``fieldValidation``,
...) as well as the Python attribute names. Request-body mapping entries are
normalized into FromInput / Static rules while the descriptor is parsed.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import ConfigDict, Field, field_validator, model_validator

from taskbridge.core.models import WireModel

LiteralValue = Union[str, int, float]


class PropertyConfig(WireModel):
    """JSON-schema property advertised to MCP clients."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    type: str
    description: str = ""
    validation: Optional[str] = None
    enum: Optional[list[LiteralValue]] = None


class InputSchema(WireModel):
    """Object schema of a tool's input."""

    type: Literal["object"] = "object"
    properties: dict[str, PropertyConfig] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class _ValidationRule(WireModel):
    error_message: str = Field(..., alias="errorMessage")


class StringValidation(_ValidationRule):
    """Accepts strings; with ``validation="url"`` the string must be an absolute URL."""

    type: Literal["string"]
    validation: Optional[Literal["url"]] = None


class NumberValidation(_ValidationRule):
    """Accepts ints and floats."""

    type: Literal["number"]


class UnionValidation(_ValidationRule):
    """Accepts exactly one of the configured literal values."""

    type: Literal["union"]
    values: list[LiteralValue] = Field(..., min_length=1)


FieldValidation = Annotated[
    Union[StringValidation, NumberValidation, UnionValidation],
    Field(discriminator="type"),
]


class FromInput(WireModel):
    """Copy the value of an input field into the outbound payload."""

    source: Literal["input"] = "input"
    value: str

    @property
    def field(self) -> str:
        return self.value


class Static(WireModel):
    """Copy a literal value into the outbound payload."""

    source: Literal["static"] = "static"
    value: Any


MappingRule = Annotated[Union[FromInput, Static], Field(discriminator="source")]


class ToolDescriptor(WireModel):
    """Identity and behaviour contract for one tool."""

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    api_endpoint: str = Field(..., min_length=1, alias="apiEndpoint")
    input_schema: InputSchema = Field(..., alias="inputSchema")
    request_body_mapping: dict[str, MappingRule] = Field(..., alias="requestBodyMapping")
    field_validation: dict[str, FieldValidation] = Field(..., alias="fieldValidation")
    default_values: dict[str, Any] = Field(default_factory=dict, alias="defaultValues")

    @model_validator(mode="before")
    @classmethod
    def _normalize_mapping(cls, data: Any) -> Any:
        """Turn plain-string mapping entries into FromInput / Static rules.

        A plain string naming a validated input field reads that field; any
        other plain string is a constant.
        A field-reading rule whose input is absent is left out of the payload
        rather than sending the field name.
        """
        if not isinstance(data, dict):
            return data
        mapping_key = "requestBodyMapping" if "requestBodyMapping" in data else "request_body_mapping"
        validation_key = "fieldValidation" if "fieldValidation" in data else "field_validation"
        mapping = data.get(mapping_key)
        if not isinstance(mapping, dict):
            return data

        known_fields = set(data.get(validation_key) or {})
        normalized: dict[str, Any] = {}
        for target, rule in mapping.items():
            if isinstance(rule, str):
                if rule in known_fields:
                    normalized[target] = {"source": "input", "value": rule}
                else:
                    normalized[target] = {"source": "static", "value": rule}
            else:
                normalized[target] = rule
        return {**data, mapping_key: normalized}

    def mapping_references(self) -> set[Any]:
        """Values named by the mapping rules (input fields and string constants)."""
        return {
            rule.value
            for rule in self.request_body_mapping.values()
            if isinstance(rule.value, str)
        }

    def is_required(self, field_name: str) -> bool:
        return field_name in self.input_schema.required


class ToolsConfig(WireModel):
    """Top-level document of a tool configuration file."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    tools: list[dict[str, Any]] = Field(default_factory=list)


class TaskStatus(str, Enum):
    """Lifecycle states of a remote task."""

    WAITING = "WAITING"
    PROCESSING = "PROCESSING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.FINISHED, TaskStatus.FAILED)


class TaskStatusRecord(WireModel):
    """Snapshot of remote task state, from a submission response or a stream event."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    task_id: Optional[str] = Field(default=None, alias="taskId")
    status: TaskStatus
    result_url: Optional[str] = Field(default=None, alias="imageUrl")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbUrl")
    duration_seconds: Optional[float] = Field(default=None, alias="duration")

    @field_validator("task_id", mode="before")
    @classmethod
    def _task_id_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class TextContent(WireModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationResult(WireModel):
    """The single caller-facing outcome of one tool invocation."""

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def success(cls, text: str) -> "ToolInvocationResult":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def failure(cls, text: str) -> "ToolInvocationResult":
        return cls(content=[TextContent(text=text)], is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(segment.text for segment in self.content)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
