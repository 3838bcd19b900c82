"""Strict Pydantic base models shared across taskbridge.

Internal records (task status snapshots, error contexts, provider settings)
derive from these so that malformed data fails at the boundary instead of
leaking into the dispatch path.
"""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Immutable model with strict validation.

    It enforces:
    - strict=True: no type coercion, inputs must match exact types
    - extra="forbid": unknown fields are rejected
    - validate_assignment=True: assignments are validated
    - frozen=True: instances cannot be mutated after creation
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        validate_assignment=True,
        frozen=True,
        validate_default=True,
        use_enum_values=False,
        arbitrary_types_allowed=False,
    )


class WireModel(BaseModel):
    """Immutable model for data that arrives as JSON from outside the process.

    Tool configuration files and remote API payloads use camelCase keys and
    JSON scalar types, so coercion of strings into enums is allowed and
    fields may be populated by alias or by attribute name.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        use_enum_values=False,
    )


__all__ = [
    "StrictBaseModel",
    "WireModel",
]
