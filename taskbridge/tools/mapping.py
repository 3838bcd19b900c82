"""Build outbound task-submission payloads from validated tool input."""

import logging
from typing import Any, Mapping

from .models import FromInput, Static, ToolDescriptor

logger = logging.getLogger(__name__)

PROVENANCE_FIELD = "source"
PROVENANCE_VALUE = "mcp"


def apply_defaults(descriptor: ToolDescriptor, validated_input: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of the input with configured defaults filled in for absent fields."""
    working = dict(validated_input)
    for key, default in descriptor.default_values.items():
        if working.get(key) is None:
            working[key] = default
    return working


def build_request_body(
    descriptor: ToolDescriptor,
    validated_input: Mapping[str, Any],
    source: str = PROVENANCE_VALUE,
) -> dict[str, Any]:
    """Map validated input onto the tool's outbound payload.

    Defaults are applied first, then each mapping rule is resolved in
    declaration order. A FromInput rule whose field has no value is left
    out. The provenance field is always added last.
    """
    working = apply_defaults(descriptor, validated_input)

    body: dict[str, Any] = {}
    for target, rule in descriptor.request_body_mapping.items():
        if isinstance(rule, FromInput):
            if working.get(rule.field) is not None:
                body[target] = working[rule.field]
            else:
                logger.debug(f"{descriptor.name}: no value for {rule.field}, omitting {target}")
        elif isinstance(rule, Static):
            body[target] = rule.value

    body[PROVENANCE_FIELD] = source
    return body
