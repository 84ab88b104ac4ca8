"""
descriptor.py

PURPOSE: Field descriptors that tell a language model what JSON to emit.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
A GuideDescriptor describes a single field: its wire type, a human
description, whether it may be omitted, and (for closed enumerations)
the literal values it accepts.

A "scheme" is a plain mapping of wire field name -> GuideDescriptor.
It is embedded in prompts as pretty-printed JSON with sorted keys so the
same type always produces the same prompt text.
"""

import json
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

# Wire type tags understood by the prompt format
STRING = "string"
INTEGER = "integer"
NUMBER = "number"
BOOLEAN = "boolean"


def array_of(item_type: str) -> str:
    """Return the wire type tag for a list of ``item_type`` values."""
    return f"array of {item_type}s"


class GuideDescriptor(BaseModel):
    """Describes one field of a generatable type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(..., min_length=1, description="Wire type tag")
    description: str = Field(..., description="What the field means")
    is_optional: bool = Field(default=False, alias="isOptional")
    valid_values: tuple[str, ...] | None = Field(default=None, alias="validValues")

    def to_json_dict(self) -> dict[str, object]:
        """Return the wire form; ``validValues`` only appears for enumerations."""
        data: dict[str, object] = {
            "type": self.type,
            "description": self.description,
            "isOptional": self.is_optional,
        }
        if self.valid_values is not None:
            data["validValues"] = list(self.valid_values)
        return data


Scheme = Mapping[str, GuideDescriptor]


def describe_scheme(scheme: Scheme) -> str:
    """Serialize a scheme as deterministic, pretty-printed JSON."""
    payload = {name: descriptor.to_json_dict() for name, descriptor in scheme.items()}
    return json.dumps(payload, indent=2, sort_keys=True)


def is_string_field(scheme: Scheme, key: str) -> bool:
    """True only when ``key`` is known and its wire type is exactly ``string``."""
    descriptor = scheme.get(key)
    return descriptor is not None and descriptor.type == STRING
