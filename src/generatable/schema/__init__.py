"""Schema description for generatable types."""

from generatable.schema.builder import SchemeBuilder
from generatable.schema.descriptor import (
    BOOLEAN,
    INTEGER,
    NUMBER,
    STRING,
    GuideDescriptor,
    Scheme,
    array_of,
    describe_scheme,
    is_string_field,
)
from generatable.schema.generatable import Generatable, guide, scheme_for

__all__ = [
    "BOOLEAN",
    "Generatable",
    "GuideDescriptor",
    "INTEGER",
    "NUMBER",
    "STRING",
    "Scheme",
    "SchemeBuilder",
    "array_of",
    "describe_scheme",
    "guide",
    "is_string_field",
    "scheme_for",
]
