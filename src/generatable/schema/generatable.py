"""
generatable.py

PURPOSE: Base class for types a language model can be asked to produce.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
A Generatable is an ordinary pydantic model. Fields declared with guide()
carry a description and become part of the type's scheme (the descriptor
map embedded in prompts). The scheme is derived by introspecting the
model's fields, so there is no separate code generation step.

Decoding model output uses the model's own contract (model_validate_json).
Renamed fields (guide(..., name="trip_name")) are keyed by their wire name
in the scheme and accepted under either name when decoding.
"""

import types
from datetime import date, datetime, time
from enum import Enum
from typing import Any, ClassVar, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo

from generatable.schema.descriptor import (
    BOOLEAN,
    INTEGER,
    NUMBER,
    STRING,
    GuideDescriptor,
    Scheme,
    array_of,
    describe_scheme,
)

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)
_STRING_LIKE = (str, datetime, date, time, UUID)


def guide(
    description: str,
    *,
    name: str | None = None,
    default: Any = ...,
    default_factory: Any = None,
) -> Any:
    """
    Declare a field that is described to the language model.

    Args:
        description: Human readable meaning of the field.
        name: Wire name when it differs from the attribute name.
        default: Default value; omit for required fields.
        default_factory: Factory for mutable defaults such as lists.

    Returns:
        A pydantic FieldInfo.
    """
    if default_factory is not None:
        return Field(default_factory=default_factory, description=description, alias=name)
    return Field(default, description=description, alias=name)


def describe_annotation(annotation: Any) -> tuple[str, bool, tuple[str, ...] | None]:
    """
    Map a Python type annotation to (wire type, is optional, valid values).

    Unknown types fall back to ``string``.
    """
    origin = get_origin(annotation)

    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        present = [arg for arg in args if arg is not type(None)]
        if len(present) == 1:
            wire_type, _, values = describe_annotation(present[0])
            return wire_type, len(present) < len(args), values
        return STRING, len(present) < len(args), None

    if origin is Literal:
        return STRING, False, tuple(str(value) for value in get_args(annotation))

    if origin in _SEQUENCE_ORIGINS:
        args = [arg for arg in get_args(annotation) if arg is not Ellipsis]
        item_type, _, _ = describe_annotation(args[0]) if args else (STRING, False, None)
        return array_of(item_type), False, None

    if origin is None and isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return STRING, False, tuple(str(member.value) for member in annotation)
        # bool is a subclass of int, so it must be checked first
        if issubclass(annotation, bool):
            return BOOLEAN, False, None
        if issubclass(annotation, int):
            return INTEGER, False, None
        if issubclass(annotation, float):
            return NUMBER, False, None
        if issubclass(annotation, _STRING_LIKE):
            return STRING, False, None

    return STRING, False, None


def descriptor_for(info: FieldInfo) -> GuideDescriptor:
    """Build the descriptor for a guided pydantic field."""
    wire_type, is_optional, values = describe_annotation(info.annotation)
    return GuideDescriptor(
        type=wire_type,
        description=info.description or "",
        is_optional=is_optional,
        valid_values=values,
    )


class Generatable(BaseModel):
    """
    Base class for structured model output.

    Example:
        class TripPlan(Generatable):
            type_description: ClassVar[str] = "User trip plan"

            destination: Destination = guide("Country destination of user trip")
            duration: int = guide("Duration of user trip in days")
    """

    model_config = ConfigDict(populate_by_name=True)

    type_description: ClassVar[str] = ""

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        for name, info in cls.model_fields.items():
            if info.description is None and info.is_required():
                raise TypeError(
                    f"{cls.__name__}.{name} must either be declared with guide() "
                    "or have a default value"
                )

    @classmethod
    def scheme(cls) -> dict[str, GuideDescriptor]:
        """Return the descriptor map keyed by wire field name."""
        result: dict[str, GuideDescriptor] = {}
        for name, info in cls.model_fields.items():
            if info.description is None:
                continue
            result[info.alias or name] = descriptor_for(info)
        return result

    @classmethod
    def json_description(cls) -> str:
        """Return the scheme as sorted, pretty-printed JSON for prompts."""
        return describe_scheme(cls.scheme())


def scheme_for(target: type[BaseModel]) -> Scheme:
    """Return the scheme of ``target``, or an empty one for plain models."""
    if isinstance(target, type) and issubclass(target, Generatable):
        return target.scheme()
    return {}
