"""
builder.py

PURPOSE: Hand-written construction of descriptor maps.
DEPENDENCIES: None (pure Python + descriptor models)

ARCHITECTURE NOTES:
Types that are not Generatable subclasses (or that need a scheme differing
from their fields) can describe themselves explicitly:

    scheme = (
        SchemeBuilder()
        .add_property("name", STRING, "Full name")
        .add_optional_property("nickname", STRING, "Preferred name")
        .add_array_property("tags", STRING, "Free-form tags")
        .build()
    )
"""

from collections.abc import Iterable

from generatable.schema.descriptor import STRING, GuideDescriptor, array_of


class SchemeBuilder:
    """Accumulates GuideDescriptors keyed by wire field name."""

    def __init__(self) -> None:
        self._descriptors: dict[str, GuideDescriptor] = {}

    def _add(self, name: str, descriptor: GuideDescriptor) -> "SchemeBuilder":
        if name in self._descriptors:
            raise ValueError(f"Duplicate property in scheme: '{name}'")
        self._descriptors[name] = descriptor
        return self

    def add_property(self, name: str, type_: str, description: str) -> "SchemeBuilder":
        """Add a required scalar property."""
        return self._add(name, GuideDescriptor(type=type_, description=description))

    def add_optional_property(
        self, name: str, type_: str, description: str
    ) -> "SchemeBuilder":
        """Add a property the model may omit."""
        return self._add(
            name,
            GuideDescriptor(type=type_, description=description, is_optional=True),
        )

    def add_array_property(
        self,
        name: str,
        item_type: str,
        description: str,
        optional: bool = False,
    ) -> "SchemeBuilder":
        """Add a list property whose items have ``item_type``."""
        return self._add(
            name,
            GuideDescriptor(
                type=array_of(item_type),
                description=description,
                is_optional=optional,
            ),
        )

    def add_enum_property(
        self,
        name: str,
        values: Iterable[str],
        description: str,
        optional: bool = False,
    ) -> "SchemeBuilder":
        """Add a string property restricted to a closed set of literals."""
        valid_values = tuple(values)
        if not valid_values:
            raise ValueError(f"Enumeration property '{name}' needs at least one value")
        return self._add(
            name,
            GuideDescriptor(
                type=STRING,
                description=description,
                is_optional=optional,
                valid_values=valid_values,
            ),
        )

    def build(self) -> dict[str, GuideDescriptor]:
        """Return a copy of the accumulated scheme."""
        return dict(self._descriptors)
