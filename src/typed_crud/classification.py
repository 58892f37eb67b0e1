"""Field classification.

Every field of a record type falls in exactly one of five kinds. The kind
decides which relationship operations are synthesized for the field and how
its stored value is cast and rendered.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typed_crud.types import FieldDefinition, TypeDefinition


class FieldKind(Enum):
    """Structural kind of a field."""

    SCALAR = "scalar"
    EMBEDDED = "embedded"
    REFERENCE = "reference"
    EMBEDDED_ARRAY = "embedded_array"
    REFERENCE_ARRAY = "reference_array"

    @property
    def is_collection(self) -> bool:
        """Whether relationship operations are synthesized for this kind."""
        return self in (FieldKind.EMBEDDED_ARRAY, FieldKind.REFERENCE_ARRAY)


def classify_type(type_def: TypeDefinition) -> FieldKind:
    """Classify a field type, resolving aliases first.

    Arrays of primitives (``string[]``) and anything unrecognized are SCALAR.
    """
    base = type_def.resolve_base_type()
    if base.is_array:
        element = base.element_type.resolve_base_type()  # type: ignore[attr-defined]
        if element.is_schema:
            return FieldKind.EMBEDDED_ARRAY
        if element.is_reference:
            return FieldKind.REFERENCE_ARRAY
        return FieldKind.SCALAR
    if base.is_schema:
        return FieldKind.EMBEDDED
    if base.is_reference:
        return FieldKind.REFERENCE
    return FieldKind.SCALAR


def classify_field(field_def: FieldDefinition) -> FieldKind:
    """Classify a field descriptor."""
    return classify_type(field_def.type_def)
