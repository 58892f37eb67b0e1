"""Casting request payloads into store documents.

Payloads arrive as decoded wire mappings: identifiers are hex strings (or
``{"id": ...}`` stubs), dates are ISO-8601 strings and embedded elements carry
an optional ``id``. Stored documents use ``ObjectId``, ``datetime`` and ``_id``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from bson import ObjectId

from typed_crud.classification import FieldKind
from typed_crud.diagnostics import DiagnosticLog
from typed_crud.errors import MalformedRequestError
from typed_crud.types import (
    RESERVED_FIELD_NAMES,
    FieldDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    SchemaTypeDefinition,
    TypeDefinition,
)


def to_object_id(value: Any, what: str = "id") -> ObjectId:
    """Cast an identifier given as ObjectId, hex string or ``{"id": ...}``."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, Mapping) and "id" in value:
        value = value["id"]
        if isinstance(value, ObjectId):
            return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise MalformedRequestError(f"Invalid {what} '{value}'")


def identity_of(element: Any) -> str:
    """String identity of a stored collection member.

    Embedded elements are identified by their ``_id``; reference members are
    the identifier itself.
    """
    if isinstance(element, Mapping):
        return str(element.get("_id"))
    return str(element)


def payload_identifier(item: Any) -> str | None:
    """Identifier named by a payload item: its ``id`` or the bare value."""
    if isinstance(item, Mapping):
        value = item.get("id")
        return None if value is None else str(value)
    if isinstance(item, (str, ObjectId)):
        return str(item)
    return None


def parse_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise MalformedRequestError(f"Invalid date '{value}'")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise MalformedRequestError(f"Invalid date '{value}'") from exc


def parse_number(value: Any) -> int | float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            pass
    raise MalformedRequestError(f"Invalid number '{value}'")


def parse_integer(value: Any) -> int:
    number = parse_number(value)
    if isinstance(number, float):
        if not number.is_integer():
            raise MalformedRequestError(f"Invalid integer '{value}'")
        return int(number)
    return number


# Boolean spellings accepted from wire payloads
TRUE_VALUES = frozenset(["true", "1", "yes"])
FALSE_VALUES = frozenset(["false", "0", "no"])


def parse_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)):
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
    raise MalformedRequestError(f"Invalid boolean '{value}'")


def parse_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise MalformedRequestError(f"Invalid string '{value}'")


_PRIMITIVE_CASTS = {
    PrimitiveType.STRING: parse_string,
    PrimitiveType.NUMBER: parse_number,
    PrimitiveType.INTEGER: parse_integer,
    PrimitiveType.BOOLEAN: parse_boolean,
    PrimitiveType.DATE: parse_date,
    PrimitiveType.OBJECTID: to_object_id,
}


def cast_scalar(type_def: TypeDefinition, value: Any) -> Any:
    """Cast one scalar value for its primitive type.

    ``mixed`` values and non-primitive types pass through unchanged.

    Raises:
        MalformedRequestError: If the value cannot be read as the declared type.
    """
    base_type = type_def.resolve_base_type()
    if value is None or not isinstance(base_type, PrimitiveTypeDefinition):
        return value
    cast = _PRIMITIVE_CASTS.get(base_type.primitive)
    return value if cast is None else cast(value)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def cast_value(field_def: FieldDefinition, value: Any) -> Any:
    """Cast a payload value for storage in ``field_def``."""
    if value is None:
        return None
    kind = field_def.kind
    if kind is FieldKind.EMBEDDED:
        return cast_embedded(field_def.target_schema, value)  # type: ignore[arg-type]
    if kind is FieldKind.EMBEDDED_ARRAY:
        return [cast_embedded(field_def.target_schema, item) for item in _as_list(value)]  # type: ignore[arg-type]
    if kind is FieldKind.REFERENCE:
        return to_object_id(value, f"{field_def.name} id")
    if kind is FieldKind.REFERENCE_ARRAY:
        return [to_object_id(item, f"{field_def.name} id") for item in _as_list(value)]
    if field_def.type_def.resolve_base_type().is_array:
        return [cast_scalar(field_def.element_type, item) for item in _as_list(value)]
    return cast_scalar(field_def.element_type, value)


def cast_fields(
    schema: SchemaTypeDefinition,
    payload: Mapping[str, Any],
    diagnostics: DiagnosticLog | None = None,
    strict: bool = True,
) -> dict[str, Any]:
    """Cast the declared fields present in ``payload``.

    ``id``/``_id`` are skipped. Undeclared keys are dropped (reported on
    ``diagnostics`` when given) unless ``strict`` is off, in which case they
    are stored verbatim.
    """
    document: dict[str, Any] = {}
    for key, value in payload.items():
        if key in RESERVED_FIELD_NAMES:
            continue
        field_def = schema.get_field(key)
        if field_def is None:
            if diagnostics is not None:
                diagnostics.unknown_field(key)
            if not strict:
                document[key] = value
            continue
        document[key] = cast_value(field_def, value)
    return document


def cast_embedded(schema: SchemaTypeDefinition, payload: Any) -> dict[str, Any]:
    """Cast an embedded element, assigning its ``_id``.

    A non-empty client ``id`` becomes the element's ``_id``; otherwise a fresh
    ObjectId is generated.
    """
    if not isinstance(payload, Mapping):
        raise MalformedRequestError(f"Expected an object for '{schema.name}', got '{payload}'")
    if payload.get("_id") is not None:
        element_id = to_object_id(payload["_id"])
    elif payload.get("id"):
        element_id = to_object_id(payload["id"])
    else:
        element_id = ObjectId()
    element = {"_id": element_id}
    element.update(cast_fields(schema, payload))
    return element
