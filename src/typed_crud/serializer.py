"""Rendering of stored documents as transfer objects."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from bson import ObjectId

from typed_crud.classification import FieldKind
from typed_crud.documents import identity_of
from typed_crud.types import FieldDefinition, ModelTypeDefinition, SchemaTypeDefinition

VERSION_KEY = "__v"


class RecordSerializer:
    """Turns stored documents into wire-ready mappings.

    ``_id`` becomes a string ``id``, the version key is dropped, and each
    declared field is rendered by its kind. Rendering is pure: it reads only
    the document and the already-loaded related documents.
    """

    def __init__(self, version_key: str = VERSION_KEY) -> None:
        self.version_key = version_key

    def serialize(
        self,
        document: Mapping[str, Any],
        schema: SchemaTypeDefinition | None = None,
        populated: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Serialize one record.

        Args:
            document: Stored document.
            schema: Schema or model of the document; None renders value-wise.
            populated: Related documents keyed by reference field or virtual name.

        Returns:
            The transfer object.
        """
        populated = populated or {}
        result: dict[str, Any] = {}
        for key, value in document.items():
            if key in ("_id", self.version_key) or key in populated:
                continue
            field_def = schema.get_field(key) if schema is not None else None
            if field_def is None:
                result[key] = self.render_value(value)
            else:
                result[key] = self.render_field(field_def, value)

        for name, related in populated.items():
            result[name] = self._render_populated(schema, name, related)

        if "_id" in document:
            result["id"] = str(document["_id"])
        return result

    def render_field(self, field_def: FieldDefinition, value: Any) -> Any:
        """Render a declared field according to its kind."""
        if value is None:
            return None
        kind = field_def.kind
        if kind is FieldKind.EMBEDDED:
            if isinstance(value, Mapping):
                return self.serialize(value, field_def.target_schema)
            return self.render_value(value)
        if kind is FieldKind.EMBEDDED_ARRAY:
            schema = field_def.target_schema
            return [
                self.serialize(e, schema) if isinstance(e, Mapping) else self.render_value(e) for e in value
            ]
        if kind is FieldKind.REFERENCE_ARRAY:
            return [{"id": identity_of(e)} for e in value]
        if kind is FieldKind.REFERENCE:
            return identity_of(value)
        return self.render_value(value)

    def render_value(self, value: Any) -> Any:
        """Render a value without schema information."""
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Mapping):
            if "_id" in value:
                return self.serialize(value)
            return {k: self.render_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.render_value(v) for v in value]
        return value

    def _render_populated(self, schema: SchemaTypeDefinition | None, name: str, related: Any) -> Any:
        target: ModelTypeDefinition | None = None
        if schema is not None:
            field_def = schema.get_field(name)
            if field_def is not None:
                target = field_def.target_model
            elif isinstance(schema, ModelTypeDefinition):
                virtual = schema.get_virtual(name)
                target = virtual.target if virtual is not None else None
        if related is None:
            return None
        if isinstance(related, list):
            return [self.serialize(doc, target) for doc in related]
        return self.serialize(related, target)


_default_serializer = RecordSerializer()


def serialize_record(
    document: Mapping[str, Any],
    schema: SchemaTypeDefinition | None = None,
    populated: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Serialize a record with the default version key."""
    return _default_serializer.serialize(document, schema, populated)
