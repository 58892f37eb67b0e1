"""Execution of relationship mutations.

Every mutation is a read-modify-write of the whole record: load by id, edit
the collection in memory, then replace the stored document.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from typed_crud.diagnostics import CallResult, DiagnosticLog
from typed_crud.documents import (
    cast_embedded,
    cast_fields,
    identity_of,
    payload_identifier,
    to_object_id,
)
from typed_crud.errors import MalformedRequestError, NotFoundError
from typed_crud.operations import MutationAction, OperationDescriptor
from typed_crud.store import DocumentStore
from typed_crud.types import ModelTypeDefinition, SchemaTypeDefinition

logger = logging.getLogger(__name__)

Handler = Callable[[list, OperationDescriptor, Any, DiagnosticLog], None]


class MutationExecutor:
    """Applies synthesized relationship operations to records of one model."""

    def __init__(self, model: ModelTypeDefinition, store: DocumentStore) -> None:
        self.model = model
        self.store = store
        self._handlers: dict[MutationAction, Handler] = {
            MutationAction.PUSH: self._push,
            MutationAction.ADD_TO_SET: self._add_to_set,
            MutationAction.REMOVE: self._remove,
            MutationAction.REPLACE: self._replace,
            MutationAction.UPDATE: self._update,
            MutationAction.ADD: self._add,
            MutationAction.REMOVE_SINGLE: self._remove_single,
        }

    def execute(self, descriptor: OperationDescriptor, request: Any) -> CallResult:
        """Run one operation against the record named by ``request["id"]``.

        Args:
            descriptor: The synthesized operation.
            request: ``{"id": <record id>, <payload key>: <payload>}``.

        Returns:
            A CallResult with an empty response and any diagnostics.

        Raises:
            MalformedRequestError: If the envelope or an identifier is invalid.
            NotFoundError: If the record does not exist.
        """
        record_id, payload = self.unpack(descriptor, request)
        if descriptor.batch:
            payload = self._as_batch(payload)
        elif isinstance(payload, list):
            raise MalformedRequestError(
                f"'{descriptor.name}' takes a single element under '{descriptor.payload_key}'"
            )

        document = self.store.find_by_id(self.model, record_id)
        if document is None:
            raise NotFoundError()

        elements = document.get(descriptor.field_name)
        if not isinstance(elements, list):
            elements = []
            document[descriptor.field_name] = elements

        diagnostics = DiagnosticLog()
        self._handlers[descriptor.action](elements, descriptor, payload, diagnostics)
        self.store.save(self.model, document)
        logger.debug("%s applied to %s %s", descriptor.name, self.model.name, record_id)
        return CallResult(response={}, diagnostics=diagnostics.entries)

    @staticmethod
    def unpack(descriptor: OperationDescriptor, request: Any) -> tuple[Any, Any]:
        """Validate the request envelope and return (record id, payload)."""
        if not isinstance(request, Mapping):
            raise MalformedRequestError(f"'{descriptor.name}' expects an object request")
        unexpected = sorted(key for key in request if key not in ("id", descriptor.payload_key))
        if unexpected:
            raise MalformedRequestError(
                f"'{descriptor.name}' takes '{descriptor.payload_key}', got unexpected {unexpected}"
            )
        if descriptor.payload_key not in request:
            raise MalformedRequestError(f"'{descriptor.name}' requires '{descriptor.payload_key}'")
        return to_object_id(request.get("id")), request[descriptor.payload_key]

    @staticmethod
    def _as_batch(payload: Any) -> list[Any]:
        if payload is None:
            return []
        if isinstance(payload, (list, tuple)):
            return list(payload)
        return [payload]

    def _schema_of(self, descriptor: OperationDescriptor) -> SchemaTypeDefinition:
        return self.model.get_field(descriptor.field_name).target_schema  # type: ignore[union-attr,return-value]

    def _element(self, descriptor: OperationDescriptor, item: Any) -> Any:
        """Cast one payload item into a stored collection member."""
        if descriptor.is_embedded:
            return cast_embedded(self._schema_of(descriptor), item)
        return to_object_id(item, f"{descriptor.singular_name} id")

    @staticmethod
    def _label(descriptor: OperationDescriptor) -> str:
        return "child" if descriptor.is_embedded else "related model"

    def _push(self, elements: list, descriptor: OperationDescriptor, items: list, diagnostics: DiagnosticLog) -> None:
        for item in items:
            elements.append(self._element(descriptor, item))

    def _add_to_set(
        self, elements: list, descriptor: OperationDescriptor, items: list, diagnostics: DiagnosticLog
    ) -> None:
        present = {identity_of(e) for e in elements}
        for item in items:
            element = self._element(descriptor, item)
            identity = identity_of(element)
            if identity in present:
                continue
            present.add(identity)
            elements.append(element)

    def _replace(
        self, elements: list, descriptor: OperationDescriptor, items: list, diagnostics: DiagnosticLog
    ) -> None:
        replacement = [self._element(descriptor, item) for item in items]
        elements[:] = replacement

    def _update(self, elements: list, descriptor: OperationDescriptor, items: list, diagnostics: DiagnosticLog) -> None:
        schema = self._schema_of(descriptor)
        for item in items:
            if not isinstance(item, Mapping):
                raise MalformedRequestError(f"'{descriptor.name}' elements must be objects")
            target = payload_identifier(item)
            element = next((e for e in elements if identity_of(e) == target), None)
            if element is None:
                diagnostics.missing_element(self._label(descriptor), target, descriptor.field_name)
                continue
            element.update(cast_fields(schema, item, diagnostics))

    def _remove(self, elements: list, descriptor: OperationDescriptor, items: list, diagnostics: DiagnosticLog) -> None:
        for item in items:
            self._remove_one(elements, descriptor, item, diagnostics)

    def _add(self, elements: list, descriptor: OperationDescriptor, item: Any, diagnostics: DiagnosticLog) -> None:
        elements.append(self._element(descriptor, item))

    def _remove_single(
        self, elements: list, descriptor: OperationDescriptor, item: Any, diagnostics: DiagnosticLog
    ) -> None:
        self._remove_one(elements, descriptor, item, diagnostics)

    def _remove_one(
        self, elements: list, descriptor: OperationDescriptor, item: Any, diagnostics: DiagnosticLog
    ) -> None:
        target = payload_identifier(item)
        remaining = [e for e in elements if identity_of(e) != target]
        if len(remaining) == len(elements):
            diagnostics.missing_element(self._label(descriptor), target, descriptor.field_name)
            return
        elements[:] = remaining
