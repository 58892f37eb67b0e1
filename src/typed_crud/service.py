"""CRUD and relationship service for one record type."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from typed_crud.diagnostics import CallResult, DiagnosticLog
from typed_crud.documents import cast_fields, cast_value, to_object_id
from typed_crud.errors import MalformedRequestError, NotConnectedError, NotFoundError, UnknownOperationError
from typed_crud.mutations import MutationExecutor
from typed_crud.operations import OperationDescriptor, synthesize_operations
from typed_crud.population import Populator
from typed_crud.query import ListQuery, QueryTranslator
from typed_crud.serializer import VERSION_KEY, RecordSerializer
from typed_crud.store import DocumentStore
from typed_crud.types import ModelTypeDefinition

logger = logging.getLogger(__name__)

CORE_OPERATIONS = ("insert", "update", "delete", "get", "list")

Operation = Callable[[Any], CallResult]


@dataclass(frozen=True)
class ServiceConfig:
    """Behaviour switches for a CrudService.

    Attributes:
        check_connection: Refuse to build a service over an unhealthy store.
        version_key: Store bookkeeping key dropped from transfer objects.
        strict: Drop undeclared keys on insert (reported as diagnostics);
            when off they are stored verbatim.
    """

    check_connection: bool = True
    version_key: str = VERSION_KEY
    strict: bool = True


class CrudService:
    """Core CRUD methods plus the synthesized relationship operations of a model.

    Synthesized operations are owned by the instance: they are reachable via
    ``service.operations[name]``, as attributes (``service.pushChildren``) and
    through :meth:`dispatch`.
    """

    def __init__(
        self, model: ModelTypeDefinition, store: DocumentStore, config: ServiceConfig | None = None
    ) -> None:
        """Initialize the service.

        Args:
            model: Record type served.
            store: Document store holding the model's collection.
            config: Behaviour switches; defaults to ServiceConfig().

        Raises:
            NotConnectedError: If the store fails its health check.
            SchemaError: If the model's operation names collide.
        """
        self.config = config or ServiceConfig()
        if self.config.check_connection and not store.is_connected():
            raise NotConnectedError()

        self.model = model
        self.store = store
        self.serializer = RecordSerializer(version_key=self.config.version_key)
        self.translator = QueryTranslator(model)
        self.populator = Populator(store)
        self.executor = MutationExecutor(model, store)
        self.descriptors: dict[str, OperationDescriptor] = synthesize_operations(model)
        self.operations: dict[str, Operation] = {
            name: self._bind(descriptor) for name, descriptor in self.descriptors.items()
        }

    def _bind(self, descriptor: OperationDescriptor) -> Operation:
        def operation(request: Any) -> CallResult:
            return self.executor.execute(descriptor, request)

        operation.__name__ = descriptor.name
        operation.__doc__ = f"{descriptor.action.name} on '{descriptor.field_name}' of {self.model.name}."
        return operation

    def __getattr__(self, name: str) -> Operation:
        operations = self.__dict__.get("operations")
        if operations is not None and name in operations:
            return operations[name]
        raise UnknownOperationError(f"'{type(self).__name__}' has no operation '{name}'")

    def dispatch(self, name: str, request: Any) -> CallResult:
        """Route a method name to a core method or a synthesized operation."""
        if name in CORE_OPERATIONS:
            return getattr(self, name)(request)
        operation = self.operations.get(name)
        if operation is None:
            raise UnknownOperationError(f"Unknown operation '{name}' for {self.model.name}")
        return operation(request)

    def insert(self, request: Any) -> CallResult:
        """Create a record from the request mapping and return it serialized."""
        payload = self._require_mapping(request, "insert")
        diagnostics = DiagnosticLog()
        document = cast_fields(self.model, payload, diagnostics, strict=self.config.strict)
        stored = self.store.insert(self.model, document)
        logger.debug("Inserted %s %s", self.model.name, stored["_id"])
        return CallResult(self.serializer.serialize(stored, self.model), diagnostics.entries)

    def update(self, request: Any) -> CallResult:
        """Copy the named ``fields`` from ``data`` onto the record.

        A name listed in ``fields`` but missing from ``data`` unsets the field.
        """
        payload = self._require_mapping(request, "update")
        record_id = to_object_id(payload.get("id"))
        fields = payload.get("fields") or []
        data = payload.get("data") or {}
        if not isinstance(fields, (list, tuple)) or not isinstance(data, Mapping):
            raise MalformedRequestError("update expects 'fields' as a list and 'data' as an object")

        document = self._load(record_id)
        diagnostics = DiagnosticLog()
        for name in fields:
            field_def = self.model.get_field(name)
            if field_def is None:
                diagnostics.unknown_field(name)
                continue
            if name in data:
                document[name] = cast_value(field_def, data[name])
            else:
                document.pop(name, None)

        self.store.save(self.model, document)
        return CallResult(self.serializer.serialize(document, self.model), diagnostics.entries)

    def delete(self, request: Any) -> CallResult:
        """Remove the record named by ``id``."""
        payload = self._require_mapping(request, "delete")
        removed = self.store.remove(self.model, to_object_id(payload.get("id")))
        if removed is None:
            raise NotFoundError()
        return CallResult({})

    def get(self, request: Any) -> CallResult:
        """Load one record, populating the relationships named in ``populate``."""
        payload = self._require_mapping(request, "get")
        populate = ListQuery.from_request({"populate": payload.get("populate")}).populate
        document = self._load(to_object_id(payload.get("id")))
        return CallResult(self._render(document, populate))

    def list(self, request: Any = None) -> CallResult:
        """Query records: filter, sort, skip, limit, projection, population."""
        query = self.translator.translate(ListQuery.from_request(request))
        documents = self.store.find(
            self.model,
            query.filter,
            projection=query.projection,
            sort=query.sort,
            skip=query.skip,
            limit=query.limit,
        )
        return CallResult([self._render(document, query.populate) for document in documents])

    def _render(self, document: dict[str, Any], populate: Any) -> dict[str, Any]:
        populated = self.populator.load(self.model, document, populate) if populate else None
        return self.serializer.serialize(document, self.model, populated)

    def _load(self, record_id: Any) -> dict[str, Any]:
        document = self.store.find_by_id(self.model, record_id)
        if document is None:
            raise NotFoundError()
        return document

    @staticmethod
    def _require_mapping(request: Any, method: str) -> Mapping[str, Any]:
        if not isinstance(request, Mapping):
            raise MalformedRequestError(f"{method} expects an object request")
        return request
