"""Typed CRUD - schema-driven CRUD and relationship operations over a document store."""

from typed_crud.classification import FieldKind, classify_field
from typed_crud.diagnostics import CallResult, Diagnostic, DiagnosticKind
from typed_crud.errors import (
    CrudError,
    MalformedFilterValueError,
    MalformedRequestError,
    NotConnectedError,
    NotFoundError,
    SchemaError,
    StatusCode,
    UnknownOperationError,
)
from typed_crud.operations import MutationAction, OperationDescriptor, synthesize_operations
from typed_crud.parsing import SchemaParser
from typed_crud.query import ListQuery, Matcher, QueryTranslator
from typed_crud.schema import Schema
from typed_crud.serializer import RecordSerializer, serialize_record
from typed_crud.service import CrudService, ServiceConfig
from typed_crud.store import DocumentStore
from typed_crud.types import (
    FieldDefinition,
    ModelTypeDefinition,
    SchemaTypeDefinition,
    TypeRegistry,
    VirtualDefinition,
)

__all__ = [
    # Main API
    "Schema",
    "SchemaParser",
    "CrudService",
    "ServiceConfig",
    "CallResult",
    # Storage
    "DocumentStore",
    # Type definitions
    "FieldDefinition",
    "FieldKind",
    "ModelTypeDefinition",
    "SchemaTypeDefinition",
    "TypeRegistry",
    "VirtualDefinition",
    "classify_field",
    # Operations
    "ListQuery",
    "Matcher",
    "MutationAction",
    "OperationDescriptor",
    "QueryTranslator",
    "RecordSerializer",
    "serialize_record",
    "synthesize_operations",
    # Errors and diagnostics
    "CrudError",
    "Diagnostic",
    "DiagnosticKind",
    "MalformedFilterValueError",
    "MalformedRequestError",
    "NotConnectedError",
    "NotFoundError",
    "SchemaError",
    "StatusCode",
    "UnknownOperationError",
]

__version__ = "0.1.0"
