"""Type definitions for the typed_crud library."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from typed_crud.classification import FieldKind, classify_type
from typed_crud.naming import collection_name_for


class PrimitiveType(Enum):
    """Built-in scalar types supported by record schemas."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECTID = "objectid"
    MIXED = "mixed"


# Mapping from type name strings to PrimitiveType enum values
PRIMITIVE_TYPE_NAMES: dict[str, PrimitiveType] = {pt.value: pt for pt in PrimitiveType}

# Field names owned by the store and the transfer object
RESERVED_FIELD_NAMES = frozenset({"id", "_id"})


@dataclass
class TypeDefinition:
    """Base class for all type definitions."""

    name: str

    @property
    def is_array(self) -> bool:
        """Return whether this type is an array type."""
        return False

    @property
    def is_primitive(self) -> bool:
        """Return whether this type is a primitive type."""
        return False

    @property
    def is_schema(self) -> bool:
        """Return whether this type is an embedded schema or a model."""
        return False

    @property
    def is_reference(self) -> bool:
        """Return whether this type holds the identifier of another record."""
        return False

    def resolve_base_type(self) -> TypeDefinition:
        """Resolve through aliases to get the underlying type."""
        return self


@dataclass
class PrimitiveTypeDefinition(TypeDefinition):
    """Type definition wrapping a primitive type."""

    primitive: PrimitiveType

    @property
    def is_primitive(self) -> bool:
        return True


@dataclass
class AliasTypeDefinition(TypeDefinition):
    """Type definition for 'define X as Y' aliases."""

    base_type: TypeDefinition

    @property
    def is_array(self) -> bool:
        return self.base_type.is_array

    def resolve_base_type(self) -> TypeDefinition:
        """Resolve through aliases to get the underlying type."""
        return self.base_type.resolve_base_type()


@dataclass
class ArrayTypeDefinition(TypeDefinition):
    """Type definition for array types (e.g., string[], Child[], ref User[])."""

    element_type: TypeDefinition = field(repr=False, compare=False)

    @property
    def is_array(self) -> bool:
        return True


@dataclass
class ReferenceTypeDefinition(TypeDefinition):
    """Identifier of a record stored in another model's collection ('ref X')."""

    target: ModelTypeDefinition = field(repr=False, compare=False)

    @property
    def is_reference(self) -> bool:
        return True


@dataclass
class FieldDefinition:
    """Definition of a field within a schema.

    The field's kind is decided once, when the definition is built, from its
    resolved type.
    """

    name: str
    type_def: TypeDefinition
    singular: str | None = None
    kind: FieldKind = field(init=False)

    def __post_init__(self) -> None:
        self.kind = classify_type(self.type_def)

    @property
    def element_type(self) -> TypeDefinition:
        """Resolved element type for arrays, resolved type otherwise."""
        base = self.type_def.resolve_base_type()
        if isinstance(base, ArrayTypeDefinition):
            return base.element_type.resolve_base_type()
        return base

    @property
    def target_schema(self) -> SchemaTypeDefinition | None:
        """Nested schema of an embedded record or embedded collection."""
        if self.kind not in (FieldKind.EMBEDDED, FieldKind.EMBEDDED_ARRAY):
            return None
        return self.element_type  # type: ignore[return-value]

    @property
    def target_model(self) -> ModelTypeDefinition | None:
        """Referenced model of a single reference or reference collection."""
        if self.kind not in (FieldKind.REFERENCE, FieldKind.REFERENCE_ARRAY):
            return None
        return self.element_type.target  # type: ignore[attr-defined]

    @property
    def is_identifier(self) -> bool:
        """Whether stored values of this field are ObjectIds."""
        if self.kind in (FieldKind.REFERENCE, FieldKind.REFERENCE_ARRAY):
            return True
        element = self.element_type
        return isinstance(element, PrimitiveTypeDefinition) and element.primitive is PrimitiveType.OBJECTID


@dataclass
class VirtualDefinition:
    """Relationship computed by querying another model for records pointing back.

    ``virtual posts: Post[] by author`` loads every Post whose ``author``
    equals this record's ``_id``.
    """

    name: str
    target: ModelTypeDefinition = field(repr=False, compare=False)
    foreign_field: str
    local_field: str = "_id"
    is_array: bool = True


@dataclass(eq=False)
class SchemaTypeDefinition(TypeDefinition):
    """Embedded record layout: an ordered list of fields, stored inline."""

    fields: list[FieldDefinition] = field(default_factory=list, repr=False)

    @property
    def is_schema(self) -> bool:
        return True

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def fields_of_kind(self, *kinds: FieldKind) -> list[FieldDefinition]:
        """Fields whose classification is one of ``kinds``, in declaration order."""
        return [f for f in self.fields if f.kind in kinds]


@dataclass(eq=False)
class ModelTypeDefinition(SchemaTypeDefinition):
    """Record type persisted in its own collection."""

    collection: str | None = None
    virtuals: list[VirtualDefinition] = field(default_factory=list, repr=False)

    @property
    def collection_name(self) -> str:
        """Backing collection, defaulting to the lower-cased plural of the name."""
        return self.collection or collection_name_for(self.name)

    def get_virtual(self, name: str) -> VirtualDefinition | None:
        """Get a virtual relationship by name."""
        for v in self.virtuals:
            if v.name == name:
                return v
        return None


class TypeRegistry:
    """Registry of all defined types."""

    def __init__(self) -> None:
        self._types: dict[str, TypeDefinition] = {}
        self._register_primitives()

    def _register_primitives(self) -> None:
        """Register all primitive types."""
        for pt in PrimitiveType:
            self._types[pt.value] = PrimitiveTypeDefinition(name=pt.value, primitive=pt)

    def register(self, type_def: TypeDefinition) -> None:
        """Register a type definition."""
        if type_def.name in self._types:
            raise ValueError(f"Type '{type_def.name}' is already defined")
        self._types[type_def.name] = type_def

    def get(self, name: str) -> TypeDefinition | None:
        """Get a type by name."""
        return self._types.get(name)

    def get_or_raise(self, name: str) -> TypeDefinition:
        """Get a type by name, raising if not found."""
        type_def = self._types.get(name)
        if type_def is None:
            raise KeyError(f"Type '{name}' not found")
        return type_def

    def get_array_type(self, element_type_name: str) -> ArrayTypeDefinition:
        """Get or create an array type for the given element type."""
        array_name = f"{element_type_name}[]"
        existing = self._types.get(array_name)
        if existing is not None:
            if not isinstance(existing, ArrayTypeDefinition):
                raise TypeError(f"Type '{array_name}' exists but is not an array type")
            return existing

        element_type = self.get_or_raise(element_type_name)
        array_type = ArrayTypeDefinition(name=array_name, element_type=element_type)
        self._types[array_name] = array_type
        return array_type

    def get_reference_type(self, model_name: str) -> ReferenceTypeDefinition:
        """Get or create the 'ref X' type for a registered model."""
        ref_name = f"ref {model_name}"
        existing = self._types.get(ref_name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        target = self.get_or_raise(model_name)
        if not isinstance(target, ModelTypeDefinition):
            raise TypeError(f"Type '{model_name}' is not a model and cannot be referenced")
        ref_type = ReferenceTypeDefinition(name=ref_name, target=target)
        self._types[ref_name] = ref_type
        return ref_type

    def register_stub(self, name: str, model: bool = False) -> SchemaTypeDefinition:
        """Pre-register an empty schema (or model) for forward/self-references.

        Raises ValueError if name is already registered.
        """
        if name in self._types:
            raise ValueError(f"Type '{name}' is already defined")
        stub = ModelTypeDefinition(name=name) if model else SchemaTypeDefinition(name=name)
        self._types[name] = stub
        return stub

    def is_stub(self, name: str) -> bool:
        """Check if a type is registered as an unpopulated schema stub."""
        td = self._types.get(name)
        return isinstance(td, SchemaTypeDefinition) and not td.fields

    def get_model(self, name: str) -> ModelTypeDefinition:
        """Get a model by name, raising KeyError if absent or not a model."""
        type_def = self.get_or_raise(name)
        if not isinstance(type_def, ModelTypeDefinition):
            raise KeyError(f"Type '{name}' is not a model")
        return type_def

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def list_models(self) -> list[ModelTypeDefinition]:
        """List registered models in registration order."""
        return [td for td in self._types.values() if isinstance(td, ModelTypeDefinition)]

    def __contains__(self, name: str) -> bool:
        return name in self._types
