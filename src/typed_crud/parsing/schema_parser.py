"""Parser for the record schema DSL.

Example::

    define email as string

    schema Child {
        name: string
    }

    model Sample {
        name: string,
        contact: email,
        children: Child[],
        relatedModels: ref RelatedModel[],
        virtual virtualRelatedModels: RelatedModel[] by model,
    }

    model RelatedModel in "related" {
        name: string,
        model: ref Sample,
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from typed_crud.errors import SchemaError
from typed_crud.parsing.schema_lexer import SchemaLexer
from typed_crud.types import (
    RESERVED_FIELD_NAMES,
    AliasTypeDefinition,
    FieldDefinition,
    ModelTypeDefinition,
    TypeDefinition,
    TypeRegistry,
    VirtualDefinition,
)


@dataclass
class TypeRef:
    """Reference to a type, possibly as an array and/or a record reference."""

    name: str
    is_array: bool = False
    is_reference: bool = False


@dataclass
class FieldSpec:
    """Specification for a field before resolution."""

    name: str
    type_ref: TypeRef
    singular: str | None = None


@dataclass
class VirtualSpec:
    """Specification for a virtual relationship before resolution."""

    name: str
    target: str
    foreign_field: str
    is_array: bool = True


@dataclass
class TypeSpec:
    """Specification for a schema or model before resolution."""

    name: str
    members: list[FieldSpec | VirtualSpec]
    is_model: bool = False
    collection: str | None = None

    @property
    def fields(self) -> list[FieldSpec]:
        return [m for m in self.members if isinstance(m, FieldSpec)]

    @property
    def virtuals(self) -> list[VirtualSpec]:
        return [m for m in self.members if isinstance(m, VirtualSpec)]


@dataclass
class AliasSpec:
    """Specification for an alias before resolution."""

    name: str
    base_type_ref: TypeRef


@dataclass
class TypeHead:
    """Keyword, name and collection override of a schema or model header."""

    kind: str
    name: str
    collection: str | None = None


class SchemaParser:
    """Parser for the record schema DSL."""

    tokens = SchemaLexer.tokens
    start = "schema"

    def __init__(self) -> None:
        self.lexer = SchemaLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self.registry: TypeRegistry = TypeRegistry()
        self._specs: list[AliasSpec | TypeSpec] = []

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : statement_list"""
        p[0] = p[1]

    def p_schema_empty(self, p: yacc.YaccProduction) -> None:
        """schema : empty"""
        p[0] = []

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_statement_list_single(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement"""
        p[0] = [p[1]]

    def p_statement_list_multiple(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement_list statement"""
        p[0] = p[1] + [p[2]]

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : alias_def
                     | type_def"""
        p[0] = p[1]

    def p_alias_def(self, p: yacc.YaccProduction) -> None:
        """alias_def : DEFINE IDENTIFIER AS type_ref"""
        p[0] = AliasSpec(name=p[2], base_type_ref=p[4])

    def p_type_def(self, p: yacc.YaccProduction) -> None:
        """type_def : type_head LBRACE member_list RBRACE
                    | type_head LBRACE member_list COMMA RBRACE"""
        head = p[1]
        p[0] = TypeSpec(
            name=head.name, members=p[3], is_model=head.kind == "model", collection=head.collection
        )

    def p_type_def_empty(self, p: yacc.YaccProduction) -> None:
        """type_def : type_head LBRACE RBRACE"""
        head = p[1]
        p[0] = TypeSpec(
            name=head.name, members=[], is_model=head.kind == "model", collection=head.collection
        )

    def p_type_head(self, p: yacc.YaccProduction) -> None:
        """type_head : SCHEMA IDENTIFIER
                     | MODEL IDENTIFIER"""
        p[0] = TypeHead(kind=p[1], name=p[2])

    def p_type_head_collection(self, p: yacc.YaccProduction) -> None:
        """type_head : MODEL IDENTIFIER IN STRING"""
        p[0] = TypeHead(kind=p[1], name=p[2], collection=p[4])

    def p_member_list_single(self, p: yacc.YaccProduction) -> None:
        """member_list : member"""
        p[0] = [p[1]]

    def p_member_list_multiple(self, p: yacc.YaccProduction) -> None:
        """member_list : member_list member
                       | member_list COMMA member"""
        p[0] = p[1] + [p[len(p) - 1]]

    def p_member_field(self, p: yacc.YaccProduction) -> None:
        """member : name COLON type_ref"""
        p[0] = FieldSpec(name=p[1], type_ref=p[3])

    def p_member_field_singular(self, p: yacc.YaccProduction) -> None:
        """member : name COLON type_ref SINGULAR name"""
        p[0] = FieldSpec(name=p[1], type_ref=p[3], singular=p[5])

    def p_member_virtual(self, p: yacc.YaccProduction) -> None:
        """member : VIRTUAL name COLON IDENTIFIER BY name"""
        p[0] = VirtualSpec(name=p[2], target=p[4], foreign_field=p[6], is_array=False)

    def p_member_virtual_array(self, p: yacc.YaccProduction) -> None:
        """member : VIRTUAL name COLON IDENTIFIER LBRACKET RBRACKET BY name"""
        p[0] = VirtualSpec(name=p[2], target=p[4], foreign_field=p[8], is_array=True)

    def p_name(self, p: yacc.YaccProduction) -> None:
        """name : IDENTIFIER
                | MODEL
                | SCHEMA
                | REF
                | BY
                | IN
                | DEFINE
                | AS"""
        p[0] = p[1]

    def p_type_ref_simple(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER"""
        p[0] = TypeRef(name=p[1])

    def p_type_ref_array(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER LBRACKET RBRACKET"""
        p[0] = TypeRef(name=p[1], is_array=True)

    def p_type_ref_reference(self, p: yacc.YaccProduction) -> None:
        """type_ref : REF IDENTIFIER"""
        p[0] = TypeRef(name=p[2], is_reference=True)

    def p_type_ref_reference_array(self, p: yacc.YaccProduction) -> None:
        """type_ref : REF IDENTIFIER LBRACKET RBRACKET"""
        p[0] = TypeRef(name=p[2], is_array=True, is_reference=True)

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> TypeRegistry:
        """Parse schema definitions and return a populated TypeRegistry."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.registry = TypeRegistry()
        self.lexer.lexer.lineno = 1

        specs = self.parser.parse(data, lexer=self.lexer.lexer)
        if specs is None:
            specs = []
        self._specs = specs

        self._resolve_specs()

        return self.registry

    def _resolve_model(self, name: str, context: str) -> ModelTypeDefinition:
        """Look up a model for a 'ref' or virtual target."""
        target = self.registry.get_or_raise(name).resolve_base_type()
        if not isinstance(target, ModelTypeDefinition):
            raise SchemaError(f"{context}: '{name}' is not a model")
        return target

    def _resolve_type_ref(self, type_ref: TypeRef, context: str) -> TypeDefinition:
        """Resolve a type reference to a type definition."""
        if type_ref.is_reference:
            target = self._resolve_model(type_ref.name, context)
            ref_type = self.registry.get_reference_type(target.name)
            if type_ref.is_array:
                return self.registry.get_array_type(ref_type.name)
            return ref_type
        if type_ref.is_array:
            return self.registry.get_array_type(type_ref.name)
        return self.registry.get_or_raise(type_ref.name)

    def _resolve_type_spec(self, spec: TypeSpec) -> None:
        """Resolve a schema/model spec and populate its stub."""
        fields: list[FieldDefinition] = []
        for field_spec in spec.fields:
            context = f"Field '{spec.name}.{field_spec.name}'"
            field_type = self._resolve_type_ref(field_spec.type_ref, context)
            fields.append(
                FieldDefinition(name=field_spec.name, type_def=field_type, singular=field_spec.singular)
            )

        virtuals: list[VirtualDefinition] = []
        for virtual_spec in spec.virtuals:
            if not spec.is_model:
                raise SchemaError(f"Schema '{spec.name}' cannot declare virtual '{virtual_spec.name}'")
            target = self._resolve_model(virtual_spec.target, f"Virtual '{spec.name}.{virtual_spec.name}'")
            virtuals.append(
                VirtualDefinition(
                    name=virtual_spec.name,
                    target=target,
                    foreign_field=virtual_spec.foreign_field,
                    is_array=virtual_spec.is_array,
                )
            )

        self._check_member_names(spec.name, [f.name for f in fields] + [v.name for v in virtuals])

        # Mutate the existing stub in-place
        stub = self.registry.get(spec.name)
        stub.fields = fields  # type: ignore[union-attr]
        if isinstance(stub, ModelTypeDefinition):
            stub.virtuals = virtuals

    @staticmethod
    def _check_member_names(type_name: str, names: list[str]) -> None:
        seen: set[str] = set()
        for name in names:
            if name in RESERVED_FIELD_NAMES:
                raise SchemaError(f"Type '{type_name}' cannot declare reserved field '{name}'")
            if name in seen:
                raise SchemaError(f"Type '{type_name}' declares '{name}' more than once")
            seen.add(name)

    def _resolve_specs(self) -> None:
        """Resolve all specs into type definitions using two-phase resolution.

        Phase 1: Pre-register stubs for every schema and model so that
        self-referential and mutually referential types can resolve.
        Phase 2: Iteratively resolve aliases and populate the stubs.
        """
        # Phase 1: Pre-register schema and model stubs
        for spec in self._specs:
            if isinstance(spec, TypeSpec):
                stub = self.registry.register_stub(spec.name, model=spec.is_model)
                if isinstance(stub, ModelTypeDefinition):
                    stub.collection = spec.collection

        # Phase 2: Iteratively resolve
        unresolved: list[AliasSpec | TypeSpec] = list(self._specs)

        max_iterations = len(unresolved) + 1
        for _ in range(max_iterations):
            if not unresolved:
                break

            still_unresolved: list[AliasSpec | TypeSpec] = []
            progress = False

            for spec in unresolved:
                try:
                    if isinstance(spec, AliasSpec):
                        base_type = self._resolve_type_ref(spec.base_type_ref, f"Alias '{spec.name}'")
                        self.registry.register(AliasTypeDefinition(name=spec.name, base_type=base_type))
                    else:
                        self._resolve_type_spec(spec)
                    progress = True
                except KeyError:
                    # Dependency not yet resolved
                    still_unresolved.append(spec)

            unresolved = still_unresolved

            if not progress and unresolved:
                remaining = [s.name for s in unresolved]
                raise ValueError(f"Cannot resolve types: {remaining}")


def parse_schema(data: str) -> TypeRegistry:
    """Parse schema text into a registry of schemas and models."""
    return SchemaParser().parse(data)
