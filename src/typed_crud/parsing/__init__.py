"""Parsing module for the record schema DSL."""

from typed_crud.parsing.schema_parser import SchemaParser, parse_schema

__all__ = [
    "SchemaParser",
    "parse_schema",
]
