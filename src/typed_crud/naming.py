"""Naming rules for collections and synthesized operations."""

from __future__ import annotations

import inflect

_engine = inflect.engine()

# Suffix of the payload key of single-reference operations (relatedModel -> relatedModelId)
REFERENCE_KEY_SUFFIX = "Id"


def capitalize_first(name: str) -> str:
    """Upper-case the first letter only: relatedModels -> RelatedModels."""
    return name[:1].upper() + name[1:]


def singularize(word: str) -> str:
    """Return the singular form of a (possibly camelCase) noun.

    Words that are already singular are returned unchanged.
    """
    singular = _engine.singular_noun(word)
    return singular if singular else word


def pluralize(word: str) -> str:
    """Return the plural form of a (possibly camelCase) noun."""
    return _engine.plural_noun(word)


def reference_key(singular: str) -> str:
    """Payload key used by single-reference operations: role -> roleId."""
    return singular + REFERENCE_KEY_SUFFIX


def collection_name_for(type_name: str) -> str:
    """Default backing collection of a model: Sample -> samples."""
    return pluralize(type_name.lower())


def operation_name(prefix: str, name: str) -> str:
    """Compose an operation name: ("push", "children") -> pushChildren."""
    return prefix + capitalize_first(name)
