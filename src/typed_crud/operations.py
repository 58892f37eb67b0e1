"""Relationship operation synthesis.

For every embedded or reference collection field of a model, a fixed family
of mutation operations is derived from the field's name::

    children: Child[]                -> pushChildren, addToSetChildren, removeChildren,
                                        replaceChildren, updateChildren, addChild, removeChild
    relatedModels: ref RelatedModel[] -> pushRelatedModels, ..., addRelatedModel, removeRelatedModel

Each service instance builds its own table with :func:`synthesize_operations`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from typed_crud.classification import FieldKind
from typed_crud.errors import SchemaError
from typed_crud.naming import operation_name, reference_key, singularize
from typed_crud.types import FieldDefinition, ModelTypeDefinition

logger = logging.getLogger(__name__)


class MutationAction(Enum):
    """What a relationship operation does to its collection."""

    PUSH = 0
    ADD_TO_SET = 1
    REMOVE = 2
    REPLACE = 3
    UPDATE = 4
    ADD = 5
    REMOVE_SINGLE = 6

    @property
    def is_batch(self) -> bool:
        """Whether the payload is an array of elements."""
        return self not in (MutationAction.ADD, MutationAction.REMOVE_SINGLE)


# Operation prefixes per collection kind, in registration order
PLURAL_ACTIONS: dict[FieldKind, tuple[tuple[str, MutationAction], ...]] = {
    FieldKind.EMBEDDED_ARRAY: (
        ("push", MutationAction.PUSH),
        ("addToSet", MutationAction.ADD_TO_SET),
        ("remove", MutationAction.REMOVE),
        ("replace", MutationAction.REPLACE),
        ("update", MutationAction.UPDATE),
    ),
    FieldKind.REFERENCE_ARRAY: (
        ("push", MutationAction.PUSH),
        ("addToSet", MutationAction.ADD_TO_SET),
        ("remove", MutationAction.REMOVE),
        ("replace", MutationAction.REPLACE),
    ),
}

SINGULAR_ACTIONS: tuple[tuple[str, MutationAction], ...] = (
    ("add", MutationAction.ADD),
    ("remove", MutationAction.REMOVE_SINGLE),
)


@dataclass(frozen=True)
class OperationDescriptor:
    """One synthesized relationship operation."""

    name: str
    field_name: str
    plural_name: str
    singular_name: str
    kind: FieldKind
    action: MutationAction
    payload_key: str

    @property
    def batch(self) -> bool:
        return self.action.is_batch

    @property
    def is_embedded(self) -> bool:
        return self.kind is FieldKind.EMBEDDED_ARRAY


def singular_name_for(field_def: FieldDefinition) -> str:
    """Singular used by add/remove operations: the override, else the inflected singular."""
    return field_def.singular or singularize(field_def.name)


def field_operations(field_def: FieldDefinition) -> list[OperationDescriptor]:
    """Operations derived from one collection field (empty for other kinds)."""
    plural_actions = PLURAL_ACTIONS.get(field_def.kind)
    if plural_actions is None:
        return []

    singular = singular_name_for(field_def)
    if field_def.kind is FieldKind.REFERENCE_ARRAY:
        singular_key = reference_key(singular)
    else:
        singular_key = singular

    descriptors = [
        OperationDescriptor(
            name=operation_name(prefix, field_def.name),
            field_name=field_def.name,
            plural_name=field_def.name,
            singular_name=singular,
            kind=field_def.kind,
            action=action,
            payload_key=field_def.name,
        )
        for prefix, action in plural_actions
    ]
    descriptors.extend(
        OperationDescriptor(
            name=operation_name(prefix, singular),
            field_name=field_def.name,
            plural_name=field_def.name,
            singular_name=singular,
            kind=field_def.kind,
            action=action,
            payload_key=singular_key,
        )
        for prefix, action in SINGULAR_ACTIONS
    )
    return descriptors


def synthesize_operations(model: ModelTypeDefinition) -> dict[str, OperationDescriptor]:
    """Build the operation table of a model, keyed by operation name.

    Raises:
        SchemaError: If two fields (or a field's singular and plural forms)
            produce the same operation name.
    """
    table: dict[str, OperationDescriptor] = {}
    for field_def in model.fields_of_kind(FieldKind.EMBEDDED_ARRAY, FieldKind.REFERENCE_ARRAY):
        for descriptor in field_operations(field_def):
            existing = table.get(descriptor.name)
            if existing is not None:
                raise SchemaError(
                    f"Operation '{descriptor.name}' on '{model.name}' is derived from both "
                    f"'{existing.field_name}' ({existing.action.name}) and "
                    f"'{descriptor.field_name}' ({descriptor.action.name}); "
                    "declare a singular override for the field"
                )
            table[descriptor.name] = descriptor
    logger.debug("Synthesized %d operations for %s: %s", len(table), model.name, sorted(table))
    return table
