"""Loading of referenced and virtual relationships."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from typed_crud.classification import FieldKind
from typed_crud.store import DocumentStore
from typed_crud.types import FieldDefinition, ModelTypeDefinition, VirtualDefinition

logger = logging.getLogger(__name__)


class Populator:
    """Loads the related raw documents named in a ``populate`` list."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def load(
        self, model: ModelTypeDefinition, document: dict[str, Any], names: Iterable[str]
    ) -> dict[str, Any]:
        """Load related documents for each populate name.

        Args:
            model: Model of ``document``.
            document: Stored record.
            names: Reference field or virtual names; unknown names are ignored.

        Returns:
            Mapping of name to a related document, a list of them, or None.
        """
        populated: dict[str, Any] = {}
        for name in names:
            field_def = model.get_field(name)
            if field_def is not None and field_def.kind in (FieldKind.REFERENCE, FieldKind.REFERENCE_ARRAY):
                populated[name] = self._load_references(field_def, document.get(name))
                continue
            virtual = model.get_virtual(name)
            if virtual is not None:
                populated[name] = self._load_virtual(virtual, document)
                continue
            logger.debug("Ignoring populate '%s': not a relationship of %s", name, model.name)
        return populated

    def _load_references(self, field_def: FieldDefinition, value: Any) -> Any:
        target = field_def.target_model
        if field_def.kind is FieldKind.REFERENCE:
            if value is None:
                return None
            return self.store.find_by_id(target, value)  # type: ignore[arg-type]

        ids = list(value or [])
        if not ids:
            return []
        found = self.store.find(target, {"_id": {"$in": ids}})  # type: ignore[arg-type]
        by_id = {str(doc["_id"]): doc for doc in found}
        # Stored order; dangling ids are skipped
        return [by_id[str(i)] for i in ids if str(i) in by_id]

    def _load_virtual(self, virtual: VirtualDefinition, document: dict[str, Any]) -> Any:
        local_value = document.get(virtual.local_field)
        if local_value is None:
            return [] if virtual.is_array else None
        found = self.store.find(virtual.target, {virtual.foreign_field: local_value})
        if virtual.is_array:
            return found
        return found[0] if found else None
