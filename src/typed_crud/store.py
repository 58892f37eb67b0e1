"""Document store boundary for record types."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from typed_crud.types import ModelTypeDefinition

logger = logging.getLogger(__name__)


class DocumentStore:
    """Maps each model to its collection in one database.

    Query execution and connection management stay with the driver; store
    failures propagate as ``pymongo.errors.PyMongoError``.
    """

    def __init__(self, database: Database, health_check: Callable[[], bool] | None = None) -> None:
        """Initialize the store.

        Args:
            database: Database holding one collection per model.
            health_check: Optional connection-health probe. Defaults to a
                ``ping`` command against the database.
        """
        self.database = database
        self._health_check = health_check

    def collection(self, model: ModelTypeDefinition) -> Collection:
        """Get the collection backing a model."""
        return self.database[model.collection_name]

    def is_connected(self) -> bool:
        """Return the connection-health signal."""
        if self._health_check is not None:
            return bool(self._health_check())
        try:
            self.database.command("ping")
        except PyMongoError as exc:
            logger.warning("Document store ping failed: %s", exc)
            return False
        return True

    def find_by_id(self, model: ModelTypeDefinition, record_id: ObjectId) -> dict[str, Any] | None:
        """Load one record by its ``_id``."""
        return self.collection(model).find_one({"_id": record_id})

    def find(
        self,
        model: ModelTypeDefinition,
        filter: Mapping[str, Any] | None = None,
        *,
        projection: Mapping[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        """Run a query: filter, then sort, skip and limit."""
        cursor = self.collection(model).find(dict(filter or {}), projection)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def insert(self, model: ModelTypeDefinition, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a new record; the driver assigns ``_id`` when absent."""
        result = self.collection(model).insert_one(document)
        document["_id"] = result.inserted_id
        return document

    def save(self, model: ModelTypeDefinition, document: dict[str, Any]) -> None:
        """Persist a whole record, replacing the stored version."""
        self.collection(model).replace_one({"_id": document["_id"]}, document)

    def remove(self, model: ModelTypeDefinition, record_id: ObjectId) -> dict[str, Any] | None:
        """Delete a record by id, returning the removed document or None."""
        return self.collection(model).find_one_and_delete({"_id": record_id})

    def count(self, model: ModelTypeDefinition, filter: Mapping[str, Any] | None = None) -> int:
        """Count records matching a filter."""
        return self.collection(model).count_documents(dict(filter or {}))

    def close(self) -> None:
        """Close the underlying client."""
        self.database.client.close()
