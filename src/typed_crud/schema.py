"""Schema class binding record types to a document store."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pymongo.database import Database

from typed_crud.parsing import SchemaParser
from typed_crud.service import CrudService, ServiceConfig
from typed_crud.store import DocumentStore
from typed_crud.types import ModelTypeDefinition, TypeDefinition, TypeRegistry


class Schema:
    """Parsed record types with a document store."""

    def __init__(
        self, registry: TypeRegistry, store: DocumentStore, config: ServiceConfig | None = None
    ) -> None:
        """Initialize a schema.

        Args:
            registry: Type registry with all schemas and models.
            store: Document store backing the models.
            config: Configuration applied to every service built from this schema.
        """
        self.registry = registry
        self.store = store
        self.config = config or ServiceConfig()

    @classmethod
    def parse(
        cls,
        schema_text: str,
        database: Database,
        config: ServiceConfig | None = None,
        health_check: Callable[[], bool] | None = None,
    ) -> Schema:
        """Parse schema definitions and bind them to a database.

        Args:
            schema_text: DSL string defining schemas and models.
            database: Database holding one collection per model.
            config: Configuration for services built from this schema.
            health_check: Optional connection-health probe for the store.

        Returns:
            A new Schema instance.
        """
        registry = SchemaParser().parse(schema_text)
        return cls(registry, DocumentStore(database, health_check=health_check), config)

    def get_type(self, name: str) -> TypeDefinition:
        """Get a type definition by name.

        Raises:
            KeyError: If the type is not found.
        """
        return self.registry.get_or_raise(name)

    def get_model(self, name: str) -> ModelTypeDefinition:
        """Get a model by name.

        Raises:
            KeyError: If no model has that name.
        """
        return self.registry.get_model(name)

    def list_models(self) -> list[str]:
        """List model names in declaration order."""
        return [model.name for model in self.registry.list_models()]

    def service(self, name: str) -> CrudService:
        """Build a service (with its own operation table) for a model."""
        return CrudService(self.get_model(name), self.store, self.config)

    def close(self) -> None:
        """Close the store's client."""
        self.store.close()

    def __enter__(self) -> Schema:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
