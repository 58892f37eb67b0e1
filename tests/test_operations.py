"""Tests for naming rules and operation synthesis."""

import pytest

from typed_crud.classification import FieldKind
from typed_crud.errors import SchemaError
from typed_crud.naming import (
    capitalize_first,
    operation_name,
    pluralize,
    reference_key,
    singularize,
)
from typed_crud.operations import MutationAction, synthesize_operations
from typed_crud.parsing import SchemaParser


class TestNaming:
    """Tests for singular/plural naming."""

    def test_singularize(self):
        """Test singular forms of collection field names."""
        assert singularize("children") == "child"
        assert singularize("relatedModels") == "relatedModel"
        assert singularize("roles") == "role"

    def test_singularize_already_singular(self):
        """Test that singular words are returned unchanged."""
        assert singularize("child") == "child"

    def test_pluralize(self):
        """Test plural forms."""
        assert pluralize("child") == "children"
        assert pluralize("role") == "roles"

    def test_reference_keys(self):
        """Test the payload key of single-reference operations."""
        assert reference_key("relatedModel") == "relatedModelId"
        assert reference_key("role") == "roleId"

    def test_operation_name(self):
        """Test operation names capitalize the first letter only."""
        assert capitalize_first("relatedModels") == "RelatedModels"
        assert operation_name("addToSet", "children") == "addToSetChildren"


class TestSynthesizeOperations:
    """Tests for synthesize_operations."""

    def test_embedded_array_operations(self, registry):
        """Test the seven operations of an embedded collection."""
        table = synthesize_operations(registry.get_model("Sample"))

        children_ops = {name: d for name, d in table.items() if d.field_name == "children"}
        assert set(children_ops) == {
            "pushChildren",
            "addToSetChildren",
            "removeChildren",
            "replaceChildren",
            "updateChildren",
            "addChild",
            "removeChild",
        }
        assert children_ops["pushChildren"].action is MutationAction.PUSH
        assert children_ops["pushChildren"].payload_key == "children"
        assert children_ops["pushChildren"].batch is True
        assert children_ops["addChild"].action is MutationAction.ADD
        assert children_ops["addChild"].payload_key == "child"
        assert children_ops["addChild"].batch is False
        assert children_ops["removeChild"].action is MutationAction.REMOVE_SINGLE
        assert all(d.kind is FieldKind.EMBEDDED_ARRAY for d in children_ops.values())

    def test_reference_array_operations(self, registry):
        """Test the six operations of a reference collection."""
        table = synthesize_operations(registry.get_model("Sample"))

        related_ops = {name: d for name, d in table.items() if d.field_name == "relatedModels"}
        assert set(related_ops) == {
            "pushRelatedModels",
            "addToSetRelatedModels",
            "removeRelatedModels",
            "replaceRelatedModels",
            "addRelatedModel",
            "removeRelatedModel",
        }
        assert related_ops["addRelatedModel"].payload_key == "relatedModelId"
        assert related_ops["addRelatedModel"].singular_name == "relatedModel"
        assert related_ops["removeRelatedModels"].payload_key == "relatedModels"

    def test_no_operations_for_other_kinds(self, registry):
        """Test that scalar, embedded and single-reference fields get no operations."""
        table = synthesize_operations(registry.get_model("Sample"))

        assert {d.field_name for d in table.values()} == {"children", "relatedModels"}
        assert synthesize_operations(registry.get_model("RelatedModel")) == {}

    def test_singular_equal_to_plural_collides(self):
        """Test that a field whose singular equals its name is rejected."""
        registry = SchemaParser().parse("schema Child { name: string }\nmodel Box { child: Child[] }")

        with pytest.raises(SchemaError, match="removeChild"):
            synthesize_operations(registry.get_model("Box"))

    def test_singular_override_resolves_collision(self):
        """Test that a singular override avoids the collision."""
        registry = SchemaParser().parse(
            "schema Child { name: string }\nmodel Box { child: Child[] singular oneChild }"
        )

        table = synthesize_operations(registry.get_model("Box"))
        assert "removeChild" in table
        assert table["removeChild"].action is MutationAction.REMOVE
        assert table["removeOneChild"].action is MutationAction.REMOVE_SINGLE
        assert table["addOneChild"].payload_key == "oneChild"

    def test_tables_are_independent(self, registry):
        """Test that each call builds a fresh table."""
        model = registry.get_model("Sample")

        first = synthesize_operations(model)
        second = synthesize_operations(model)

        assert first == second
        assert first is not second
