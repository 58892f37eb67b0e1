"""Tool for printing the operations synthesized for a schema file."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from typed_crud.operations import synthesize_operations
from typed_crud.parsing import SchemaParser
from typed_crud.types import ModelTypeDefinition


def describe_model(model: ModelTypeDefinition) -> dict[str, Any]:
    """Describe a model's fields, virtuals and synthesized operations."""
    return {
        "model": model.name,
        "collection": model.collection_name,
        "fields": [{"name": f.name, "type": f.type_def.name, "kind": f.kind.value} for f in model.fields],
        "virtuals": [
            {
                "name": v.name,
                "target": v.target.name,
                "foreign_field": v.foreign_field,
                "many": v.is_array,
            }
            for v in model.virtuals
        ],
        "operations": [
            {
                "name": d.name,
                "field": d.field_name,
                "action": d.action.name,
                "payload_key": d.payload_key,
                "batch": d.batch,
            }
            for d in synthesize_operations(model).values()
        ],
    }


def format_text(descriptions: list[dict[str, Any]]) -> str:
    """Render model descriptions as indented text."""
    lines: list[str] = []
    for description in descriptions:
        lines.append(f"{description['model']} ({description['collection']})")
        for f in description["fields"]:
            lines.append(f"  {f['name']}: {f['type']} [{f['kind']}]")
        for v in description["virtuals"]:
            target = f"{v['target']}[]" if v["many"] else v["target"]
            lines.append(f"  virtual {v['name']}: {target} by {v['foreign_field']}")
        for op in description["operations"]:
            payload = f"{op['payload_key']}[]" if op["batch"] else op["payload_key"]
            lines.append(f"  {op['name']}({{id, {payload}}}) -> {op['action']} {op['field']}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print the CRUD and relationship operations synthesized for a schema"
    )
    parser.add_argument("schema_file", help="Schema definition file")
    parser.add_argument("-m", "--model", help="Only describe this model")
    parser.add_argument("-f", "--format", choices=["text", "json"], default="text", help="Output format")

    args = parser.parse_args(argv)

    path = Path(args.schema_file)
    if not path.exists():
        print(f"Error: {args.schema_file} not found", file=sys.stderr)
        return 1

    try:
        registry = SchemaParser().parse(path.read_text())
        if args.model:
            models = [registry.get_model(args.model)]
        else:
            models = registry.list_models()
        descriptions = [describe_model(model) for model in models]
    except (SyntaxError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(descriptions, indent=2))
    else:
        print(format_text(descriptions))
    return 0


if __name__ == "__main__":
    sys.exit(main())
