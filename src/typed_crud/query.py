"""Translation of list requests into native store queries.

A list request is a plain mapping::

    {
        "limit": 10,
        "skip": 0,
        "sort": [{"field": "age", "value": -1}, {"field": "name", "value": 1}],
        "fields": ["name", "age"],
        "where": [
            {"field": "age", "value": '{"$gt": 30}', "matcher": "OBJECT"},
            {"field": "name", "value": "/juan/i", "matcher": "REGEX"},
        ],
        "populate": ["relatedModels"],
    }
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bson import ObjectId

from typed_crud.errors import MalformedFilterValueError, MalformedRequestError
from typed_crud.types import ModelTypeDefinition


class Matcher(Enum):
    """Comparison mode of a where clause."""

    STRING = "STRING"
    OBJECT = "OBJECT"
    REGEX = "REGEX"

    @classmethod
    def parse(cls, value: Any) -> Matcher:
        """Parse a matcher given by name or wire number; absent means STRING."""
        if value is None or value == "":
            return cls.STRING
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
        elif isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        raise MalformedRequestError(f"Unknown matcher '{value}'")


REGEX_FLAGS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

# Accepted for compatibility with JavaScript-style literals; no effect on matching
IGNORED_REGEX_FLAGS = "gyu"

_REGEX_LITERAL = re.compile(
    rf"^/(?P<pattern>.*)/(?P<flags>[{''.join(REGEX_FLAGS)}{IGNORED_REGEX_FLAGS}]*)$", re.DOTALL
)

SORT_DIRECTIONS: dict[Any, int] = {
    1: 1,
    -1: -1,
    "1": 1,
    "-1": -1,
    "asc": 1,
    "desc": -1,
}


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: int = 1


@dataclass(frozen=True)
class WhereClause:
    field: str
    value: Any
    matcher: Matcher = Matcher.STRING


@dataclass
class ListQuery:
    """A decoded list request."""

    limit: int = 0
    skip: int = 0
    sort: list[SortSpec] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    where: list[WhereClause] = field(default_factory=list)
    populate: list[str] = field(default_factory=list)

    @classmethod
    def from_request(cls, request: Mapping[str, Any] | None) -> ListQuery:
        """Build a ListQuery from a request mapping.

        Raises:
            MalformedRequestError: If a component has the wrong shape.
        """
        if request is None:
            return cls()
        if not isinstance(request, Mapping):
            raise MalformedRequestError("list expects an object request")
        return cls(
            limit=_non_negative(request.get("limit"), "limit"),
            skip=_non_negative(request.get("skip"), "skip"),
            sort=[_sort_spec(item) for item in _list_of(request.get("sort"), "sort")],
            fields=[_name(item, "fields") for item in _list_of(request.get("fields"), "fields")],
            where=[_where_clause(item) for item in _list_of(request.get("where"), "where")],
            populate=[_name(item, "populate") for item in _list_of(request.get("populate"), "populate")],
        )


@dataclass
class TranslatedQuery:
    """Native query parts, ready for the document store."""

    filter: dict[str, Any] = field(default_factory=dict)
    sort: list[tuple[str, int]] = field(default_factory=list)
    projection: dict[str, int] | None = None
    skip: int = 0
    limit: int = 0
    populate: list[str] = field(default_factory=list)


def _non_negative(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedRequestError(f"'{name}' must be a non-negative integer, got '{value}'")
    return value


def _list_of(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise MalformedRequestError(f"'{name}' must be a list")
    return list(value)


def _name(value: Any, component: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedRequestError(f"'{component}' entries must be non-empty strings")
    return value


def _sort_spec(item: Any) -> SortSpec:
    if not isinstance(item, Mapping):
        raise MalformedRequestError("'sort' entries must be objects")
    direction = item.get("value", 1)
    if isinstance(direction, str):
        direction = direction.lower()
    if (
        isinstance(direction, bool)
        or not isinstance(direction, (int, str))
        or direction not in SORT_DIRECTIONS
    ):
        raise MalformedRequestError(f"Invalid sort direction '{item.get('value')}'")
    return SortSpec(field=_name(item.get("field"), "sort"), direction=SORT_DIRECTIONS[direction])


def _where_clause(item: Any) -> WhereClause:
    if not isinstance(item, Mapping):
        raise MalformedRequestError("'where' entries must be objects")
    return WhereClause(
        field=_name(item.get("field"), "where"),
        value=item.get("value"),
        matcher=Matcher.parse(item.get("matcher")),
    )


def parse_regex_value(value: Any) -> re.Pattern[str]:
    """Compile a ``/pattern/flags`` literal or a bare pattern.

    A value is only read as a literal when everything after its last slash is
    a flag letter; otherwise the whole value is the pattern (``/path/to``).

    Raises:
        MalformedFilterValueError: On a non-string value or bad pattern.
    """
    if not isinstance(value, str):
        raise MalformedFilterValueError(f"Regex value must be a string, got '{value}'")
    pattern, flags = value, 0
    literal = _REGEX_LITERAL.match(value)
    if literal is not None:
        pattern = literal.group("pattern")
        for letter in literal.group("flags"):
            flags |= REGEX_FLAGS.get(letter, 0)
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise MalformedFilterValueError(f"Invalid regex '{value}': {exc}") from exc


def parse_object_value(value: Any) -> Any:
    """Parse the JSON text of an OBJECT clause (already-decoded mappings pass through)."""
    if isinstance(value, Mapping):
        return dict(value)
    if not isinstance(value, str):
        raise MalformedFilterValueError(f"Object value must be JSON text, got '{value}'")
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise MalformedFilterValueError(f"Invalid object value '{value}': {exc.msg}") from exc


class QueryTranslator:
    """Turns a ListQuery into filter, sort and projection for one model."""

    def __init__(self, model: ModelTypeDefinition | None = None) -> None:
        self.model = model

    def translate(self, query: ListQuery) -> TranslatedQuery:
        return TranslatedQuery(
            filter=self.translate_where(query.where),
            sort=[(self._store_name(s.field), s.direction) for s in query.sort],
            projection=self.translate_fields(query.fields),
            skip=query.skip,
            limit=query.limit,
            populate=list(query.populate),
        )

    def translate_fields(self, fields: list[str]) -> dict[str, int] | None:
        """Projection including only ``fields`` (plus ``_id``); None selects everything."""
        projection = {name: 1 for name in fields if name not in ("id", "_id")}
        return projection or None

    def translate_where(self, clauses: list[WhereClause]) -> dict[str, Any]:
        conditions: dict[str, list[Any]] = {}
        for clause in clauses:
            name = self._store_name(clause.field)
            conditions.setdefault(name, []).append(self.where_value(clause))

        result: dict[str, Any] = {}
        combined: list[dict[str, Any]] = []
        for name, values in conditions.items():
            if len(values) == 1:
                result[name] = values[0]
            else:
                combined.extend({name: value} for value in values)
        if combined:
            result["$and"] = combined
        return result

    def where_value(self, clause: WhereClause) -> Any:
        """Native condition value of one clause."""
        if clause.matcher is Matcher.REGEX:
            return parse_regex_value(clause.value)
        if clause.matcher is Matcher.OBJECT:
            value = parse_object_value(clause.value)
        else:
            value = clause.value
        if self._is_identifier(clause.field):
            return _cast_identifiers(value)
        return value

    @staticmethod
    def _store_name(name: str) -> str:
        return "_id" if name == "id" else name

    def _is_identifier(self, name: str) -> bool:
        if name in ("id", "_id"):
            return True
        if self.model is None:
            return False
        field_def = self.model.get_field(name)
        return field_def is not None and field_def.is_identifier


def _cast_identifiers(value: Any) -> Any:
    """Cast valid hex strings to ObjectId, descending into operator objects and lists."""
    if isinstance(value, str):
        return ObjectId(value) if ObjectId.is_valid(value) else value
    if isinstance(value, list):
        return [_cast_identifiers(v) for v in value]
    if isinstance(value, dict):
        return {k: _cast_identifiers(v) for k, v in value.items()}
    return value
