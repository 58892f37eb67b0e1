"""Tests for list request parsing and query translation."""

import re

import pytest
from bson import ObjectId

from typed_crud.errors import MalformedFilterValueError, MalformedRequestError
from typed_crud.query import (
    ListQuery,
    Matcher,
    QueryTranslator,
    SortSpec,
    WhereClause,
    parse_object_value,
    parse_regex_value,
)


class TestListQuery:
    """Tests for ListQuery.from_request."""

    def test_defaults(self):
        """Test that an empty request selects everything."""
        query = ListQuery.from_request({})

        assert query == ListQuery()
        assert ListQuery.from_request(None) == ListQuery()

    def test_full_request(self):
        """Test every component of a list request."""
        query = ListQuery.from_request(
            {
                "limit": 10,
                "skip": 5,
                "sort": [{"field": "age", "value": -1}, {"field": "name", "value": "asc"}],
                "fields": ["name"],
                "where": [{"field": "name", "value": "/juan/i", "matcher": "REGEX"}],
                "populate": ["relatedModels"],
            }
        )

        assert query.limit == 10
        assert query.skip == 5
        assert query.sort == [SortSpec("age", -1), SortSpec("name", 1)]
        assert query.fields == ["name"]
        assert query.where == [WhereClause("name", "/juan/i", Matcher.REGEX)]
        assert query.populate == ["relatedModels"]

    @pytest.mark.parametrize("limit", [-1, "10", 1.5, True])
    def test_invalid_limit(self, limit):
        """Test that limit must be a non-negative integer."""
        with pytest.raises(MalformedRequestError):
            ListQuery.from_request({"limit": limit})

    def test_invalid_sort_direction(self):
        """Test that sort directions are restricted."""
        with pytest.raises(MalformedRequestError):
            ListQuery.from_request({"sort": [{"field": "age", "value": 2}]})

    def test_matcher_parsing(self):
        """Test matcher names, wire numbers and defaults."""
        assert Matcher.parse(None) is Matcher.STRING
        assert Matcher.parse("object") is Matcher.OBJECT
        assert Matcher.parse(2) is Matcher.REGEX
        with pytest.raises(MalformedRequestError):
            Matcher.parse("FUZZY")

    def test_where_must_be_list(self):
        """Test that where must be a list of objects."""
        with pytest.raises(MalformedRequestError):
            ListQuery.from_request({"where": {"field": "name", "value": "x"}})


class TestRegexValues:
    """Tests for parse_regex_value."""

    def test_bare_pattern(self):
        """Test a bare string is the pattern with no flags."""
        pattern = parse_regex_value("Juan Diego")

        assert pattern.pattern == "Juan Diego"
        assert not pattern.flags & re.IGNORECASE

    def test_delimited_pattern(self):
        """Test /pattern/ without flags."""
        assert parse_regex_value("/Juan Diego/").pattern == "Juan Diego"

    def test_flags(self):
        """Test i/m flags map and g is ignored."""
        pattern = parse_regex_value("/juan diego/igm")

        assert pattern.pattern == "juan diego"
        assert pattern.flags & re.IGNORECASE
        assert pattern.flags & re.MULTILINE
        assert pattern.search("JUAN DIEGO")

    def test_slash_inside_pattern(self):
        """Test that only the last slash closes the literal."""
        assert parse_regex_value("/a/b/").pattern == "a/b"

    def test_non_flag_suffix_is_pattern(self):
        """Test a value whose tail is not all flags is used whole."""
        assert parse_regex_value("/path/to").pattern == "/path/to"
        assert parse_regex_value("/juan/q").pattern == "/juan/q"
        assert parse_regex_value("/path/to").search("a/path/to")

    def test_invalid_pattern(self):
        """Test that uncompilable patterns are rejected."""
        with pytest.raises(MalformedFilterValueError):
            parse_regex_value("/(juan/")

    def test_non_string(self):
        """Test that regex values must be strings."""
        with pytest.raises(MalformedFilterValueError):
            parse_regex_value(42)


class TestObjectValues:
    """Tests for parse_object_value."""

    def test_json_text(self):
        """Test JSON operator objects are parsed."""
        assert parse_object_value('{"$gt":30,"$lt":40}') == {"$gt": 30, "$lt": 40}
        assert parse_object_value('{"$in": ["Juan Diego"]}') == {"$in": ["Juan Diego"]}

    def test_decoded_mapping(self):
        """Test already-decoded mappings pass through."""
        assert parse_object_value({"$gt": 30}) == {"$gt": 30}

    def test_invalid_json(self):
        """Test malformed JSON is rejected."""
        with pytest.raises(MalformedFilterValueError):
            parse_object_value("{'$gt': 30")


class TestQueryTranslator:
    """Tests for QueryTranslator."""

    def test_sort_and_projection(self, registry):
        """Test sort order is kept and id maps to _id."""
        translator = QueryTranslator(registry.get_model("Sample"))

        translated = translator.translate(
            ListQuery(
                sort=[SortSpec("age", -1), SortSpec("id", 1)],
                fields=["name", "id", "married"],
                limit=3,
                skip=1,
            )
        )

        assert translated.sort == [("age", -1), ("_id", 1)]
        assert translated.projection == {"name": 1, "married": 1}
        assert translated.limit == 3
        assert translated.skip == 1

    def test_no_fields_selects_everything(self):
        """Test that an empty field list yields no projection."""
        assert QueryTranslator().translate(ListQuery()).projection is None

    def test_string_literal(self, registry):
        """Test literal equality."""
        translator = QueryTranslator(registry.get_model("Sample"))

        translated = translator.translate(ListQuery(where=[WhereClause("name", "Juan Diego")]))

        assert translated.filter == {"name": "Juan Diego"}

    def test_identifier_cast(self, registry):
        """Test values on id and reference fields become ObjectIds."""
        translator = QueryTranslator(registry.get_model("Sample"))
        oid = ObjectId()

        translated = translator.translate(
            ListQuery(
                where=[
                    WhereClause("id", str(oid)),
                    WhereClause("bestFriend", str(oid)),
                    WhereClause("relatedModels", f'{{"$in": ["{oid}"]}}', Matcher.OBJECT),
                    WhereClause("name", str(oid)),
                ]
            )
        )

        assert translated.filter["_id"] == oid
        assert translated.filter["bestFriend"] == oid
        assert translated.filter["relatedModels"] == {"$in": [oid]}
        assert translated.filter["name"] == str(oid)

    def test_same_field_combined(self):
        """Test several clauses on one field are combined with $and."""
        translated = QueryTranslator().translate(
            ListQuery(
                where=[
                    WhereClause("age", '{"$gt": 30}', Matcher.OBJECT),
                    WhereClause("age", '{"$lt": 40}', Matcher.OBJECT),
                    WhereClause("name", "Juan Diego"),
                ]
            )
        )

        assert translated.filter == {
            "name": "Juan Diego",
            "$and": [{"age": {"$gt": 30}}, {"age": {"$lt": 40}}],
        }

    def test_regex_clause(self):
        """Test REGEX clauses compile to patterns."""
        translated = QueryTranslator().translate(
            ListQuery(where=[WhereClause("name", "/juan/i", Matcher.REGEX)])
        )

        assert isinstance(translated.filter["name"], re.Pattern)
        assert translated.filter["name"].flags & re.IGNORECASE

    def test_malformed_value_fails(self):
        """Test a malformed OBJECT value fails the translation."""
        with pytest.raises(MalformedFilterValueError):
            QueryTranslator().translate(ListQuery(where=[WhereClause("age", "{", Matcher.OBJECT)]))
