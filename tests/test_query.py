"""Tests for QueryBuilder and the structured query payload."""

import pytest

from firedoc.constants import Direction, Operator, UnaryOperator
from firedoc.exceptions import (
    ConflictingSelector,
    InvalidCursorError,
    InvalidFieldError,
    InvalidPrefixError,
    MissingFilters,
    UnsupportedValueKind,
)
from firedoc.query import QueryBuilder, make_field_filter, prefix_filters
from firedoc.schema import FieldFilter, Reference, UnaryFilter

ROOT = "projects/p/databases/(default)/documents"


def _field_filter(field, op, value):
    return {"fieldFilter": {"field": {"fieldPath": field}, "op": op, "value": value}}


class TestPredicates:
    """Each predicate appends one filter per mapping entry."""

    def test_equal(self):
        builder = QueryBuilder("users").equal({"name": "foo", "count": 1})
        assert builder.filters == [
            FieldFilter(field_path="name", op=Operator.EQUAL, value={"stringValue": "foo"}),
            FieldFilter(field_path="count", op=Operator.EQUAL, value={"integerValue": "1"}),
        ]

    @pytest.mark.parametrize(
        "method,op",
        [
            ("not_equal", Operator.NOT_EQUAL),
            ("less_than", Operator.LESS_THAN),
            ("less_than_or_equal", Operator.LESS_THAN_OR_EQUAL),
            ("greater_than", Operator.GREATER_THAN),
            ("greater_than_or_equal", Operator.GREATER_THAN_OR_EQUAL),
            ("array_contains", Operator.ARRAY_CONTAINS),
        ],
    )
    def test_comparison_operators(self, method, op):
        builder = getattr(QueryBuilder("users"), method)({"age": 18})
        assert builder.filters == [FieldFilter(field_path="age", op=op, value={"integerValue": "18"})]

    def test_in_serializes_list(self):
        builder = QueryBuilder("users").in_({"role": ["admin", "owner"]})
        (flt,) = builder.filters
        assert flt.op is Operator.IN
        assert flt.value == {"arrayValue": {"values": [{"stringValue": "admin"}, {"stringValue": "owner"}]}}

    def test_not_in_and_array_contains_any(self):
        builder = QueryBuilder("users").not_in({"a": [1]}).array_contains_any({"tags": ["x"]})
        assert [f.op for f in builder.filters] == [Operator.NOT_IN, Operator.ARRAY_CONTAINS_ANY]

    def test_unary_predicates(self):
        builder = QueryBuilder("users").is_null("deleted").is_not_null("email").is_nan("score").is_not_nan("ratio")
        assert builder.filters == [
            UnaryFilter(field_path="deleted", op=UnaryOperator.IS_NULL),
            UnaryFilter(field_path="email", op=UnaryOperator.IS_NOT_NULL),
            UnaryFilter(field_path="score", op=UnaryOperator.IS_NAN),
            UnaryFilter(field_path="ratio", op=UnaryOperator.IS_NOT_NAN),
        ]

    def test_unsupported_value_propagates(self):
        with pytest.raises(UnsupportedValueKind):
            QueryBuilder("users").equal({"callback": print})


class TestDisjunctions:
    """IN, NOT_IN and ARRAY_CONTAINS_ANY validate their list operand."""

    def test_requires_list(self):
        with pytest.raises(InvalidFieldError, match="requires a list"):
            QueryBuilder("users").in_({"role": "admin"})

    def test_requires_non_empty(self):
        with pytest.raises(InvalidFieldError, match="non-empty"):
            QueryBuilder("users").not_in({"role": []})

    def test_size_limit(self):
        with pytest.raises(InvalidFieldError) as exc_info:
            make_field_filter("n", Operator.IN, list(range(4)), max_disjunction=3)
        assert exc_info.value.details["count"] == 4

    def test_at_limit_is_accepted(self):
        flt = make_field_filter("n", Operator.ARRAY_CONTAINS_ANY, list(range(3)), max_disjunction=3)
        assert len(flt.value["arrayValue"]["values"]) == 3


class TestStartsWith:
    """Prefix matching becomes a half-open range."""

    def test_range_filters(self):
        body = QueryBuilder("users").starts_with({"name": "abc"}).to_dict()
        assert body["structuredQuery"]["where"]["compositeFilter"]["filters"] == [
            _field_filter("name", "GREATER_THAN_OR_EQUAL", {"stringValue": "abc"}),
            _field_filter("name", "LESS_THAN", {"stringValue": "abd"}),
        ]

    def test_prefix_filters_helper(self):
        low, high = prefix_filters("name", "Jo")
        assert low.value == {"stringValue": "Jo"}
        assert high.value == {"stringValue": "Jp"}

    def test_non_ascii_prefix(self):
        _, high = prefix_filters("city", "Lyé")
        assert high.value == {"stringValue": "Lyê"}

    def test_surrogate_gap_is_skipped(self):
        _, high = prefix_filters("s", "a\ud7ff")
        assert high.value == {"stringValue": "a\ue000"}

    def test_empty_prefix(self):
        with pytest.raises(InvalidPrefixError):
            QueryBuilder("users").starts_with({"name": ""})

    def test_max_code_point(self):
        with pytest.raises(InvalidPrefixError):
            QueryBuilder("users").starts_with({"name": "a\U0010ffff"})

    def test_non_string_prefix(self):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users").starts_with({"name": 12})


class TestSelectorMode:
    """Selector builders address exactly one document."""

    def test_identifier_only(self):
        request = QueryBuilder("users", selector=True).identifier("u1").build()
        assert request.identifier == "u1"
        assert request.filters == ()

    def test_filters_only(self):
        request = QueryBuilder("users", selector=True).equal({"email": "a@b.c"}).build()
        assert request.identifier is None
        assert len(request.filters) == 1

    def test_identifier_and_filters_conflict(self):
        builder = QueryBuilder("users", selector=True).identifier("u1").equal({"name": "foo"})
        with pytest.raises(ConflictingSelector):
            builder.build()

    def test_neither_is_missing(self):
        with pytest.raises(MissingFilters):
            QueryBuilder("users", selector=True).build()

    def test_identifier_rejected_in_search(self):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users").identifier("u1")

    @pytest.mark.parametrize("identifier", ["", "a/b"])
    def test_invalid_identifier(self, identifier):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users", selector=True).identifier(identifier)

    def test_search_without_filters_is_fine(self):
        assert QueryBuilder("users").to_dict() == {"structuredQuery": {"from": [{"collectionId": "users"}]}}


class TestOrderingAndBounds:
    """Order clauses, limit and offset."""

    def test_default_order_is_document_name(self):
        body = QueryBuilder("users").ascending().to_dict()
        assert body["structuredQuery"]["orderBy"] == [{"field": {"fieldPath": "__name__"}, "direction": "ASCENDING"}]

    def test_orders_accumulate(self):
        request = QueryBuilder("users").descending("age").ascending("name", "email").build()
        assert [(o.field_path, o.direction) for o in request.order_by] == [
            ("age", Direction.DESCENDING),
            ("name", Direction.ASCENDING),
            ("email", Direction.ASCENDING),
        ]

    def test_last_limit_and_offset_win(self):
        body = QueryBuilder("users").limit(5).limit(10).offset(3).offset(0).to_dict()
        assert body["structuredQuery"]["limit"] == 10
        assert body["structuredQuery"]["offset"] == 0

    @pytest.mark.parametrize("value", [-1, 1.5, True, "3"])
    def test_invalid_limit(self, value):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users").limit(value)

    def test_invalid_offset(self):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users").offset(-2)


class TestCursors:
    """Cursor values align with order clauses."""

    def test_start_at_inserts_name_order(self):
        builder = QueryBuilder("users", document_root=ROOT)
        body = builder.start_at(builder.reference("u5")).to_dict()["structuredQuery"]
        assert body["orderBy"] == [{"field": {"fieldPath": "__name__"}, "direction": "ASCENDING"}]
        assert body["startAt"] == {"values": [{"referenceValue": f"{ROOT}/users/u5"}], "before": True}

    def test_document_id_on_name_order_is_reference(self):
        body = QueryBuilder("users", document_root=ROOT).start_at("u5").to_dict()["structuredQuery"]
        assert body["startAt"] == {"values": [{"referenceValue": f"{ROOT}/users/u5"}], "before": True}

    def test_full_document_name_on_name_order(self):
        name = f"{ROOT}/users/u5"
        body = QueryBuilder("users", document_root=ROOT).start_after(name).to_dict()["structuredQuery"]
        assert body["startAt"] == {"values": [{"referenceValue": name}], "before": False}

    def test_string_on_field_order_stays_string(self):
        body = QueryBuilder("users", document_root=ROOT).ascending("city").end_at("Lyon").to_dict()
        assert body["structuredQuery"]["endAt"] == {"values": [{"stringValue": "Lyon"}], "before": False}

    def test_repeated_calls_extend_cursor(self):
        builder = QueryBuilder("users", document_root=ROOT).ascending("age", "__name__").start_at(30).start_at("u1")
        assert builder.to_dict()["structuredQuery"]["startAt"] == {
            "values": [{"integerValue": "30"}, {"referenceValue": f"{ROOT}/users/u1"}],
            "before": True,
        }

    @pytest.mark.parametrize(
        "first,second",
        [("start_at", "start_after"), ("start_after", "start_at"), ("end_at", "end_before"), ("end_before", "end_at")],
    )
    def test_mixed_cursor_kinds_rejected(self, first, second):
        builder = QueryBuilder("users").ascending("age", "city")
        getattr(builder, first)(1)
        with pytest.raises(InvalidCursorError):
            getattr(builder, second)("Lyon")

    def test_start_and_end_kinds_are_independent(self):
        body = QueryBuilder("users").ascending("age").start_after(18).end_at(65).to_dict()["structuredQuery"]
        assert body["startAt"]["before"] is False
        assert body["endAt"]["before"] is False

    def test_existing_order_is_kept(self):
        body = QueryBuilder("users").descending("age").start_after(30).to_dict()["structuredQuery"]
        assert body["orderBy"] == [{"field": {"fieldPath": "age"}, "direction": "DESCENDING"}]
        assert body["startAt"] == {"values": [{"integerValue": "30"}], "before": False}

    def test_end_cursors(self):
        at = QueryBuilder("users").ascending("age").end_at(60).to_dict()["structuredQuery"]["endAt"]
        before = QueryBuilder("users").ascending("age").end_before(60).to_dict()["structuredQuery"]["endAt"]
        assert at == {"values": [{"integerValue": "60"}], "before": False}
        assert before == {"values": [{"integerValue": "60"}], "before": True}

    def test_cursor_longer_than_order_fails(self):
        builder = QueryBuilder("users").ascending("age").start_at(30, "u1")
        with pytest.raises(InvalidCursorError):
            builder.build()

    def test_cursor_aligned_with_orders(self):
        request = QueryBuilder("users").ascending("age", "__name__").start_at(30, "u1").build()
        assert len(request.start_at.values) == 2


class TestPayload:
    """Full runQuery body."""

    def test_full_body(self):
        body = (
            QueryBuilder("users")
            .equal({"account": "a1"})
            .is_not_null("email")
            .descending("age")
            .limit(20)
            .offset(40)
            .to_dict()
        )
        assert body == {
            "structuredQuery": {
                "from": [{"collectionId": "users"}],
                "where": {
                    "compositeFilter": {
                        "op": "AND",
                        "filters": [
                            _field_filter("account", "EQUAL", {"stringValue": "a1"}),
                            {"unaryFilter": {"field": {"fieldPath": "email"}, "op": "IS_NOT_NULL"}},
                        ],
                    }
                },
                "limit": 20,
                "offset": 40,
                "orderBy": [{"field": {"fieldPath": "age"}, "direction": "DESCENDING"}],
            }
        }

    def test_build_is_repeatable(self):
        builder = QueryBuilder("users").equal({"a": 1}).ascending("a").start_at(0)
        assert builder.build() == builder.build()
        assert builder.to_dict() == builder.to_dict()

    def test_nested_collection(self):
        request = QueryBuilder("rooms/r1/messages").build()
        assert request.parent == "rooms/r1"
        assert request.to_dict()["structuredQuery"]["from"] == [{"collectionId": "messages"}]

    @pytest.mark.parametrize("path", ["", "rooms/r1"])
    def test_invalid_collection_path(self, path):
        with pytest.raises(InvalidFieldError):
            QueryBuilder(path)


class TestEndAndReference:
    """Bound actions and document references."""

    def test_end_without_action_returns_request(self):
        request = QueryBuilder("users").limit(1).end()
        assert request.limit == 1

    def test_end_calls_action(self):
        seen = []
        result = QueryBuilder("users", end=lambda req: seen.append(req) or "done").end()
        assert result == "done"
        assert seen[0].collection_id == "users"

    def test_reference(self):
        ref = QueryBuilder("users", document_root=ROOT).reference("u1")
        assert ref == Reference(name=f"{ROOT}/users/u1")

    def test_reference_as_filter_value(self):
        builder = QueryBuilder("posts", document_root=ROOT)
        builder.equal({"author": builder.reference("u1")})
        assert builder.filters[0].value == {"referenceValue": f"{ROOT}/posts/u1"}

    def test_reference_without_root(self):
        with pytest.raises(InvalidFieldError):
            QueryBuilder("users").reference("u1")
