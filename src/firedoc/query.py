"""Fluent structured-query builder.

`QueryBuilder` accumulates filters, order clauses, cursors and bounds, then
`build()` validates them and returns one frozen `QueryRequest`. A builder
belongs to a single logical request: the `Database` facade creates a fresh
one per call, and instances are not safe for concurrent mutation.

Two modes:

- selector (``selector=True``): resolves exactly one document, through either
  an `identifier` or filters, never both and never neither.
- search (default): any number of filters, with ordering, cursors and bounds.

Typical usage::

    request = (
        QueryBuilder("users")
        .equal({"account": "a1"})
        .starts_with({"name": "Jo"})
        .descending("age")
        .limit(10)
        .build()
    )
    body = request.to_dict()
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from .codec import ValueCodec, value_codec
from .constants import DISJUNCTION_OPERATORS, NAME_FIELD, Direction, Operator, UnaryOperator
from .exceptions import ConflictingSelector, InvalidCursorError, InvalidFieldError, MissingFilters
from .schema import Cursor, FieldFilter, Filter, Order, QueryRequest, Reference, UnaryFilter
from .settings import settings
from .utils import prefix_upper_bound, split_collection_path

__all__ = ("QueryBuilder", "make_field_filter", "prefix_filters")

End = Callable[[QueryRequest], Any]


def make_field_filter(
    field: str,
    op: Operator,
    value: Any,
    codec: ValueCodec = value_codec,
    max_disjunction: Optional[int] = None,
) -> FieldFilter:
    """Build one field filter, serializing `value`.

    Raises:
        InvalidFieldError: If a disjunction operator gets anything but a
            non-empty list within the configured size limit
    """
    if op in DISJUNCTION_OPERATORS:
        limit = max_disjunction if max_disjunction is not None else settings.FIRESTORE_MAX_DISJUNCTION
        if not isinstance(value, (list, tuple)):
            raise InvalidFieldError(f"{op.value} requires a list value", field=field, value=value)
        if not value:
            raise InvalidFieldError(f"{op.value} requires a non-empty list", field=field)
        if len(value) > limit:
            raise InvalidFieldError(
                f"{op.value} accepts at most {limit} values",
                field=field,
                count=len(value),
            )
    return FieldFilter(field_path=field, op=op, value=codec.serialize(value, field))


def prefix_filters(field: str, prefix: Any, codec: ValueCodec = value_codec) -> List[FieldFilter]:
    """Expand a prefix match into ``field >= prefix AND field < upper_bound``."""
    upper = prefix_upper_bound(prefix, field)
    return [
        FieldFilter(field_path=field, op=Operator.GREATER_THAN_OR_EQUAL, value=codec.serialize(prefix, field)),
        FieldFilter(field_path=field, op=Operator.LESS_THAN, value=codec.serialize(upper, field)),
    ]


class QueryBuilder:
    """Accumulate one structured query.

    Args:
        collection: Collection id, or a nested path such as ``rooms/r1/messages``
        selector: Require exactly one of identifier or filters at build time
        end: Callback receiving the built request; `end()` returns its result
        codec: Value codec used for every filter and cursor value
        document_root: ``projects/{p}/databases/{d}/documents`` used by `reference`
    """

    def __init__(
        self,
        collection: str,
        *,
        selector: bool = False,
        end: Optional[End] = None,
        codec: ValueCodec = value_codec,
        document_root: Optional[str] = None,
    ) -> None:
        self.parent, self.collection_id = split_collection_path(collection)
        self.collection = collection.strip("/")
        self.selector = selector
        self.codec = codec
        self.document_root = document_root
        self._end = end
        self._identifier: Optional[str] = None
        self._filters: List[Filter] = []
        self._order_by: List[Order] = []
        self._start_at: List[Dict[str, Any]] = []
        self._end_at: List[Dict[str, Any]] = []
        self._start_before: Optional[bool] = None
        self._end_before: Optional[bool] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"<QueryBuilder collection={self.collection!r} selector={self.selector} "
            f"filters={len(self._filters)} orders={len(self._order_by)}>"
        )

    @property
    def filters(self) -> List[Filter]:
        return list(self._filters)

    # ------------------------------------------------------------------
    # Field predicates
    # ------------------------------------------------------------------
    def _add(self, op: Operator, data: Mapping) -> "QueryBuilder":
        for field, value in data.items():
            self._filters.append(make_field_filter(field, op, value, self.codec))
        return self

    def equal(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.EQUAL, data)

    def not_equal(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.NOT_EQUAL, data)

    def less_than(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.LESS_THAN, data)

    def less_than_or_equal(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.LESS_THAN_OR_EQUAL, data)

    def greater_than(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.GREATER_THAN, data)

    def greater_than_or_equal(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.GREATER_THAN_OR_EQUAL, data)

    def in_(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.IN, data)

    def not_in(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.NOT_IN, data)

    def array_contains(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.ARRAY_CONTAINS, data)

    def array_contains_any(self, data: Mapping) -> "QueryBuilder":
        return self._add(Operator.ARRAY_CONTAINS_ANY, data)

    def starts_with(self, data: Mapping) -> "QueryBuilder":
        """Match string fields by prefix; adds two range filters per field."""
        for field, prefix in data.items():
            self._filters.extend(prefix_filters(field, prefix, self.codec))
        return self

    # Unary predicates
    def _add_unary(self, op: UnaryOperator, fields: tuple) -> "QueryBuilder":
        for field in fields:
            self._filters.append(UnaryFilter(field_path=field, op=op))
        return self

    def is_nan(self, *fields: str) -> "QueryBuilder":
        return self._add_unary(UnaryOperator.IS_NAN, fields)

    def is_not_nan(self, *fields: str) -> "QueryBuilder":
        return self._add_unary(UnaryOperator.IS_NOT_NAN, fields)

    def is_null(self, *fields: str) -> "QueryBuilder":
        return self._add_unary(UnaryOperator.IS_NULL, fields)

    def is_not_null(self, *fields: str) -> "QueryBuilder":
        return self._add_unary(UnaryOperator.IS_NOT_NULL, fields)

    def where(self, q: Any) -> "QueryBuilder":
        """Append filters compiled from a `Q` object or universal dict."""
        from .querydsl.compilers.firestore import firestore_where

        self._filters.extend(firestore_where.to_filters(q, codec=self.codec))
        return self

    # ------------------------------------------------------------------
    # Selector
    # ------------------------------------------------------------------
    def identifier(self, identifier: str) -> "QueryBuilder":
        """Address one document directly by id (selector mode only)."""
        if not self.selector:
            raise InvalidFieldError("Identifier is not a valid search option", collection=self.collection)
        if not identifier or "/" in identifier:
            raise InvalidFieldError("Invalid document identifier", identifier=identifier)
        self._identifier = identifier
        return self

    def reference(self, identifier: str) -> Reference:
        """Return a `Reference` to a document of this builder's collection."""
        if not self.document_root:
            raise InvalidFieldError("Document root unknown, cannot build reference", collection=self.collection)
        return Reference(name=f"{self.document_root}/{self.collection}/{identifier}")

    # ------------------------------------------------------------------
    # Ordering, cursors, bounds
    # ------------------------------------------------------------------
    def _order(self, direction: Direction, fields: tuple) -> "QueryBuilder":
        for field in fields or (NAME_FIELD,):
            self._order_by.append(Order(field_path=field, direction=direction))
        return self

    def ascending(self, *fields: str) -> "QueryBuilder":
        """Order by `fields` ascending; by document name when none are given."""
        return self._order(Direction.ASCENDING, fields)

    def descending(self, *fields: str) -> "QueryBuilder":
        """Order by `fields` descending; by document name when none are given."""
        return self._order(Direction.DESCENDING, fields)

    def limit(self, limit: int) -> "QueryBuilder":
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise InvalidFieldError("limit must be a non-negative integer", value=limit)
        self._limit = limit
        return self

    def offset(self, offset: int) -> "QueryBuilder":
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidFieldError("offset must be a non-negative integer", value=offset)
        self._offset = offset
        return self

    def _cursor(
        self, name: str, target: List[Dict[str, Any]], current: Optional[bool], before: bool, values: tuple
    ) -> bool:
        """Append cursor values; returns the cursor's `before` flag.

        A string lined up with a ``__name__`` order is a document id (or full
        document name) and is sent as a reference when the document root is
        known.

        Raises:
            InvalidCursorError: If inclusive and exclusive calls are mixed on
                the same cursor
        """
        if current is not None and current != before:
            raise InvalidCursorError(
                f"{name} cannot mix inclusive and exclusive positions", cursor=name, collection=self.collection
            )
        if not self._order_by:
            self._order_by.append(Order(field_path=NAME_FIELD, direction=Direction.ASCENDING))
        for value in values:
            index = len(target)
            if (
                isinstance(value, str)
                and self.document_root
                and index < len(self._order_by)
                and self._order_by[index].field_path == NAME_FIELD
            ):
                is_name = value.startswith(self.document_root + "/")
                value = Reference(name=value) if is_name else self.reference(value)
            target.append(self.codec.serialize(value, f"cursor.{index}"))
        return before

    def start_at(self, *values: Any) -> "QueryBuilder":
        """Start at (inclusive) the position given by `values`."""
        self._start_before = self._cursor("startAt", self._start_at, self._start_before, True, values)
        return self

    def start_after(self, *values: Any) -> "QueryBuilder":
        """Start right after the position given by `values`."""
        self._start_before = self._cursor("startAt", self._start_at, self._start_before, False, values)
        return self

    def end_at(self, *values: Any) -> "QueryBuilder":
        """End at (inclusive) the position given by `values`."""
        self._end_before = self._cursor("endAt", self._end_at, self._end_before, False, values)
        return self

    def end_before(self, *values: Any) -> "QueryBuilder":
        """End right before the position given by `values`."""
        self._end_before = self._cursor("endAt", self._end_at, self._end_before, True, values)
        return self

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------
    def _validate(self) -> None:
        if self.selector:
            if self._identifier and self._filters:
                raise ConflictingSelector(
                    "Filters and identifier are mutually exclusive",
                    collection=self.collection,
                    identifier=self._identifier,
                )
            if not self._identifier and not self._filters:
                raise MissingFilters("Filters or identifier required", collection=self.collection)
        for name, values in (("startAt", self._start_at), ("endAt", self._end_at)):
            if len(values) > len(self._order_by):
                raise InvalidCursorError(
                    f"{name} has more values than orderBy clauses",
                    cursor=name,
                    values=len(values),
                    orders=len(self._order_by),
                )

    def build(self) -> QueryRequest:
        """Validate the accumulated state and return the request.

        Repeated calls return equal requests.

        Raises:
            ConflictingSelector: Selector mode with both identifier and filters
            MissingFilters: Selector mode with neither
            InvalidCursorError: A cursor longer than the order clauses
        """
        self._validate()
        return QueryRequest(
            collection_id=self.collection_id,
            parent=self.parent,
            identifier=self._identifier,
            filters=tuple(self._filters),
            order_by=tuple(self._order_by),
            start_at=Cursor(values=tuple(self._start_at), before=bool(self._start_before)) if self._start_at else None,
            end_at=Cursor(values=tuple(self._end_at), before=bool(self._end_before)) if self._end_at else None,
            limit=self._limit,
            offset=self._offset,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Build and return the ``runQuery`` body."""
        return self.build().to_dict()

    def end(self) -> Any:
        """Build the request and hand it to the bound action.

        Without a bound action the built `QueryRequest` is returned.
        """
        request = self.build()
        if self._end is None:
            return request
        return self._end(request)
