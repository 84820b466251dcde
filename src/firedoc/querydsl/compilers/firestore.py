"""Firestore structured-query where compiler.

Transforms universal Q node dicts into Firestore filters.

Firestore supports:
- Field comparisons: EQUAL, NOT_EQUAL, LESS_THAN(_OR_EQUAL), GREATER_THAN(_OR_EQUAL)
- Membership: IN, NOT_IN, ARRAY_CONTAINS, ARRAY_CONTAINS_ANY
- Unary checks: IS_NULL, IS_NOT_NULL, IS_NAN, IS_NOT_NAN
- Composite AND / OR

Limitations:
- No NOT composite; `~Q(...)` is rejected
- `$startswith` is expanded to a range pair on the same field
"""

from typing import Any, Dict, List, Optional, Union

from ...codec import ValueCodec, value_codec
from ...constants import CompositeOperator, Operator, UnaryOperator
from ...exceptions import InvalidFieldError
from ...query import make_field_filter, prefix_filters
from ...schema import CompositeFilter, Filter, UnaryFilter
from ..q import AND, NOT, OR, Q

__all__ = (
    "FirestoreWhereCompiler",
    "firestore_where",
    "format_value",
    "normalize_where_input",
)


def normalize_where_input(where: Any) -> Dict[str, Any]:
    """Return the neutral dict form of a `Q` node; dicts pass through.

    Raises:
        TypeError: If `where` is neither
    """
    if isinstance(where, Q):
        return where.to_dict()
    if isinstance(where, dict):
        return where
    raise TypeError(f"where parameter must be a Q object or dict, got {type(where).__name__}")


def format_value(value: Any) -> str:
    """Render a native value for debug expressions."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return "'" + value.replace("'", "\\'") + "'"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


class FirestoreWhereCompiler:
    """Compile universal query nodes into Firestore filter models."""

    _OP_MAP = {
        "$eq": Operator.EQUAL,
        "$ne": Operator.NOT_EQUAL,
        "$gt": Operator.GREATER_THAN,
        "$gte": Operator.GREATER_THAN_OR_EQUAL,
        "$lt": Operator.LESS_THAN,
        "$lte": Operator.LESS_THAN_OR_EQUAL,
        "$in": Operator.IN,
        "$nin": Operator.NOT_IN,
        "$contains": Operator.ARRAY_CONTAINS,
        "$contains_any": Operator.ARRAY_CONTAINS_ANY,
    }

    _EXPR_MAP = {
        "$eq": "=",
        "$ne": "!=",
        "$gt": ">",
        "$gte": ">=",
        "$lt": "<",
        "$lte": "<=",
        "$in": "IN",
        "$nin": "NOT IN",
        "$contains": "CONTAINS",
        "$contains_any": "CONTAINS ANY",
        "$startswith": "STARTS WITH",
    }

    _SPECIAL_OPS = {"$startswith", "$isnull", "$isnan"}

    def to_filters(self, where: Union[Dict[str, Any], Any], codec: ValueCodec = value_codec) -> List[Filter]:
        """Compile to a list of filters meant to be joined with AND.

        Args:
            where: Q object or universal dict format
            codec: Codec used to serialize filter values

        Raises:
            InvalidFieldError: For `$not` or an unknown operator
        """
        node = normalize_where_input(where)
        return self._node_to_filters(node, codec)

    def to_where(self, where: Union[Dict[str, Any], Any]) -> Optional[Dict[str, Any]]:
        """Compile to the ``where`` member of a structured query."""
        filters = self.to_filters(where)
        if not filters:
            return None
        if len(filters) == 1:
            return filters[0].to_dict()
        return CompositeFilter(op=CompositeOperator.AND, filters=tuple(filters)).to_dict()

    def to_expr(self, where: Union[Dict[str, Any], Any]) -> str:
        """Convert universal node to a readable string for debugging."""
        return self._node_to_expr(normalize_where_input(where))

    def _node_to_filters(self, node: Dict[str, Any], codec: ValueCodec) -> List[Filter]:
        if AND in node:
            filters: List[Filter] = []
            for child in node[AND]:
                filters.extend(self._node_to_filters(child, codec))
            return filters
        if OR in node:
            branches = [self._combine(self._node_to_filters(child, codec)) for child in node[OR]]
            return [CompositeFilter(op=CompositeOperator.OR, filters=tuple(b for b in branches if b is not None))]
        if NOT in node:
            raise InvalidFieldError("Operator $not is not supported by Firestore", field="$not", operation="search")

        filters = []
        for field, expr in node.items():
            if not isinstance(expr, dict):
                expr = {"$eq": expr}
            for op, value in expr.items():
                filters.extend(self._field_filters(field, op, value, codec))
        return filters

    def _field_filters(self, field: str, op: str, value: Any, codec: ValueCodec) -> List[Filter]:
        if op == "$startswith":
            return list(prefix_filters(field, value, codec))
        if op == "$isnull":
            return [UnaryFilter(field_path=field, op=UnaryOperator.IS_NULL if value else UnaryOperator.IS_NOT_NULL)]
        if op == "$isnan":
            return [UnaryFilter(field_path=field, op=UnaryOperator.IS_NAN if value else UnaryOperator.IS_NOT_NAN)]
        if op not in self._OP_MAP:
            supported = sorted(set(self._OP_MAP) | self._SPECIAL_OPS)
            raise InvalidFieldError(
                f"Operator {op} is not supported. Supported: {', '.join(supported)}",
                field=field,
                operation="search",
            )
        return [make_field_filter(field, self._OP_MAP[op], value, codec)]

    @staticmethod
    def _combine(filters: List[Filter]) -> Optional[Filter]:
        if not filters:
            return None
        if len(filters) == 1:
            return filters[0]
        return CompositeFilter(op=CompositeOperator.AND, filters=tuple(filters))

    def _node_to_expr(self, node: Dict[str, Any]) -> str:
        if AND in node:
            return " AND ".join(self._wrap(self._node_to_expr(n)) for n in node[AND])
        if OR in node:
            return " OR ".join(self._wrap(self._node_to_expr(n)) for n in node[OR])
        if NOT in node:
            return "NOT (" + self._node_to_expr(node[NOT]) + ")"

        parts = []
        for field, expr in node.items():
            if not isinstance(expr, dict):
                expr = {"$eq": expr}
            for op, value in expr.items():
                if op == "$isnull":
                    parts.append(f"{field} IS {'NULL' if value else 'NOT NULL'}")
                elif op == "$isnan":
                    parts.append(f"{field} IS {'NAN' if value else 'NOT NAN'}")
                else:
                    parts.append(f"{field} {self._EXPR_MAP.get(op, op)} {format_value(value)}")
        return " AND ".join(parts)

    @staticmethod
    def _wrap(expr: str) -> str:
        return f"({expr})" if " AND " in expr or " OR " in expr else expr


firestore_where = FirestoreWhereCompiler()
