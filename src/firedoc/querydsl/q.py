"""Composable filter expressions.

`Q` nodes hold ``field__lookup=value`` conditions and combine with ``&`` and
``|``::

    adults = Q(age__gte=18) & Q(status__in=["active", "trial"])
    local = Q(city="Lyon") | Q(address__city="Lyon")
    db.search("users").where(adults & local).end()

Double underscores inside the field part address nested map fields
(``address__city`` is ``address.city``). A key whose last part is not a known
lookup is an equality test on the whole path.

Nodes first turn into a backend-neutral dict (``{"age": {"$gte": 18}}``,
``{"$or": [...]}``) which `firedoc.querydsl.compilers.firestore` compiles into
structured-query filters.
"""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..constants import NAME_FIELD

if TYPE_CHECKING:
    from ..codec import ValueCodec
    from ..schema import Filter

AND = "$and"
OR = "$or"
NOT = "$not"

LOOKUPS: Dict[str, str] = {
    "eq": "$eq",
    "ne": "$ne",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
    "nin": "$nin",
    "contains": "$contains",
    "contains_any": "$contains_any",
    "startswith": "$startswith",
    "isnull": "$isnull",
    "isnan": "$isnan",
}


def split_lookup(key: str) -> Tuple[str, str]:
    """Split ``info__lang__ne`` into ``("info.lang", "$ne")``.

    ``__name__`` is kept whole so documents can be filtered by name.
    """
    head, sep, lookup = key.rpartition("__")
    if sep and head and lookup in LOOKUPS:
        field, op = head, LOOKUPS[lookup]
    else:
        field, op = key, "$eq"
    if field == NAME_FIELD:
        return field, op
    return field.replace("__", "."), op


class Q:
    """Boolean filter node.

    A leaf holds keyword conditions, all of which must hold. An inner node
    holds children joined by ``$and`` or ``$or``; chains of the same
    connector are kept flat, so ``a & b & c`` is one node with three children.
    ``~`` marks a node negated. Firestore has no NOT, so negated nodes only
    survive until compilation.
    """

    def __init__(self, negate: bool = False, **filters: Any):
        self.filters: Dict[str, Any] = filters
        self.children: List[Q] = []
        self.connector = AND
        self.negate = negate

    @classmethod
    def _join(cls, connector: str, left: Q, right: Q) -> Q:
        node = cls()
        node.connector = connector
        for side in (left, right):
            if side.children and side.connector == connector and not side.negate:
                node.children.extend(side.children)
            else:
                node.children.append(side)
        return node

    def __and__(self, other: Q) -> Q:
        return self._join(AND, self, other)

    def __or__(self, other: Q) -> Q:
        return self._join(OR, self, other)

    def __invert__(self) -> Q:
        q = deepcopy(self)
        q.negate = not self.negate
        return q

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Q):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return str(self.to_dict())

    def __repr__(self) -> str:
        return f"<Q: {self.to_dict()}>"

    def conditions(self) -> Dict[str, Dict[str, Any]]:
        """Return this leaf's conditions keyed by dotted field path."""
        result: Dict[str, Dict[str, Any]] = {}
        for key, value in self.filters.items():
            field, op = split_lookup(key)
            result.setdefault(field, {})[op] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Return the backend-neutral dict form of this node."""
        if self.children:
            node: Dict[str, Any] = {self.connector: [child.to_dict() for child in self.children]}
        else:
            node = self.conditions()
        return {NOT: node} if self.negate else node

    # Firestore compilation
    def compile(self, codec: Optional[ValueCodec] = None) -> List[Filter]:
        """Compile into filters meant to be joined with AND.

        Raises:
            InvalidFieldError: For negated nodes or unsupported lookups
        """
        from .compilers.firestore import firestore_where

        if codec is None:
            return firestore_where.to_filters(self)
        return firestore_where.to_filters(self, codec)

    def to_where(self) -> Optional[Dict[str, Any]]:
        """Return the structured-query ``where`` member, or None when empty."""
        from .compilers.firestore import firestore_where

        return firestore_where.to_where(self)

    def to_expr(self) -> str:
        """Render a readable expression, for logs and debugging."""
        from .compilers.firestore import firestore_where

        return firestore_where.to_expr(self)
