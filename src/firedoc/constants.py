"""
Wire-protocol constants shared by the codec and the query builders.
"""

from enum import Enum


class ValueKind(str, Enum):
    """Tags of the wire value union, in the order lenient parsing probes them."""

    INTEGER = "integerValue"
    DOUBLE = "doubleValue"
    ARRAY = "arrayValue"
    BYTES = "bytesValue"
    BOOLEAN = "booleanValue"
    GEO_POINT = "geoPointValue"
    MAP = "mapValue"
    NULL = "nullValue"
    REFERENCE = "referenceValue"
    STRING = "stringValue"
    TIMESTAMP = "timestampValue"


VALUE_TAGS = frozenset(kind.value for kind in ValueKind)


class Operator(str, Enum):
    IN = "IN"
    NOT_IN = "NOT_IN"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    ARRAY_CONTAINS = "ARRAY_CONTAINS"
    ARRAY_CONTAINS_ANY = "ARRAY_CONTAINS_ANY"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"


# Operators whose value is a list of alternatives
DISJUNCTION_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN, Operator.ARRAY_CONTAINS_ANY})


class UnaryOperator(str, Enum):
    IS_NAN = "IS_NAN"
    IS_NOT_NAN = "IS_NOT_NAN"
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"


class CompositeOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class Direction(str, Enum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


# Document identity pseudo-field, used as the default ordering and cursor anchor
NAME_FIELD = "__name__"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Non-finite doubles travel as strings in proto3 JSON
NON_FINITE_DOUBLES = {
    "NaN": float("nan"),
    "Infinity": float("inf"),
    "-Infinity": float("-inf"),
}


class _DeleteField:
    """Sentinel: list the field in the update mask without a value, deleting it."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    def __reduce__(self):
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()
