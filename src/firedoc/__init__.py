"""
firedoc: a small client for the Firestore REST API.

Exposes the `Database` facade, the query and commit builders, and the value
codec used to move between Python values and Firestore wire values.
"""

from .codec import ValueCodec, parse, parse_fields, serialize, serialize_fields
from .commit import Commit
from .constants import DELETE_FIELD, NAME_FIELD, Direction, Operator, UnaryOperator
from .database import Database
from .query import QueryBuilder
from .querydsl import Q
from .schema import GeoPoint, QueryRequest, Reference

__version__ = "0.1.0"

__all__ = [
    "Database",
    "QueryBuilder",
    "Commit",
    "Q",
    "ValueCodec",
    "serialize",
    "parse",
    "serialize_fields",
    "parse_fields",
    "GeoPoint",
    "Reference",
    "QueryRequest",
    "Operator",
    "UnaryOperator",
    "Direction",
    "NAME_FIELD",
    "DELETE_FIELD",
]
