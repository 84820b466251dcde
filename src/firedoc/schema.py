"""Pydantic schemas for wire values, structured queries and credentials."""

from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .constants import CompositeOperator, Direction, Operator, UnaryOperator

WireValue = Dict[str, Any]


# ---------------------------------------------------------------------------
# Special native values
# ---------------------------------------------------------------------------


class GeoPoint(BaseModel):
    """A latitude/longitude pair, the native side of `geoPointValue`."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(0.0, description="Latitude in degrees.")
    longitude: float = Field(0.0, description="Longitude in degrees.")


class Reference(BaseModel):
    """A full document resource name, serialized as `referenceValue`.

    Used mainly as a cursor value when ordering by `__name__`.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="projects/{p}/databases/{d}/documents/{path}")


# ---------------------------------------------------------------------------
# Structured query pieces
# ---------------------------------------------------------------------------


class FieldFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_path: str
    op: Operator
    value: WireValue

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldFilter": {
                "field": {"fieldPath": self.field_path},
                "op": self.op.value,
                "value": self.value,
            }
        }


class UnaryFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_path: str
    op: UnaryOperator

    def to_dict(self) -> Dict[str, Any]:
        return {"unaryFilter": {"field": {"fieldPath": self.field_path}, "op": self.op.value}}


class CompositeFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: CompositeOperator = CompositeOperator.AND
    filters: Tuple["Filter", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compositeFilter": {
                "op": self.op.value,
                "filters": [f.to_dict() for f in self.filters],
            }
        }


Filter = Union[FieldFilter, UnaryFilter, CompositeFilter]
CompositeFilter.model_rebuild()


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_path: str
    direction: Direction = Direction.ASCENDING

    def to_dict(self) -> Dict[str, Any]:
        return {"field": {"fieldPath": self.field_path}, "direction": self.direction.value}


class Cursor(BaseModel):
    """Cursor values align positionally with the query's order clauses."""

    model_config = ConfigDict(frozen=True)

    values: Tuple[WireValue, ...] = ()
    before: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"values": list(self.values), "before": self.before}


class QueryRequest(BaseModel):
    """One finalized read request. Frozen: never mutated after build.

    `identifier` and `parent` are not part of the structured query; they tell
    the caller whether to address a document directly and which parent
    document (for subcollections) the query runs under.
    """

    model_config = ConfigDict(frozen=True)

    collection_id: str
    filters: Tuple[Filter, ...] = ()
    order_by: Tuple[Order, ...] = ()
    start_at: Optional[Cursor] = None
    end_at: Optional[Cursor] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    identifier: Optional[str] = None
    parent: Optional[str] = None

    @property
    def where(self) -> Optional[CompositeFilter]:
        if not self.filters:
            return None
        return CompositeFilter(op=CompositeOperator.AND, filters=self.filters)

    def to_dict(self) -> Dict[str, Any]:
        """Return the `runQuery` request body."""
        query: Dict[str, Any] = {"from": [{"collectionId": self.collection_id}]}
        where = self.where
        if where is not None:
            query["where"] = where.to_dict()
        if self.limit is not None:
            query["limit"] = self.limit
        if self.offset is not None:
            query["offset"] = self.offset
        if self.order_by:
            query["orderBy"] = [o.to_dict() for o in self.order_by]
        if self.start_at is not None:
            query["startAt"] = self.start_at.to_dict()
        if self.end_at is not None:
            query["endAt"] = self.end_at.to_dict()
        return {"structuredQuery": query}


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class ServiceAccountInfo(BaseModel):
    """Service account key file contents."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["service_account"] = "service_account"
    project_id: Optional[str] = None
    private_key_id: Optional[str] = None
    private_key: str
    client_email: str
    client_id: Optional[str] = None
    token_uri: Optional[str] = None


class AuthorizedUserInfo(BaseModel):
    """`gcloud auth application-default login` credential file contents."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["authorized_user"] = "authorized_user"
    client_id: str
    client_secret: str
    refresh_token: str
    quota_project_id: Optional[str] = None


CredentialInfo = Union[ServiceAccountInfo, AuthorizedUserInfo]


class AccessToken(BaseModel):
    access_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"


__all__ = [
    "WireValue",
    "GeoPoint",
    "Reference",
    "FieldFilter",
    "UnaryFilter",
    "CompositeFilter",
    "Filter",
    "Order",
    "Cursor",
    "QueryRequest",
    "ServiceAccountInfo",
    "AuthorizedUserInfo",
    "CredentialInfo",
    "AccessToken",
]

