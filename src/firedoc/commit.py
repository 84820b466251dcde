"""Commit builder for single-document writes with field transforms.

Produces the body of a ``:commit`` call::

    {"writes": [{"update": {"fields": ..., "name": ...},
                 "updateMask": {"fieldPaths": [...]},
                 "updateTransforms": [...]}]}

Plain data keys are written and listed in the mask. Keys routed to a
transform (`increment`, `append`, ...) are left out of both, so one commit can
set some fields and transform others atomically.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from .codec import ValueCodec, value_codec
from .constants import DELETE_FIELD
from .exceptions import InvalidFieldError, MissingFilters
from .utils import quote_field_name

__all__ = ("Commit",)


class Commit:
    """Accumulate one document write.

    Args:
        collection: Collection path of the document
        data: Fields to set; `DELETE_FIELD` values delete the field
        document_root: ``projects/{p}/databases/{d}/documents``
        end: Callback receiving the commit body; `end()` returns its result
        codec: Value codec used for fields and transform operands
    """

    def __init__(
        self,
        collection: str,
        data: Optional[Mapping] = None,
        *,
        document_root: str,
        end: Optional[Callable[[Dict[str, Any]], Any]] = None,
        codec: ValueCodec = value_codec,
    ) -> None:
        self.collection = collection.strip("/")
        self.document_root = document_root
        self.codec = codec
        self._data: Dict[str, Any] = dict(data or {})
        self._end = end
        self._identifier: Optional[str] = None
        self._transforms: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"<Commit collection={self.collection!r} fields={len(self._data)} transforms={len(self._transforms)}>"

    def identifier(self, identifier: str) -> "Commit":
        if not identifier or "/" in identifier:
            raise InvalidFieldError("Invalid document identifier", identifier=identifier)
        self._identifier = identifier
        return self

    def _transform(self, field: str, **transform: Any) -> None:
        self._data.pop(field, None)
        self._transforms.append({"fieldPath": quote_field_name(field), **transform})

    def _array_operand(self, field: str, value: Any) -> Dict[str, Any]:
        if not isinstance(value, (list, tuple)):
            raise InvalidFieldError("Array transform requires a list value", field=field, value=value)
        return self.codec.serialize(value, field)["arrayValue"]

    def increment(self, data: Mapping) -> "Commit":
        for field, value in data.items():
            self._transform(field, increment=self.codec.serialize(value, field))
        return self

    def maximum(self, data: Mapping) -> "Commit":
        for field, value in data.items():
            self._transform(field, maximum=self.codec.serialize(value, field))
        return self

    def minimum(self, data: Mapping) -> "Commit":
        for field, value in data.items():
            self._transform(field, minimum=self.codec.serialize(value, field))
        return self

    def append(self, data: Mapping) -> "Commit":
        """Add each element not already present in the array field."""
        for field, value in data.items():
            self._transform(field, appendMissingElements=self._array_operand(field, value))
        return self

    def remove(self, data: Mapping) -> "Commit":
        """Remove every occurrence of each element from the array field."""
        for field, value in data.items():
            self._transform(field, removeAllFromArray=self._array_operand(field, value))
        return self

    def server_timestamp(self, *fields: str) -> "Commit":
        for field in fields:
            self._transform(field, setToServerValue="REQUEST_TIME")
        return self

    def build(self) -> Dict[str, Any]:
        """Return the commit body.

        Raises:
            MissingFilters: If no identifier was given
        """
        if not self._identifier:
            raise MissingFilters("Identifier required for commit", collection=self.collection)

        field_paths: List[str] = []
        fields: Dict[str, Any] = {}
        for key, value in self._data.items():
            field_paths.append(quote_field_name(key))
            if value is DELETE_FIELD:
                continue
            fields[key] = self.codec.serialize(value, key)

        name = f"{self.document_root}/{self.collection}/{self._identifier}"
        write: Dict[str, Any] = {
            "update": {"fields": fields, "name": name},
            "updateMask": {"fieldPaths": field_paths},
        }
        if self._transforms:
            write["updateTransforms"] = list(self._transforms)
        return {"writes": [write]}

    def end(self) -> Any:
        body = self.build()
        if self._end is None:
            return body
        return self._end(body)
