"""Bidirectional codec between native Python values and wire values.

A wire value is a single-key dict whose key names the value kind, e.g.
``{"integerValue": "5"}`` or ``{"mapValue": {"fields": {...}}}``. The codec
keeps one encoder and one decoder per `ValueKind`; adding a kind without
both fails at import time.

Native mapping:

- ``None`` <-> ``nullValue``
- ``bool`` <-> ``booleanValue``
- ``int`` (signed 64-bit range) <-> ``integerValue`` (decimal string)
- ``float`` <-> ``doubleValue``; integral floats inside the int64 range
  serialize as ``integerValue``
- ``datetime`` <-> ``timestampValue`` (ISO-8601, millisecond precision, UTC)
- ``list``/``tuple`` <-> ``arrayValue`` (parses back to ``list``)
- ``Mapping`` with ``str`` keys <-> ``mapValue`` (parses back to ``dict``)
- ``str`` <-> ``stringValue``
- `GeoPoint` <-> ``geoPointValue``
- `Reference` -> ``referenceValue`` (serialize only)

``bytesValue`` and ``referenceValue`` are refused on parse with
`WireValueNotImplemented`; ``bytes`` is refused on serialize.
"""

import math
import re
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from .constants import INT64_MAX, INT64_MIN, NON_FINITE_DOUBLES, VALUE_TAGS, ValueKind
from .exceptions import MalformedWireValue, UnsupportedValueKind, WireValueNotImplemented
from .schema import GeoPoint, Reference, WireValue
from .types import Data, Fields, NativeValue

__all__ = (
    "ValueCodec",
    "value_codec",
    "serialize",
    "parse",
    "serialize_fields",
    "parse_fields",
)

_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


def _join(path: Optional[str], key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str, path: Optional[str] = None) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Fractions beyond microseconds (the service sends nanoseconds) are truncated.
    """
    match = _TIMESTAMP_RE.match(text) if isinstance(text, str) else None
    if match is None:
        raise MalformedWireValue("Invalid timestamp", value=text, path=path)
    base = datetime.strptime(match.group("base"), "%Y-%m-%dT%H:%M:%S")
    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        offset = timezone.utc
    else:
        sign = 1 if tz[0] == "+" else -1
        hours, minutes = int(tz[1:3]), int(tz[4:6])
        offset = timezone(sign * timedelta(hours=hours, minutes=minutes))
    result = base.replace(microsecond=int(fraction), tzinfo=offset)
    return result.astimezone(timezone.utc)


class ValueCodec:
    """Serialize native values to wire values and parse them back.

    Args:
        strict: When True (default) `parse` rejects wire values with more
            than one recognized tag. When False the first tag in
            `ValueKind` order wins, for lenient servers.
    """

    def __init__(self, strict: bool = True) -> None:
        self.strict = strict
        self._encoders: Dict[ValueKind, Callable[[Any, Optional[str]], WireValue]] = {
            ValueKind.NULL: lambda v, p: {"nullValue": None},
            ValueKind.BOOLEAN: lambda v, p: {"booleanValue": v},
            ValueKind.INTEGER: self._encode_integer,
            ValueKind.DOUBLE: self._encode_double,
            ValueKind.TIMESTAMP: lambda v, p: {"timestampValue": format_timestamp(v)},
            ValueKind.STRING: lambda v, p: {"stringValue": v},
            ValueKind.BYTES: self._encode_bytes,
            ValueKind.REFERENCE: lambda v, p: {"referenceValue": v.name},
            ValueKind.ARRAY: self._encode_array,
            ValueKind.GEO_POINT: lambda v, p: {
                "geoPointValue": {"latitude": v.latitude, "longitude": v.longitude}
            },
            ValueKind.MAP: self._encode_map,
        }
        self._decoders: Dict[ValueKind, Callable[[Any, Optional[str]], Any]] = {
            ValueKind.NULL: lambda v, p: None,
            ValueKind.BOOLEAN: lambda v, p: v,
            ValueKind.INTEGER: self._decode_integer,
            ValueKind.DOUBLE: self._decode_double,
            ValueKind.TIMESTAMP: parse_timestamp,
            ValueKind.STRING: lambda v, p: v,
            ValueKind.BYTES: self._decode_not_implemented(ValueKind.BYTES),
            ValueKind.REFERENCE: self._decode_not_implemented(ValueKind.REFERENCE),
            ValueKind.ARRAY: self._decode_array,
            ValueKind.GEO_POINT: lambda v, p: GeoPoint(**{"latitude": 0.0, "longitude": 0.0, **(v or {})}),
            ValueKind.MAP: self._decode_map,
        }
        for table in (self._encoders, self._decoders):
            missing = set(ValueKind) - set(table)
            if missing:
                raise RuntimeError(f"Value kinds without codec entry: {sorted(k.value for k in missing)}")

    # ------------------------------------------------------------------
    # Serialize
    # ------------------------------------------------------------------
    def kind_of(self, value: Any, path: Optional[str] = None) -> ValueKind:
        """Classify a native value. Order matters: bool before int, int before float."""
        if value is None:
            return ValueKind.NULL
        if isinstance(value, bool):
            return ValueKind.BOOLEAN
        if isinstance(value, int):
            return ValueKind.INTEGER
        if isinstance(value, float):
            if math.isfinite(value) and value % 1 == 0 and INT64_MIN <= value <= INT64_MAX:
                return ValueKind.INTEGER
            return ValueKind.DOUBLE
        if isinstance(value, datetime):
            return ValueKind.TIMESTAMP
        if isinstance(value, GeoPoint):
            return ValueKind.GEO_POINT
        if isinstance(value, Reference):
            return ValueKind.REFERENCE
        if isinstance(value, (list, tuple)):
            return ValueKind.ARRAY
        if isinstance(value, Mapping):
            return ValueKind.MAP
        if isinstance(value, str):
            return ValueKind.STRING
        if isinstance(value, (bytes, bytearray, memoryview)):
            return ValueKind.BYTES
        raise UnsupportedValueKind(
            f"Value not allowed: {type(value).__name__}",
            value=value,
            path=path,
        )

    def serialize(self, value: NativeValue, path: Optional[str] = None) -> WireValue:
        """Convert a native value into a wire value.

        Args:
            value: Native value
            path: Dotted field path of the value, used in error details

        Raises:
            UnsupportedValueKind: If the value (or anything nested in it) has
                no wire representation. No partial result is returned.
        """
        kind = self.kind_of(value, path)
        return self._encoders[kind](value, path)

    def serialize_fields(self, data: Mapping, path: Optional[str] = None) -> Fields:
        """Serialize each entry of a string-keyed mapping."""
        fields: Fields = {}
        for key, item in data.items():
            if not isinstance(key, str):
                raise UnsupportedValueKind(
                    f"Map keys must be strings, got {type(key).__name__}",
                    value=key,
                    path=path,
                )
            fields[key] = self.serialize(item, _join(path, key))
        return fields

    def _encode_integer(self, value: Any, path: Optional[str]) -> WireValue:
        number = int(value)
        if not INT64_MIN <= number <= INT64_MAX:
            raise UnsupportedValueKind("Integer outside signed 64-bit range", value=value, path=path)
        return {"integerValue": str(number)}

    def _encode_double(self, value: float, path: Optional[str]) -> WireValue:
        if math.isnan(value):
            return {"doubleValue": "NaN"}
        if math.isinf(value):
            return {"doubleValue": "Infinity" if value > 0 else "-Infinity"}
        return {"doubleValue": value}

    def _encode_bytes(self, value: Any, path: Optional[str]) -> WireValue:
        raise UnsupportedValueKind("Binary values are not supported", value=value, path=path)

    def _encode_array(self, value: Any, path: Optional[str]) -> WireValue:
        values = [self.serialize(item, _join(path, index)) for index, item in enumerate(value)]
        return {"arrayValue": {"values": values}}

    def _encode_map(self, value: Mapping, path: Optional[str]) -> WireValue:
        return {"mapValue": {"fields": self.serialize_fields(value, path)}}

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------
    def tag_of(self, wire: Any, path: Optional[str] = None) -> ValueKind:
        """Return the single populated tag of a wire value."""
        if not isinstance(wire, Mapping):
            raise MalformedWireValue("Wire value must be an object", value=wire, path=path)
        tags = [key for key in wire if key in VALUE_TAGS]
        if not tags:
            raise MalformedWireValue("No value tag found", keys=sorted(wire), path=path)
        if len(tags) > 1:
            if self.strict:
                raise MalformedWireValue("Expected exactly one value tag", tags=sorted(tags), path=path)
            return next(kind for kind in ValueKind if kind.value in tags)
        return ValueKind(tags[0])

    def parse(self, wire: Any, path: Optional[str] = None) -> Any:
        """Convert a wire value into a native value.

        Raises:
            MalformedWireValue: If the tag set or a tagged payload is invalid
            WireValueNotImplemented: For ``bytesValue`` and ``referenceValue``
        """
        kind = self.tag_of(wire, path)
        return self._decoders[kind](wire[kind.value], path)

    def parse_fields(self, fields: Optional[Mapping], path: Optional[str] = None) -> Data:
        """Parse a document's ``fields`` mapping into a plain dict."""
        return {key: self.parse(item, _join(path, key)) for key, item in (fields or {}).items()}

    def _decode_integer(self, value: Any, path: Optional[str]) -> int:
        if isinstance(value, bool):
            raise MalformedWireValue("Invalid integerValue", value=value, path=path)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise MalformedWireValue("Invalid integerValue", value=value, path=path) from e

    def _decode_double(self, value: Any, path: Optional[str]) -> float:
        if isinstance(value, str):
            if value in NON_FINITE_DOUBLES:
                return NON_FINITE_DOUBLES[value]
            raise MalformedWireValue("Invalid doubleValue", value=value, path=path)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedWireValue("Invalid doubleValue", value=value, path=path)
        return float(value)

    def _decode_array(self, value: Any, path: Optional[str]) -> list:
        values = (value or {}).get("values") or []
        return [self.parse(item, _join(path, index)) for index, item in enumerate(values)]

    def _decode_map(self, value: Any, path: Optional[str]) -> Data:
        return self.parse_fields((value or {}).get("fields"), path)

    @staticmethod
    def _decode_not_implemented(kind: ValueKind) -> Callable[[Any, Optional[str]], Any]:
        def decode(value: Any, path: Optional[str]) -> Any:
            raise WireValueNotImplemented(f"{kind.value} not implemented", kind=kind.value, path=path)

        return decode


value_codec = ValueCodec()


def serialize(value: NativeValue, path: Optional[str] = None) -> WireValue:
    """Serialize with the default strict codec."""
    return value_codec.serialize(value, path)


def parse(wire: Any, path: Optional[str] = None) -> Any:
    """Parse with the default strict codec."""
    return value_codec.parse(wire, path)


def serialize_fields(data: Mapping, path: Optional[str] = None) -> Fields:
    return value_codec.serialize_fields(data, path)


def parse_fields(fields: Optional[Mapping], path: Optional[str] = None) -> Data:
    return value_codec.parse_fields(fields, path)
