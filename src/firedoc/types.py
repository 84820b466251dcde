"""Type aliases for the firedoc package.

Reusable type definitions shared by the codec, the builders and the facade.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Sequence, Union

from .schema import GeoPoint, Reference, WireValue

# Native values the codec accepts (nested sequences and mappings recurse)
NativeValue = Union[None, bool, int, float, str, datetime, GeoPoint, Reference, Sequence[Any], Mapping[str, Any]]

# Document data as supplied by callers and returned by parse
Data = Dict[str, Any]

# Wire fields of a document
Fields = Dict[str, WireValue]
