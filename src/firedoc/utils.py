"""Utility functions for firedoc.

Resource-name helpers and the prefix range used by `starts_with`.
"""

import re
from typing import Optional, Tuple
from urllib.parse import quote

from .exceptions import InvalidFieldError, InvalidPrefixError

# ===========================================================================
# Resource names
# ===========================================================================


def database_root(project: str, database: str = "(default)") -> str:
    """Return ``projects/{project}/databases/{database}/documents``."""
    return f"projects/{project}/databases/{database}/documents"


def document_name(project: str, database: str, *segments: str) -> str:
    """Build a full document resource name from path segments."""
    path = "/".join(s.strip("/") for s in segments if s)
    return f"{database_root(project, database)}/{path}"


def document_id(name: str) -> str:
    """Return the last segment of a document resource name."""
    return name.rstrip("/").rsplit("/", 1)[-1]


def quote_path(path: str) -> str:
    """Percent-encode each segment of a slash-separated path for use in a URL.

    Document ids may hold `?`, `#` or `%`, which would otherwise end the path.
    """
    return "/".join(quote(segment, safe="") for segment in path.split("/"))


def split_collection_path(collection: str) -> Tuple[Optional[str], str]:
    """Split ``a/1/b`` into the parent document path ``a/1`` and collection id ``b``.

    Raises:
        InvalidFieldError: If the path is empty or names a document
    """
    segments = [s for s in collection.strip("/").split("/") if s] if collection else []
    if not segments or len(segments) % 2 == 0:
        raise InvalidFieldError("Collection path must have an odd number of segments", collection=collection)
    parent = "/".join(segments[:-1]) or None
    return parent, segments[-1]


# ===========================================================================
# Prefix ranges
# ===========================================================================

_MAX_CODE_POINT = 0x10FFFF
_SURROGATES = range(0xD800, 0xE000)


def prefix_upper_bound(prefix: str, field: Optional[str] = None) -> str:
    """Return the smallest string greater than every string starting with `prefix`.

    The last code point is incremented. Strings compare by UTF-8 bytes on the
    server, which orders the same way as code points, so this holds for any
    final character except U+10FFFF. U+D7FF steps over the surrogate block to
    U+E000.

    Raises:
        InvalidFieldError: If `prefix` is not a string
        InvalidPrefixError: If `prefix` is empty, ends with U+10FFFF or a lone surrogate
    """
    if not isinstance(prefix, str):
        raise InvalidFieldError("starts_with requires a string prefix", field=field, value=prefix)
    if not prefix:
        raise InvalidPrefixError("starts_with requires a non-empty prefix", field=field, prefix=prefix)
    last = ord(prefix[-1])
    if last == _MAX_CODE_POINT or last in _SURROGATES:
        raise InvalidPrefixError("Prefix cannot be incremented", field=field, prefix=prefix)
    following = 0xE000 if last == 0xD7FF else last + 1
    return prefix[:-1] + chr(following)


# ===========================================================================
# Field paths
# ===========================================================================

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


def quote_field_name(name: str) -> str:
    """Quote a single field name for use in a field path (mask, transform)."""
    if _SIMPLE_FIELD.match(name):
        return name
    return "`" + name.replace("\\", "\\\\").replace("`", "\\`") + "`"
