"""Tests for firedoc utilities and exceptions."""

import pytest

from firedoc.constants import DELETE_FIELD
from firedoc.exceptions import (
    AuthenticationError,
    FiredocError,
    InvalidFieldError,
    InvalidPrefixError,
    MalformedWireValue,
    QueryError,
    TransportError,
    ValueCodecError,
)
from firedoc.utils import (
    database_root,
    document_id,
    document_name,
    prefix_upper_bound,
    quote_field_name,
    quote_path,
    split_collection_path,
)


class TestResourceNames:
    def test_database_root(self):
        assert database_root("p") == "projects/p/databases/(default)/documents"
        assert database_root("p", "db2") == "projects/p/databases/db2/documents"

    def test_document_name(self):
        assert document_name("p", "(default)", "rooms", "r1/", "/messages", "m1") == (
            "projects/p/databases/(default)/documents/rooms/r1/messages/m1"
        )

    def test_document_id(self):
        assert document_id("projects/p/databases/(default)/documents/users/u1") == "u1"

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("users/u1", "users/u1"),
            ("users/a?b", "users/a%3Fb"),
            ("users/c#d", "users/c%23d"),
            ("users/50%off", "users/50%25off"),
            ("rooms/r 1/messages", "rooms/r%201/messages"),
        ],
    )
    def test_quote_path(self, path, expected):
        assert quote_path(path) == expected

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("users", (None, "users")),
            ("/users/", (None, "users")),
            ("rooms/r1/messages", ("rooms/r1", "messages")),
        ],
    )
    def test_split_collection_path(self, path, expected):
        assert split_collection_path(path) == expected

    @pytest.mark.parametrize("path", ["", "/", "users/u1"])
    def test_split_document_path_rejected(self, path):
        with pytest.raises(InvalidFieldError):
            split_collection_path(path)


class TestPrefixUpperBound:
    """Exclusive upper bound of a prefix range."""

    @pytest.mark.parametrize(
        "prefix,expected",
        [
            ("abc", "abd"),
            ("a", "b"),
            ("z", "{"),
            ("\u65e5\u672c", "\u65e5\u672d"),
            ("a\ud7ff", "a\ue000"),
            ("a\U0001f600", "a\U0001f601"),
        ],
    )
    def test_bound(self, prefix, expected):
        assert prefix_upper_bound(prefix) == expected

    def test_every_extension_is_below_bound(self):
        upper = prefix_upper_bound("abc")
        for candidate in ("abc", "abc\U0010ffff", "abcz" * 10):
            assert "abc" <= candidate < upper

    @pytest.mark.parametrize("prefix", ["", "a\U0010ffff", "a\udfff"])
    def test_rejected(self, prefix):
        with pytest.raises(InvalidPrefixError):
            prefix_upper_bound(prefix, "name")

    def test_non_string(self):
        with pytest.raises(InvalidFieldError):
            prefix_upper_bound(None)


class TestQuoteFieldName:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("age", "age"),
            ("_private1", "_private1"),
            ("first-name", "`first-name`"),
            ("1st", "`1st`"),
            ("a.b", "`a.b`"),
            ("tick`name", "`tick\\`name`"),
        ],
    )
    def test_quote(self, name, expected):
        assert quote_field_name(name) == expected


class TestExceptions:
    """Exception hierarchy and message formatting."""

    def test_message_with_details(self):
        error = MalformedWireValue("No value tag found", path="a.b")
        assert str(error) == "No value tag found (path='a.b')"
        assert error.details == {"path": "a.b"}

    def test_message_only(self):
        assert str(FiredocError("boom")) == "boom"

    def test_details_only(self):
        assert str(FiredocError(field="x")) == "field='x'"

    def test_repr(self):
        assert repr(FiredocError("boom", a=1)) == "FiredocError(message='boom', details={'a': 1})"

    def test_hierarchy(self):
        assert issubclass(MalformedWireValue, ValueCodecError)
        assert issubclass(InvalidPrefixError, InvalidFieldError)
        assert issubclass(InvalidFieldError, QueryError)
        assert issubclass(AuthenticationError, TransportError)
        assert issubclass(TransportError, FiredocError)

    def test_status_code(self):
        assert TransportError("x", status_code=404).status_code == 404
        assert TransportError("x").status_code is None


def test_delete_field_is_singleton():
    assert type(DELETE_FIELD)() is DELETE_FIELD
    assert repr(DELETE_FIELD) == "DELETE_FIELD"
