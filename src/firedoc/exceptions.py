"""Custom exceptions for the firedoc library.

Every error raised by the library derives from `FiredocError`, which keeps
structured context in `details` alongside the human-readable message.
Nothing in the library recovers from these locally; they are raised to the
caller.
"""

from typing import Any, Dict


# Base exception
class FiredocError(Exception):
    """Base exception for all firedoc errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., path, field, collection)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message with details."""
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Value codec exceptions
class ValueCodecError(FiredocError):
    """Base exception for value serialization and parsing failures."""


class UnsupportedValueKind(ValueCodecError):
    """Raised when a native value has no wire representation.

    Example:
        >>> raise UnsupportedValueKind("Value not allowed", value=print, path="user.callback")
    """


class MalformedWireValue(ValueCodecError):
    """Raised when a wire value carries zero or several recognized tags.

    Example:
        >>> raise MalformedWireValue("Expected exactly one value tag", tags=["stringValue", "integerValue"])
    """


class WireValueNotImplemented(ValueCodecError):
    """Raised when parsing a wire value kind the codec refuses to decode.

    Example:
        >>> raise WireValueNotImplemented("referenceValue not implemented", kind="referenceValue")
    """


# Query builder exceptions
class QueryError(FiredocError):
    """Base exception for misuse of the query builders."""


class MissingFilters(QueryError):
    """Raised when a document-scoped builder has neither filters nor an identifier.

    Example:
        >>> raise MissingFilters("Filters or identifier required", collection="users")
    """


class ConflictingSelector(QueryError):
    """Raised when a builder has both an identifier and filters.

    Example:
        >>> raise ConflictingSelector("Filters and identifier are exclusive", collection="users", identifier="u1")
    """


class InvalidCursorError(QueryError):
    """Raised when a cursor holds more values than there are order clauses.

    Example:
        >>> raise InvalidCursorError("Cursor longer than orderBy", cursor="startAt", values=2, orders=1)
    """


class InvalidFieldError(QueryError):
    """Raised when a field, operator or value is not valid for the request.

    Example:
        >>> raise InvalidFieldError("IN requires a list", field="status", operator="IN")
    """


class InvalidPrefixError(InvalidFieldError):
    """Raised when a prefix cannot be turned into an exclusive upper bound.

    Example:
        >>> raise InvalidPrefixError("Prefix cannot be incremented", field="name", prefix="\\U0010ffff")
    """


# Document operation exceptions
class DocumentError(FiredocError):
    """Base exception for document-level outcomes."""


class DocumentNotFoundError(DocumentError):
    """Raised when a document disappears between resolve and mutate, or a GET misses.

    Example:
        >>> raise DocumentNotFoundError("Document not found", collection="users", identifier="u1")
    """


class DocumentExistsError(DocumentError):
    """Raised when creating a document whose filter already matches one.

    Example:
        >>> raise DocumentExistsError("Document already exists", collection="users", name="projects/...")
    """


# Configuration exceptions
class ConfigurationError(FiredocError):
    """Raised when configuration is invalid or missing."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration values are not set.

    Example:
        >>> raise MissingConfigError("Project not set", config_key="FIRESTORE_PROJECT")
    """


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid.

    Example:
        >>> raise InvalidConfigError("Unknown credential type", config_key="FIRESTORE_CREDENTIALS", value="x")
    """


# Transport exceptions
class TransportError(FiredocError):
    """Raised when a request fails or the service answers with an error payload.

    Example:
        >>> raise TransportError("Request failed", method="GET", path="/users/u1", status_code=500)
    """

    @property
    def status_code(self) -> int | None:
        return self.details.get("status_code")


class AuthenticationError(TransportError):
    """Raised when an access token cannot be obtained.

    Example:
        >>> raise AuthenticationError("Token request failed", token_uri="https://oauth2.googleapis.com/token")
    """
