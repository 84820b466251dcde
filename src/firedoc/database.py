"""
Document database facade.

`Database` maps the view/search/create/update/remove vocabulary onto Firestore
REST calls. Every action returns a fresh builder bound to that action; calling
`end()` on the builder performs the request(s)::

    db = Database(project="my-project")
    user = db.view("users").equal({"email": "a@b.c"}).end()
    users = db.search("users").greater_than({"age": 18}).descending("age").limit(20).end()
    db.update("users", {"age": 31}).identifier("u1").end()

Actions that address one document accept either `identifier(...)` or filters.
With filters, the document is first resolved with a ``runQuery`` limited to
one result, and the mutation is sent afterwards. That pair of requests is not
atomic: if the document is deleted in between, the mutation fails with
`DocumentNotFoundError`, which callers can treat as a benign race.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from .abc import Credentials, Transport
from .codec import ValueCodec, value_codec
from .commit import Commit
from .constants import DELETE_FIELD
from .exceptions import DocumentExistsError, DocumentNotFoundError, InvalidFieldError, TransportError
from .logger import Logger
from .query import QueryBuilder
from .schema import QueryRequest
from .types import Data
from .transport import HttpTransport
from .utils import quote_field_name, quote_path

__all__ = ("Database",)


class Database:
    """High-level client for one Firestore database.

    Args:
        transport: Request transport; defaults to `HttpTransport` built from
            the remaining arguments and settings
        project: Project id (optional, see `HttpTransport`)
        database: Database id, ``(default)`` unless configured
        credentials: Credential provider (optional, see `load_credentials`)
        codec: Value codec shared by every builder
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        project: Optional[str] = None,
        database: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        codec: ValueCodec = value_codec,
    ) -> None:
        self._transport = transport or HttpTransport(project=project, database=database, credentials=credentials)
        self.codec = codec
        self.logger = Logger(self.__class__.__name__)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def document_root(self) -> str:
        return self._transport.document_root

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _builder(self, collection: str, end: Any, selector: bool = True) -> QueryBuilder:
        return QueryBuilder(
            collection,
            selector=selector,
            end=end,
            codec=self.codec,
            document_root=self.document_root,
        )

    def _relative(self, name: str) -> str:
        """Turn a full document name into a quoted path below the document root."""
        root = self.document_root
        if name.startswith(root + "/"):
            return "/" + quote_path(name[len(root) + 1 :])
        raise InvalidFieldError("Document name outside this database", name=name, root=root)

    @staticmethod
    def _collection_path(request: QueryRequest) -> str:
        path = f"{request.parent}/{request.collection_id}" if request.parent else request.collection_id
        return "/" + quote_path(path)

    @classmethod
    def _document_path(cls, request: QueryRequest) -> str:
        return cls._collection_path(request) + "/" + quote_path(request.identifier or "")

    @staticmethod
    def _run_query_path(request: QueryRequest) -> str:
        return f"/{quote_path(request.parent)}:runQuery" if request.parent else ":runQuery"

    def _run_query(self, request: QueryRequest) -> List[Dict[str, Any]]:
        result = self._transport.submit("POST", self._run_query_path(request), request.to_dict())
        return result if isinstance(result, list) else []

    def _resolve(self, request: QueryRequest) -> Optional[Dict[str, Any]]:
        """Find the first document matching the request's filters."""
        entries = self._run_query(request.model_copy(update={"limit": 1}))
        document = entries[0].get("document") if entries else None
        if not document or not document.get("name"):
            return None
        return document

    def _fields(self, data: Mapping, action: str) -> Tuple[Dict[str, Any], List[str]]:
        """Serialize write data; returns fields and the update mask paths."""
        if not data:
            raise InvalidFieldError(f"{action.capitalize()} - data required", operation=action)
        fields: Dict[str, Any] = {}
        mask: List[str] = []
        for key, value in data.items():
            mask.append(quote_field_name(key))
            if value is DELETE_FIELD:
                continue
            fields[key] = self.codec.serialize(value, key)
        return fields, mask

    def _parse_document(self, document: Optional[Mapping]) -> Data:
        return self.codec.parse_fields((document or {}).get("fields"))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def view(self, collection: str) -> QueryBuilder:
        """Read one document; `end()` returns its fields or None when absent."""

        def end(request: QueryRequest) -> Optional[Data]:
            self.logger.message("View %s id=%s filters=%d", collection, request.identifier, len(request.filters))
            if request.identifier:
                try:
                    document = self._transport.submit("GET", self._document_path(request))
                except TransportError as e:
                    if e.status_code == 404:
                        return None
                    raise
                return self._parse_document(document)
            document = self._resolve(request)
            if document is None:
                return None
            return self._parse_document(document)

        return self._builder(collection, end)

    def search(self, collection: str) -> QueryBuilder:
        """Run a structured query; `end()` returns a list of documents' fields.

        Nested collections are addressed by path, e.g. ``rooms/r1/messages``.
        """

        def end(request: QueryRequest) -> List[Data]:
            self.logger.message("Search %s filters=%d", collection, len(request.filters))
            return [
                self._parse_document(entry["document"]) for entry in self._run_query(request) if entry.get("document")
            ]

        return self._builder(collection, end, selector=False)

    def create(self, collection: str, data: Mapping) -> QueryBuilder:
        """Create a document.

        With `identifier` the id is chosen by the caller. With filters the
        document is only created when nothing matches them; otherwise
        `DocumentExistsError` is raised. `DELETE_FIELD` values are skipped.
        """
        fields, _ = self._fields({k: v for k, v in data.items() if v is not DELETE_FIELD}, "create")
        body = {"fields": fields}

        def end(request: QueryRequest) -> Data:
            self.logger.message("Create %s id=%s filters=%d", collection, request.identifier, len(request.filters))
            if request.identifier:
                path = self._collection_path(request) + "?" + urlencode({"documentId": request.identifier})
                try:
                    document = self._transport.submit("POST", path, body)
                except TransportError as e:
                    if e.status_code == 409:
                        raise DocumentExistsError(
                            "Create - document is found", collection=collection, identifier=request.identifier
                        ) from e
                    raise
                return self._parse_document(document)

            existing = self._resolve(request)
            if existing is not None:
                raise DocumentExistsError("Create - document is found", collection=collection, name=existing["name"])
            return self._parse_document(self._transport.submit("POST", self._collection_path(request), body))

        return self._builder(collection, end)

    def update(self, collection: str, data: Mapping) -> QueryBuilder:
        """Patch an existing document's fields.

        `end()` returns the updated fields, or None when no document matches.
        Keys mapped to `DELETE_FIELD` are removed from the document.

        Raises (from `end()`):
            DocumentNotFoundError: If a resolved document vanished before the patch
        """
        fields, mask = self._fields(data, "update")
        params = [("currentDocument.exists", "true")] + [("updateMask.fieldPaths", path) for path in mask]
        query = "?" + urlencode(params)
        body = {"fields": fields}

        def end(request: QueryRequest) -> Optional[Data]:
            self.logger.message("Update %s id=%s filters=%d", collection, request.identifier, len(request.filters))
            if request.identifier:
                path = self._document_path(request) + query
                try:
                    document = self._transport.submit("PATCH", path, body)
                except TransportError as e:
                    if e.status_code == 404:
                        return None
                    raise
                return self._parse_document(document)

            existing = self._resolve(request)
            if existing is None:
                return None
            try:
                document = self._transport.submit("PATCH", self._relative(existing["name"]) + query, body)
            except TransportError as e:
                if e.status_code == 404:
                    raise DocumentNotFoundError(
                        "Update - document removed before patch", collection=collection, name=existing["name"]
                    ) from e
                raise
            return self._parse_document(document)

        return self._builder(collection, end)

    def remove(self, collection: str) -> QueryBuilder:
        """Delete one document.

        `end()` returns the removed document's fields when it was resolved by
        filters, ``{}`` when deleted by identifier, and None when nothing
        matched.

        Raises (from `end()`):
            DocumentNotFoundError: If a resolved document vanished before the delete
        """
        query = "?" + urlencode({"currentDocument.exists": "true"})

        def end(request: QueryRequest) -> Optional[Data]:
            self.logger.message("Remove %s id=%s filters=%d", collection, request.identifier, len(request.filters))
            if request.identifier:
                try:
                    self._transport.submit("DELETE", self._document_path(request) + query)
                except TransportError as e:
                    if e.status_code == 404:
                        return None
                    raise
                return {}

            existing = self._resolve(request)
            if existing is None:
                return None
            try:
                self._transport.submit("DELETE", self._relative(existing["name"]) + query)
            except TransportError as e:
                if e.status_code == 404:
                    raise DocumentNotFoundError(
                        "Remove - document removed before delete", collection=collection, name=existing["name"]
                    ) from e
                raise
            return self._parse_document(existing)

        return self._builder(collection, end)

    def commit(self, collection: str, data: Optional[Mapping] = None) -> Commit:
        """Write fields and field transforms to one document in a single commit."""

        def end(body: Dict[str, Any]) -> Any:
            self.logger.message("Commit %s", body["writes"][0]["update"]["name"])
            return self._transport.submit("POST", ":commit", body)

        return Commit(collection, data, document_root=self.document_root, end=end, codec=self.codec)
