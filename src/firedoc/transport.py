"""HTTP transport for the Firestore REST API, built on httpx."""

import json
from typing import Any, Optional

import httpx

from .abc import Credentials, Transport
from .auth import load_credentials, metadata_project_id
from .exceptions import MissingConfigError, TransportError
from .logger import Logger
from .settings import settings as api_settings
from .utils import database_root

__all__ = ("HttpTransport",)


def _error_of(result: Any) -> Any:
    """Return the error payload of a response body, if any.

    ``runQuery`` streams a list; an error lands in its first entry.
    """
    if isinstance(result, dict):
        return result.get("error")
    if isinstance(result, list) and result and isinstance(result[0], dict):
        return result[0].get("error")
    return None


class HttpTransport(Transport):
    """Authorized JSON requests against one Firestore database.

    The project is taken from the argument, then ``FIRESTORE_PROJECT``, then the
    credential, and finally the metadata server on first use. Credentials and
    the httpx client are created lazily; loaded credentials share that client.
    `close()` (or leaving a ``with`` block) closes both.
    """

    def __init__(
        self,
        project: Optional[str] = None,
        database: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._project = project or api_settings.FIRESTORE_PROJECT
        self.database = database or api_settings.FIRESTORE_DATABASE
        self._credentials = credentials
        self.base_url = (base_url or api_settings.FIRESTORE_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else api_settings.HTTP_TIMEOUT
        self._client = client
        self.logger = Logger(self.__class__.__name__)

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    @property
    def credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials = load_credentials(client=self.client)
        return self._credentials

    @property
    def project(self) -> str:
        """Resolve the project id.

        Raises:
            MissingConfigError: If no source yields a project id
        """
        if not self._project:
            self._project = self.credentials.project_id or metadata_project_id(self.client)
            if not self._project:
                raise MissingConfigError("Project required", config_key="FIRESTORE_PROJECT")
            self.logger.message("Resolved project %s", self._project)
        return self._project

    @property
    def document_root(self) -> str:
        return database_root(self.project, self.database)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{self.document_root}{path}"

    def close(self) -> None:
        """Close the httpx client and the credential's token client."""
        if self._credentials is not None:
            self._credentials.close()
        if self._client is not None:
            self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def submit(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """Send one request and return its decoded JSON body.

        Raises:
            TransportError: On connection failure, non-success status or an
                ``error`` member in the response
        """
        url = self.url(path)
        headers = {"Authorization": f"Bearer {self.credentials.token()}"}
        self.logger.request(method, path)
        try:
            response = self.client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            self.logger.error("%s %s failed: %s", method, path, e)
            raise TransportError("Request failed", method=method, path=path) from e

        try:
            result = response.json() if response.content else {}
        except json.JSONDecodeError:
            result = {"error": response.text}

        self.logger.request(method, path, response.status_code)
        error = _error_of(result)
        if response.is_error or error:
            raise TransportError(
                "Request failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=error,
            )
        return result
