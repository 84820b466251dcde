"""Abstract collaborator interfaces.

`Transport` delivers request bodies to the service; `Credentials` supplies
bearer tokens. The database facade depends only on these two contracts.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from .logger import Logger
from .schema import AccessToken

__all__ = ("Transport", "Credentials")


class Transport(ABC):
    """Deliver one request and return the decoded JSON response."""

    @property
    @abstractmethod
    def document_root(self) -> str:
        """``projects/{p}/databases/{d}/documents`` for the bound database."""
        raise NotImplementedError

    @abstractmethod
    def submit(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """Send `body` to `path` (relative to the document root).

        Raises:
            TransportError: On any non-success status or error payload
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release network resources held by the transport."""


class Credentials(ABC):
    """Source of OAuth2 access tokens, cached until shortly before expiry."""

    # Refresh this many seconds before the reported expiry
    expiry_margin: int = 60

    def __init__(self) -> None:
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self.logger = Logger(self.__class__.__name__)

    @property
    def valid(self) -> bool:
        return self._token is not None and time.time() < self._expires_at - self.expiry_margin

    @property
    def project_id(self) -> Optional[str]:
        """Project bound to the credential, when the credential carries one."""
        return None

    def token(self) -> str:
        """Return a valid access token, refreshing it when needed."""
        if not self.valid:
            access = self.refresh()
            self._token = access.access_token
            self._expires_at = time.time() + access.expires_in
            self.logger.message("%s token refreshed, expires in %ss", self.__class__.__name__, access.expires_in)
        return self._token  # type: ignore[return-value]

    def close(self) -> None:
        """Release network resources held by the credential."""

    @abstractmethod
    def refresh(self) -> AccessToken:
        """Fetch a new access token.

        Raises:
            AuthenticationError: If the token endpoint rejects the request
        """
        raise NotImplementedError
