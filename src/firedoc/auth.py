"""OAuth2 credential providers.

- `ServiceAccountCredentials`: signs an RS256 JWT assertion with the service
  account key and exchanges it at the token endpoint (JWT-bearer grant).
- `AuthorizedUserCredentials`: exchanges a refresh token, as written by
  ``gcloud auth application-default login``.
- `MetadataCredentials`: asks the compute metadata server, for code running
  on Google Cloud.
- `StaticCredentials`: a fixed token, e.g. ``owner`` for the local emulator.

`load_credentials` picks one from configuration.
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx
import jwt
from pydantic import ValidationError

from .abc import Credentials
from .exceptions import AuthenticationError, InvalidConfigError
from .schema import AccessToken, AuthorizedUserInfo, CredentialInfo, ServiceAccountInfo
from .settings import settings as api_settings

__all__ = (
    "ServiceAccountCredentials",
    "AuthorizedUserCredentials",
    "MetadataCredentials",
    "StaticCredentials",
    "credentials_from_info",
    "load_credentials",
    "metadata_project_id",
)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}


def _token_response(response: httpx.Response, token_uri: str) -> AccessToken:
    """Decode a token endpoint response or raise `AuthenticationError`."""
    try:
        payload = response.json()
    except ValueError:
        payload = {"error": response.text}
    if response.is_error or (isinstance(payload, dict) and payload.get("error")):
        raise AuthenticationError(
            "Token request failed",
            token_uri=token_uri,
            status_code=response.status_code,
            error=payload.get("error") if isinstance(payload, dict) else payload,
        )
    try:
        return AccessToken.model_validate(payload)
    except ValidationError as e:
        raise AuthenticationError("Malformed token response", token_uri=token_uri) from e


class _HttpCredentials(Credentials):
    def __init__(self, client: Optional[httpx.Client] = None) -> None:
        super().__init__()
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=api_settings.HTTP_TIMEOUT)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _post_token(self, token_uri: str, data: Dict[str, str]) -> AccessToken:
        try:
            response = self.client.post(token_uri, data=data)
        except httpx.HTTPError as e:
            self.logger.error("Token request to %s failed: %s", token_uri, e)
            raise AuthenticationError("Token request failed", token_uri=token_uri) from e
        return _token_response(response, token_uri)


class ServiceAccountCredentials(_HttpCredentials):
    """JWT-bearer grant with a service account private key."""

    def __init__(
        self,
        info: ServiceAccountInfo,
        scope: Optional[str] = None,
        lifetime: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(client)
        self.info = info
        self.scope = scope or api_settings.OAUTH_SCOPE
        self.lifetime = lifetime or api_settings.OAUTH_TOKEN_LIFETIME
        self.token_uri = info.token_uri or api_settings.OAUTH_TOKEN_URI

    @property
    def project_id(self) -> Optional[str]:
        return self.info.project_id

    def assertion(self, now: Optional[int] = None) -> str:
        """Return the signed JWT assertion."""
        iat = int(now if now is not None else time.time())
        payload = {
            "iss": self.info.client_email,
            "aud": self.token_uri,
            "scope": self.scope,
            "iat": iat,
            "exp": iat + self.lifetime,
        }
        headers = {"kid": self.info.private_key_id} if self.info.private_key_id else None
        return jwt.encode(payload, self.info.private_key, algorithm="RS256", headers=headers)

    def refresh(self) -> AccessToken:
        return self._post_token(self.token_uri, {"grant_type": JWT_BEARER_GRANT, "assertion": self.assertion()})


class AuthorizedUserCredentials(_HttpCredentials):
    """Refresh-token grant for application default user credentials."""

    def __init__(self, info: AuthorizedUserInfo, client: Optional[httpx.Client] = None) -> None:
        super().__init__(client)
        self.info = info
        self.token_uri = api_settings.OAUTH_TOKEN_URI

    @property
    def project_id(self) -> Optional[str]:
        return self.info.quota_project_id

    def refresh(self) -> AccessToken:
        return self._post_token(
            self.token_uri,
            {
                "grant_type": "refresh_token",
                "client_id": self.info.client_id,
                "client_secret": self.info.client_secret,
                "refresh_token": self.info.refresh_token,
            },
        )


class MetadataCredentials(_HttpCredentials):
    """Default service account token from the compute metadata server."""

    def refresh(self) -> AccessToken:
        url = f"{api_settings.METADATA_URL}/instance/service-accounts/default/token"
        try:
            response = self.client.get(url, headers=METADATA_HEADERS)
        except httpx.HTTPError as e:
            raise AuthenticationError("Credentials required: metadata server unreachable", token_uri=url) from e
        return _token_response(response, url)


class StaticCredentials(Credentials):
    """Send the same bearer token forever."""

    def __init__(self, token: str, project_id: Optional[str] = None) -> None:
        super().__init__()
        self._static_token = token
        self._project_id = project_id

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    def refresh(self) -> AccessToken:
        return AccessToken(access_token=self._static_token, expires_in=10**9)


def metadata_project_id(client: Optional[httpx.Client] = None) -> str:
    """Read the project id from the compute metadata server.

    Raises:
        AuthenticationError: If the metadata server cannot be reached
    """
    if client is None:
        with httpx.Client(timeout=api_settings.HTTP_TIMEOUT) as http:
            return metadata_project_id(http)
    url = f"{api_settings.METADATA_URL}/project/project-id"
    try:
        response = client.get(url, headers=METADATA_HEADERS)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise AuthenticationError("Project required: metadata server unreachable", token_uri=url) from e
    return response.text.strip()


def credentials_from_info(
    info: Mapping[str, Any] | CredentialInfo, client: Optional[httpx.Client] = None
) -> Credentials:
    """Build credentials from a parsed credential JSON document.

    Raises:
        InvalidConfigError: For unknown `type` values or missing keys
    """
    if isinstance(info, ServiceAccountInfo):
        return ServiceAccountCredentials(info, client=client)
    if isinstance(info, AuthorizedUserInfo):
        return AuthorizedUserCredentials(info, client=client)

    kind = info.get("type")
    try:
        if kind == "service_account":
            return ServiceAccountCredentials(ServiceAccountInfo.model_validate(info), client=client)
        if kind == "authorized_user":
            return AuthorizedUserCredentials(AuthorizedUserInfo.model_validate(info), client=client)
    except ValidationError as e:
        raise InvalidConfigError("Invalid credential document", credential_type=kind) from e
    raise InvalidConfigError("Unknown credential type", config_key="type", value=kind)


def _default_credentials_file() -> Path:
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", ""))
    else:
        base = Path.home() / ".config"
    return base / "gcloud" / "application_default_credentials.json"


def load_credentials(client: Optional[httpx.Client] = None) -> Credentials:
    """Pick credentials from configuration.

    Order: ``FIRESTORE_CREDENTIALS`` inline JSON, the file named by
    ``GOOGLE_APPLICATION_CREDENTIALS``, the gcloud application default file,
    then the metadata server.
    """
    if api_settings.FIRESTORE_CREDENTIALS:
        try:
            info = json.loads(api_settings.FIRESTORE_CREDENTIALS)
        except ValueError as e:
            raise InvalidConfigError(
                "FIRESTORE_CREDENTIALS is not valid JSON", config_key="FIRESTORE_CREDENTIALS"
            ) from e
        return credentials_from_info(info, client=client)

    path = api_settings.GOOGLE_APPLICATION_CREDENTIALS
    if path:
        try:
            info = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise InvalidConfigError(
                "Cannot read credential file", config_key="GOOGLE_APPLICATION_CREDENTIALS", path=path
            ) from e
        return credentials_from_info(info, client=client)

    default_file = _default_credentials_file()
    if default_file.is_file():
        try:
            info = json.loads(default_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise InvalidConfigError(
                "Cannot read application default credentials",
                config_key="GOOGLE_APPLICATION_CREDENTIALS",
                path=str(default_file),
            ) from e
        return credentials_from_info(info, client=client)

    return MetadataCredentials(client=client)
