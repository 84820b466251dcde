"""Settings for the firedoc client."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class FiredocSettings(BaseSettings):
    """firedoc configuration settings."""

    # Firestore
    FIRESTORE_PROJECT: Optional[str] = None
    FIRESTORE_DATABASE: str = "(default)"
    FIRESTORE_BASE_URL: str = "https://firestore.googleapis.com/v1"
    # Upper bound for IN, NOT_IN and ARRAY_CONTAINS_ANY values
    FIRESTORE_MAX_DISJUNCTION: int = 30

    # Credentials: inline JSON first, then a file path, then the metadata server
    FIRESTORE_CREDENTIALS: Optional[str] = None
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None

    # OAuth2
    OAUTH_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    OAUTH_SCOPE: str = "https://www.googleapis.com/auth/datastore"
    OAUTH_TOKEN_LIFETIME: int = 30 * 60
    METADATA_URL: str = "http://metadata.google.internal/computeMetadata/v1"

    HTTP_TIMEOUT: float = 30.0
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = FiredocSettings()
