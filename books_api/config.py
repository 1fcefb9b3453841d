"""
API configuration settings.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """API configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    # API Settings
    api_title: str = "Books API"
    api_version: str = "1.0.0"
    api_description: str = "A REST API for managing book records stored in Firebase"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Database Settings
    database_backend: str = "firestore"
    firebase_credentials_file: str = "firebaseConfig.json"
    firebase_project_id: Optional[str] = None
    firebase_database_url: Optional[str] = None
    books_collection: str = "books"

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    @field_validator("database_backend")
    @classmethod
    def validate_database_backend(cls, v: str) -> str:
        """Ensure the storage backend is one we know how to talk to."""
        valid_backends = ["firestore", "realtime"]
        if v.lower() not in valid_backends:
            raise ValueError(f"database_backend must be one of: {valid_backends}")
        return v.lower()

    @field_validator("books_collection")
    @classmethod
    def validate_books_collection(cls, v: str) -> str:
        """Collection paths may not be empty or nested."""
        v = v.strip().strip("/")
        if not v or "/" in v:
            raise ValueError("books_collection must be a single non-empty path segment")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @model_validator(mode="after")
    def validate_realtime_url(self) -> "APIConfig":
        """The Realtime Database backend cannot run without a database URL."""
        if self.database_backend == "realtime" and not self.firebase_database_url:
            raise ValueError("firebase_database_url is required when database_backend is 'realtime'")
        return self

    def get_credentials_path(self) -> Path:
        """Get the service account credentials file as a Path object."""
        return Path(self.firebase_credentials_file)

    def get_firebase_options(self) -> dict:
        """Options passed to firebase_admin.initialize_app."""
        options = {}
        if self.firebase_project_id:
            options["projectId"] = self.firebase_project_id
        if self.firebase_database_url:
            options["databaseURL"] = self.firebase_database_url
        return options


# Global config instance
config = APIConfig()
