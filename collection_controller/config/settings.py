"""
Library settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache
from typing import Mapping

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Controller defaults, overridable with COLLECTION_CONTROLLER_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="COLLECTION_CONTROLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Stored field names. Defaults match documents written by earlier
    # controller versions, so existing collections keep working.
    id_field: str = "_id"
    created_at_field: str = "createdAt"
    updated_at_field: str = "updatedAt"
    deleted_at_field: str = "deletedAt"

    def validate_field_names(self) -> list[str]:
        """
        Check that the configured field names can coexist in one document.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        return check_field_names(
            {
                "id_field": self.id_field,
                "created_at_field": self.created_at_field,
                "updated_at_field": self.updated_at_field,
                "deleted_at_field": self.deleted_at_field,
            }
        )


def check_field_names(names: Mapping[str, str]) -> list[str]:
    """
    Validate stored field names keyed by their option name.

    Names must be non-empty, must not start with '$' and must be distinct:
    with updated_at_field equal to deleted_at_field every update would mark
    the document deleted.
    """
    errors = []

    for key, value in names.items():
        if not value:
            errors.append(f"{key.upper()} must not be empty")
        elif value.startswith("$"):
            errors.append(f"{key.upper()} must not start with '$'")

    if len(set(names.values())) != len(names):
        errors.append("Field names must be distinct")

    return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
