"""Configuration management for the Terraform tag compliance checker.

This module handles loading and validating runtime settings from environment
variables (or a .env file) with sensible defaults. Command-line flags take
precedence over these values.
"""

from typing import Optional
from pydantic import Field, AliasChoices, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
PROVIDER_SCOPES = ("file", "directory")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for running inside a Terraform
    working directory.
    """

    # Logging
    log_level: str = Field(
        default="ERROR",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL"
    )

    # Policy Configuration
    policy_path: Optional[str] = Field(
        default=None,
        description="Path or remote URL of the required-tag policy (JSON or YAML)",
        validation_alias=AliasChoices("TAG_POLICY_PATH", "POLICY_PATH")
    )
    exemptions_path: Optional[str] = Field(
        default=None,
        description="Path or remote URL of a separate exemptions file",
        validation_alias="TAG_EXEMPTIONS_PATH"
    )
    ignore_tag_case: bool = Field(
        default=False,
        description="Compare tag keys case-insensitively",
        validation_alias="IGNORE_TAG_CASE"
    )
    remote_timeout: float = Field(
        default=30,
        description="Timeout in seconds for fetching remote policy files",
        validation_alias="REMOTE_FETCH_TIMEOUT",
        gt=0,
    )

    # Scan Configuration
    terraform_dir: str = Field(
        default=".",
        description="Directory holding the Terraform files to validate",
        validation_alias="TERRAFORM_DIR"
    )
    provider_scope: str = Field(
        default="file",
        description="Match provider default tags by declaring file or by directory",
        validation_alias="PROVIDER_SCOPE"
    )
    resource_types_config_path: Optional[str] = Field(
        default=None,
        description="JSON file replacing the embedded taggable resource tables",
        validation_alias="RESOURCE_TYPES_CONFIG_PATH"
    )

    # Report Configuration
    report_path: Optional[str] = Field(
        default=None,
        description="Where to write the compliance report",
        validation_alias="TAG_REPORT_PATH"
    )

    model_config = SettingsConfigDict(
        env_prefix="",  # No prefix for environment variables
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("provider_scope")
    @classmethod
    def validate_provider_scope(cls, v: str) -> str:
        scope = v.lower()
        if scope not in PROVIDER_SCOPES:
            raise ValueError(f"provider_scope must be one of {', '.join(PROVIDER_SCOPES)}")
        return scope


def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file.

    Returns:
        Settings instance with all configuration values
    """
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings
