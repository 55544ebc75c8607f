"""Configuration management for schema-relations."""

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.schema-relations/.env
    3. Package directory (where this file is located)
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".schema-relations" / ".env"
    if user_env.exists():
        return str(user_env)

    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_RELATIONS_",
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Relationship override configuration
    relationships_config_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON file with naming conventions and custom relationships"
    )

    # Polymorphic sampling
    sample_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum distinct values read from a polymorphic type column"
    )
    morph_sampling_policy: Literal["accept", "reject"] = Field(
        default="accept",
        description="Keep or drop morphOne/morphMany matches that could not be confirmed from data"
    )

    # Whole-schema runs
    max_workers: int = Field(
        default=1,
        ge=1,
        description="Number of tables analyzed concurrently"
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI"
    )


# Global settings instance
settings = Settings()
