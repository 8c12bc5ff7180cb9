"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import VenueSettings

ADMIN_TOKEN_ENV = "SLOTBOOK_ADMIN_TOKEN"


class VenueDefaults(BaseModel):
    """Settings applied to venues created without explicit settings."""
    booking_duration_minutes: int = 60
    advance_booking_days: int = 14
    cancellation_minutes: int = 120
    max_bookings_per_user: Optional[int] = 2

    @field_validator("booking_duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure booking duration is positive."""
        if value <= 0:
            raise ValueError("booking_duration_minutes must be greater than zero")
        return value

    @field_validator("advance_booking_days", "cancellation_minutes")
    @classmethod
    def validate_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value

    @field_validator("max_bookings_per_user")
    @classmethod
    def validate_booking_cap(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("max_bookings_per_user must be greater than zero")
        return value

    def to_settings(self) -> VenueSettings:
        """Get the defaults as domain settings."""
        return VenueSettings(
            booking_duration_minutes=self.booking_duration_minutes,
            advance_booking_days=self.advance_booking_days,
            cancellation_minutes=self.cancellation_minutes,
            max_bookings_per_user=self.max_bookings_per_user,
        )


class StorageConfig(BaseModel):
    """Where venues, slots and bookings are kept."""
    backend: Literal["sql", "json"] = "sql"
    database_url: str = "sqlite:///data/bookings.db"
    json_path: Path = Path("data/bookings.json")
    seed_demo: bool = True
    echo_sql: bool = False


class ApiConfig(BaseModel):
    """HTTP server settings."""
    host: str = "127.0.0.1"
    port: int = 8000
    admin_token: Optional[str] = None

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"Port must be between 1 and 65535, got {value}")
        return value

    @model_validator(mode="after")
    def apply_token_from_environment(self) -> "ApiConfig":
        """Let the environment supply the operator token."""
        env_token = os.environ.get(ADMIN_TOKEN_ENV)
        if env_token:
            self.admin_token = env_token
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    venue_defaults: VenueDefaults = Field(default_factory=VenueDefaults)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "AppConfig":
        """
        Load an explicit config file, or the default one when present.

        Without an explicit path and without a default file, built-in
        defaults are used.
        """
        if config_path is not None:
            return cls.load_from_yaml(config_path)

        default_path = get_default_config_path()
        if default_path.exists():
            return cls.load_from_yaml(default_path)

        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
