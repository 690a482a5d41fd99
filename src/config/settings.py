# src/config/settings.py - v1
"""Typed configuration loaded from environment / .env via pydantic-settings.

Variables use the BUCKETSCAN_ prefix, e.g. ``BUCKETSCAN_STATE_DIR``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bucketscan.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="BUCKETSCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === State persistence ===
    state_dir: Path = Path("~/.bucketscan/state")
    store_backend: Literal["json", "sqlite", "memory"] = "json"

    # === Resume ===
    resume_policy: Literal["fingerprint", "count"] = "fingerprint"

    # === Directory source ===
    scan_recursive: bool = True
    scan_extensions: str = "jpg,jpeg,png,heic,gif,webp"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:  # noqa: N805
        return v.upper() if isinstance(v, str) else v

    @field_validator("log_retention")
    @classmethod
    def validate_log_retention(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("log_retention must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field checks that pydantic types cannot express."""
        errors: list[str] = []

        if not self.scan_extensions_list:
            errors.append("SCAN_EXTENSIONS must list at least one extension")

        try:
            parse_size(self.log_rotation)
        except ValueError:
            errors.append(f"LOG_ROTATION is not a size: {self.log_rotation!r}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def scan_extensions_list(self) -> list[str]:
        """Parse comma-separated extensions (lower case, no dots)."""
        return [
            e.strip().lower().lstrip(".")
            for e in self.scan_extensions.split(",")
            if e.strip().lstrip(".")
        ]


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment / .env with optional overrides.

    Args:
        **overrides: Field-level overrides (CLI flags, tests).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
