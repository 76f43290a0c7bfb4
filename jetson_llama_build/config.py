"""Configuration settings for jetson_llama_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_root() -> Path:
    """Return the LlamaFarm library cache root."""
    return Path.home() / ".cache" / "llamafarm-llama"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the JETSON_BUILD_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="JETSON_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    source_dir: Path = Field(
        default=Path("."),
        description="llama.cpp source checkout passed to cmake -S",
    )
    work_dir: Path = Field(
        default=Path("."),
        description="Directory in which build directories are created",
    )
    build_dir_prefix: str = Field(
        default="build-jetson-",
        min_length=1,
        description="Prefix for per-device build directory names",
    )
    cache_root: Path = Field(
        default_factory=_default_cache_root,
        description="LlamaFarm library cache root used in the copy recipe",
    )

    # Tools
    nvcc: str = Field(default="nvcc", description="CUDA compiler executable")
    cmake: str = Field(default="cmake", description="CMake executable")

    # Build
    jobs: int | None = Field(
        default=None,
        ge=1,
        description="Parallel build jobs (uses host CPU count if not set)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Load settings from ``JETSON_BUILD_*`` variables and ``.env``.

    A fresh instance is built on every call so CLI invocations always
    see the current environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
