"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from jetson_llama_build.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings()

        assert settings.source_dir == Path(".")
        assert settings.work_dir == Path(".")
        assert settings.build_dir_prefix == "build-jetson-"
        assert settings.cache_root == Path.home() / ".cache" / "llamafarm-llama"
        assert settings.nvcc == "nvcc"
        assert settings.cmake == "cmake"
        assert settings.jobs is None
        assert settings.log_level == "INFO"

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "JETSON_BUILD_LOG_LEVEL": "DEBUG",
                "JETSON_BUILD_JOBS": "4",
                "JETSON_BUILD_CMAKE": "/opt/cmake/bin/cmake",
            },
        ):
            settings = Settings()
            assert settings.log_level == "DEBUG"
            assert settings.jobs == 4
            assert settings.cmake == "/opt/cmake/bin/cmake"

    def test_cache_root_from_env(self) -> None:
        """Cache root should be configurable via env."""
        with patch.dict(os.environ, {"JETSON_BUILD_CACHE_ROOT": "/tmp/test-cache"}):
            settings = Settings()
            assert settings.cache_root == Path("/tmp/test-cache")

    def test_jobs_must_be_positive(self) -> None:
        """A zero job count should be rejected."""
        with pytest.raises(ValidationError):
            Settings(jobs=0)

    def test_dotenv_file(self, tmp_path) -> None:
        """Settings should be read from .env in the working directory."""
        (tmp_path / ".env").write_text("JETSON_BUILD_BUILD_DIR_PREFIX=out-\n")
        settings = Settings()
        assert settings.build_dir_prefix == "out-"


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_get_settings_reads_dotenv(self, tmp_path) -> None:
        """get_settings should pick up a .env in the working directory."""
        (tmp_path / ".env").write_text("JETSON_BUILD_NVCC=/usr/local/cuda/bin/nvcc\n")
        assert get_settings().nvcc == "/usr/local/cuda/bin/nvcc"

    def test_get_settings_sees_env_changes(self, monkeypatch) -> None:
        """Each call should reflect the current environment."""
        monkeypatch.setenv("JETSON_BUILD_JOBS", "2")
        assert get_settings().jobs == 2
        monkeypatch.setenv("JETSON_BUILD_JOBS", "3")
        assert get_settings().jobs == 3


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        parsed = json.loads(print_settings_json(Settings()))

        assert "source_dir" in parsed
        assert "work_dir" in parsed
        assert "cache_root" in parsed
        assert "build_dir_prefix" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert parsed["nvcc"] == "nvcc"
