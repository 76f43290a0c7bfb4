"""Process runner and CMake command composition.

This module handles:
- Composing the CMake configure and build commands for a device profile
- Executing external commands through a small ``ProcessRunner`` interface
- Translating non-zero exits into ``ExternalProcessError``

The orchestration code only talks to ``ProcessRunner``, so tests can
substitute a recording fake and never touch a real toolchain.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from jetson_llama_build.errors import ExternalProcessError

if TYPE_CHECKING:
    from jetson_llama_build.devices import DeviceProfile

logger = logging.getLogger(__name__)

BUILD_CONFIG = "Release"

# Cache entries every Jetson build must carry unchanged
PROTECTED_DEFINITIONS = frozenset(
    {
        "GGML_CUDA",
        "GGML_CUDA_GRAPHS",
        "CMAKE_CUDA_ARCHITECTURES",
        "CMAKE_BUILD_TYPE",
        "GGML_NATIVE",
        "BUILD_SHARED_LIBS",
    }
)


@dataclass
class ProcessResult:
    """Result of an external command.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured stdout ("" when output was streamed).
        stderr: Captured stderr ("" when output was streamed).
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ProcessRunner(Protocol):
    """Interface for running external commands."""

    def which(self, name: str) -> str | None:
        """Return the resolved path of an executable, or None."""
        ...

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        capture: bool = False,
    ) -> ProcessResult:
        """Run a command to completion.

        Raises:
            OSError: If the command cannot be started.
        """
        ...


class SubprocessRunner:
    """ProcessRunner backed by :mod:`subprocess`.

    Streamed commands inherit the parent's stdout/stderr. On
    KeyboardInterrupt ``subprocess.run`` kills the child before the
    exception propagates, so no build is left orphaned.

    Args:
        stdout_to_stderr: Send streamed stdout to stderr instead, leaving
            our own stdout free for machine-readable output.
    """

    def __init__(self, stdout_to_stderr: bool = False) -> None:
        self.stdout_to_stderr = stdout_to_stderr

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        capture: bool = False,
    ) -> ProcessResult:
        if capture:
            result = subprocess.run(
                list(command),
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        else:
            result = subprocess.run(
                list(command),
                cwd=cwd,
                stdout=sys.stderr if self.stdout_to_stderr else None,
                text=True,
                check=False,
            )
        return ProcessResult(
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


def compose_cache_definitions(
    profile: DeviceProfile,
    extra_definitions: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Compose the CMake cache entries for a device profile.

    Args:
        profile: Resolved device profile.
        extra_definitions: Additional KEY=VALUE entries; these may not
            touch any of the PROTECTED_DEFINITIONS.

    Returns:
        Ordered mapping of cache variable to value.

    Raises:
        ValueError: If an extra entry overrides a protected key.
    """
    definitions = {
        "GGML_CUDA": "ON",
        # CUDA graphs are unstable on Tegra
        "GGML_CUDA_GRAPHS": "OFF",
        "CMAKE_CUDA_ARCHITECTURES": profile.cuda_architecture,
        "CMAKE_BUILD_TYPE": BUILD_CONFIG,
        "GGML_NATIVE": "ON",
        "BUILD_SHARED_LIBS": "ON",
    }
    if extra_definitions:
        protected = sorted(PROTECTED_DEFINITIONS.intersection(extra_definitions))
        if protected:
            raise ValueError(
                f"cannot override required CMake option(s): {', '.join(protected)}"
            )
        definitions.update(extra_definitions)
    return definitions


def compose_configure_command(
    profile: DeviceProfile,
    source_dir: Path,
    build_dir: Path,
    cmake: str = "cmake",
    extra_definitions: Mapping[str, str] | None = None,
) -> list[str]:
    """Compose the ``cmake -S ... -B ...`` configure command.

    Args:
        profile: Resolved device profile.
        source_dir: llama.cpp source checkout.
        build_dir: Build directory for this device.
        cmake: CMake executable.
        extra_definitions: Additional cache entries.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [cmake, "-S", str(source_dir), "-B", str(build_dir)]
    definitions = compose_cache_definitions(profile, extra_definitions)
    cmd.extend(f"-D{key}={value}" for key, value in definitions.items())
    return cmd


def compose_build_command(
    build_dir: Path,
    jobs: int,
    cmake: str = "cmake",
) -> list[str]:
    """Compose the ``cmake --build`` command.

    Args:
        build_dir: Configured build directory.
        jobs: Parallelism hint.
        cmake: CMake executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [cmake, "--build", str(build_dir), "--config", BUILD_CONFIG, f"-j{jobs}"]


def default_jobs() -> int:
    """Return the number of processing units on the host."""
    return os.cpu_count() or 1


def run_step(
    runner: ProcessRunner,
    command: Sequence[str],
    cwd: Path | None = None,
) -> ProcessResult:
    """Run one streamed pipeline step, exactly once.

    Args:
        runner: Process runner.
        command: Command to execute.
        cwd: Optional working directory.

    Returns:
        ProcessResult of the successful command.

    Raises:
        ExternalProcessError: If the command exits non-zero or cannot start.
    """
    cmd_str = shlex.join(command)
    logger.info("Executing: %s", cmd_str)

    try:
        result = runner.run(command, cwd=cwd)
    except OSError as e:
        logger.error("Failed to execute %s: %s", cmd_str, e)
        raise ExternalProcessError(
            cmd_str,
            exit_code=1,
            reason=f"Failed to execute {command[0]}: {e}",
        ) from e

    if not result.success:
        logger.error("Command exited with %d: %s", result.exit_code, cmd_str)
        exit_code = result.exit_code
        if exit_code < 0:
            # Killed by signal N; report it the way a shell would
            exit_code = 128 - exit_code
        raise ExternalProcessError(cmd_str, exit_code=exit_code)

    return result


__all__ = [
    "BUILD_CONFIG",
    "PROTECTED_DEFINITIONS",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
    "compose_build_command",
    "compose_cache_definitions",
    "compose_configure_command",
    "default_jobs",
    "run_step",
]
