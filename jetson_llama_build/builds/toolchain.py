"""Host toolchain checks.

Presence checks are hard gates: a missing ``nvcc`` or ``cmake`` stops the
run before any build side effect. Version detection is a diagnostic and
never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from jetson_llama_build.builds.runner import ProcessRunner
from jetson_llama_build.errors import MissingDependencyError

logger = logging.getLogger(__name__)

NVCC_REMEDIATION = "Please install CUDA toolkit (part of JetPack)."
CMAKE_REMEDIATION = "Install with: sudo apt-get install cmake"


@dataclass
class ToolVersions:
    """Detected tool versions (None when detection failed)."""

    cuda: str | None = None
    cmake: str | None = None


def parse_nvcc_version(output: str) -> str | None:
    """Extract the CUDA release from ``nvcc --version`` output.

    Looks for a line like
    ``Cuda compilation tools, release 12.2, V12.2.140`` and returns ``12.2``.
    """
    for line in output.splitlines():
        if "release " in line:
            version = line.split("release ", 1)[1].split(",", 1)[0].strip()
            return version or None
    return None


def parse_cmake_version(output: str) -> str | None:
    """Extract the version from ``cmake --version`` output.

    The first line reads ``cmake version 3.28.3``.
    """
    lines = output.splitlines()
    if not lines:
        return None
    words = lines[0].split()
    if len(words) < 3:
        return None
    return words[2]


def require_tool(runner: ProcessRunner, name: str, remediation: str) -> str:
    """Ensure an executable is on PATH.

    Args:
        runner: Process runner used for lookup.
        name: Executable name.
        remediation: What the operator should install.

    Returns:
        Resolved executable path.

    Raises:
        MissingDependencyError: If the executable is not found.
    """
    path = runner.which(name)
    if path is None:
        logger.error("%s not found on PATH", name)
        raise MissingDependencyError(name, remediation)
    logger.debug("Found %s at %s", name, path)
    return path


def detect_version(
    runner: ProcessRunner,
    executable: str,
    parse: Callable[[str], str | None],
) -> str | None:
    """Run ``<executable> --version`` and parse it, best-effort.

    Any failure (spawn error, non-zero exit, unparseable output) yields None.
    """
    try:
        result = runner.run([executable, "--version"], capture=True)
        if not result.success:
            logger.debug("%s --version exited with %d", executable, result.exit_code)
            return None
        return parse(result.stdout)
    except Exception as e:
        logger.debug("Could not detect %s version: %s", executable, e)
        return None


def check_toolchain(
    runner: ProcessRunner,
    nvcc: str = "nvcc",
    cmake: str = "cmake",
) -> ToolVersions:
    """Validate host tooling and detect versions.

    nvcc is checked (and its version read) before cmake is looked up.

    Raises:
        MissingDependencyError: If either tool is missing.
    """
    require_tool(runner, nvcc, NVCC_REMEDIATION)
    cuda_version = detect_version(runner, nvcc, parse_nvcc_version)
    logger.info("CUDA version: %s", cuda_version or "unknown")

    require_tool(runner, cmake, CMAKE_REMEDIATION)
    cmake_version = detect_version(runner, cmake, parse_cmake_version)
    logger.info("CMake version: %s", cmake_version or "unknown")

    return ToolVersions(cuda=cuda_version, cmake=cmake_version)


__all__ = [
    "CMAKE_REMEDIATION",
    "NVCC_REMEDIATION",
    "ToolVersions",
    "check_toolchain",
    "detect_version",
    "parse_cmake_version",
    "parse_nvcc_version",
    "require_tool",
]
