"""Build service - pipeline orchestration.

This module provides the high-level build pipeline:
- Resolve the device token to a profile and compute the build plan
- Validate host tooling (nvcc, cmake)
- Run the CMake configure step, then the build step
- Report where the artifacts are expected

The run is strictly linear. Unknown devices and missing tools stop it
before any external build command; a failed configure stops it before
the build step. Every external command is attempted exactly once.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from jetson_llama_build.builds import artifacts, toolchain
from jetson_llama_build.builds.artifacts import ArtifactPaths
from jetson_llama_build.builds.runner import (
    ProcessRunner,
    compose_build_command,
    compose_configure_command,
    default_jobs,
    run_step,
)
from jetson_llama_build.builds.toolchain import ToolVersions
from jetson_llama_build.config import Settings
from jetson_llama_build.devices import DEFAULT_DEVICE, DeviceProfile, resolve_device

logger = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    """Everything needed to run a build, computed before any side effect.

    Attributes:
        token: Device token as typed by the operator.
        profile: Resolved device profile.
        source_dir: llama.cpp source checkout.
        build_dir: Per-device build directory.
        jobs: Parallelism hint for the build step.
        configure_command: CMake configure command.
        build_command: CMake build command.
    """

    token: str
    profile: DeviceProfile
    source_dir: Path
    build_dir: Path
    jobs: int
    configure_command: list[str]
    build_command: list[str]

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "device": self.token,
            "profile": self.profile.name,
            "display_name": self.profile.display_name,
            "cuda_architecture": self.profile.cuda_architecture,
            "source_dir": str(self.source_dir),
            "build_dir": str(self.build_dir),
            "jobs": self.jobs,
            "configure_command": shlex.join(self.configure_command),
            "build_command": shlex.join(self.build_command),
        }


@dataclass
class BuildOutcome:
    """Result of a successful build run."""

    plan: BuildPlan
    versions: ToolVersions
    artifacts: ArtifactPaths
    steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        result = self.plan.to_dict()
        result["cuda_version"] = self.versions.cuda
        result["cmake_version"] = self.versions.cmake
        result["artifacts"] = {
            "llama_lib": str(self.artifacts.llama_lib),
            "ggml_libs": str(self.artifacts.ggml_libs),
        }
        result["steps"] = list(self.steps)
        return result


def plan_build(
    settings: Settings,
    token: str = DEFAULT_DEVICE,
    source_dir: Path | None = None,
    jobs: int | None = None,
    extra_definitions: Mapping[str, str] | None = None,
) -> BuildPlan:
    """Compute the build plan for a device token.

    Args:
        settings: Effective settings.
        token: Device token; defaults to orin.
        source_dir: Overrides settings.source_dir.
        jobs: Overrides settings.jobs and the host CPU count.
        extra_definitions: Additional CMake cache entries.

    Returns:
        BuildPlan for the device.

    Raises:
        UnknownDeviceError: If the token is not a supported alias.
        ValueError: If extra_definitions overrides a required CMake option.
    """
    profile = resolve_device(token)
    effective_source = source_dir if source_dir is not None else settings.source_dir
    build_dir = settings.work_dir / artifacts.build_dir_name(
        token, settings.build_dir_prefix
    )
    effective_jobs = jobs or settings.jobs or default_jobs()

    return BuildPlan(
        token=token,
        profile=profile,
        source_dir=effective_source,
        build_dir=build_dir,
        jobs=effective_jobs,
        configure_command=compose_configure_command(
            profile,
            source_dir=effective_source,
            build_dir=build_dir,
            cmake=settings.cmake,
            extra_definitions=extra_definitions,
        ),
        build_command=compose_build_command(
            build_dir, effective_jobs, cmake=settings.cmake
        ),
    )


def run_build(
    plan: BuildPlan,
    runner: ProcessRunner,
    settings: Settings,
) -> BuildOutcome:
    """Execute a build plan.

    Args:
        plan: Plan from plan_build.
        runner: Process runner.
        settings: Effective settings (tool names).

    Returns:
        BuildOutcome describing the finished build.

    Raises:
        MissingDependencyError: If nvcc or cmake is not on PATH.
        ExternalProcessError: If configure or build exits non-zero.
    """
    logger.info(
        "Building llama.cpp for %s (SM %s)",
        plan.profile.display_name,
        plan.profile.cuda_architecture,
    )
    versions = toolchain.check_toolchain(
        runner, nvcc=settings.nvcc, cmake=settings.cmake
    )

    logger.info("Build directory: %s", plan.build_dir)
    steps: list[str] = []

    logger.info("Configuring CMake...")
    run_step(runner, plan.configure_command)
    steps.append("configure")

    logger.info("Building with %d threads...", plan.jobs)
    run_step(runner, plan.build_command)
    steps.append("build")

    logger.info("Build complete: %s", plan.build_dir)
    return BuildOutcome(
        plan=plan,
        versions=versions,
        artifacts=artifacts.expected_artifacts(plan.build_dir),
        steps=steps,
    )


__all__ = ["BuildOutcome", "BuildPlan", "plan_build", "run_build"]
