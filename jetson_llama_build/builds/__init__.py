"""Build orchestration module.

This module handles:
- Composing CMake configure/build commands
- Host toolchain checks and version detection
- Build directory naming and artifact reporting
- Running the end-to-end build pipeline
"""

from jetson_llama_build.builds.runner import (
    ProcessResult,
    ProcessRunner,
    SubprocessRunner,
)
from jetson_llama_build.builds.service import BuildOutcome, BuildPlan

__all__ = [
    "BuildOutcome",
    "BuildPlan",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
]
